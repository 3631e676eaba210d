"""Tests for captioncut.extract.audio module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from captioncut.exceptions import ExtractionError
from captioncut.extract.audio import extract_audio


class TestExtractAudio:
    def test_builds_16k_mono_command(self, tmp_path: Path) -> None:
        output = tmp_path / "temp" / "talk.wav"
        with patch(
            "captioncut.extract.audio.subprocess.run",
            return_value=MagicMock(returncode=0, stderr=""),
        ) as mock_run:
            result = extract_audio(tmp_path / "talk.mp4", output)

        cmd = mock_run.call_args.args[0]
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-ar") + 1] == "16000"
        assert cmd[cmd.index("-ac") + 1] == "1"
        assert cmd[-1] == str(output)
        assert output.parent.is_dir()
        assert result["audio_size"] == 0

    def test_ffmpeg_failure(self, tmp_path: Path) -> None:
        with patch(
            "captioncut.extract.audio.subprocess.run",
            return_value=MagicMock(returncode=1, stderr="No such file"),
        ):
            with pytest.raises(ExtractionError, match="No such file"):
                extract_audio(tmp_path / "missing.mp4", tmp_path / "out.wav")

    def test_ffmpeg_not_installed(self, tmp_path: Path) -> None:
        with patch("captioncut.extract.audio.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(ExtractionError, match="Could not run FFmpeg"):
                extract_audio(tmp_path / "talk.mp4", tmp_path / "out.wav")

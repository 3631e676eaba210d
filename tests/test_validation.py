"""Tests for captioncut.validation module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from captioncut.exceptions import DependencyError, ValidationError
from captioncut.validation import (
    check_disk_space,
    check_ffmpeg,
    find_input_video,
    validate_project_name,
)


class TestValidateProjectName:
    @pytest.mark.parametrize("name", ["talk", "20260301-keynote", "my project"])
    def test_valid(self, name: str) -> None:
        assert validate_project_name(name) == name

    @pytest.mark.parametrize("name", ["", "   ", " padded", "a/b", "a\\b", "..", "up..", ".hidden"])
    def test_invalid(self, name: str) -> None:
        with pytest.raises(ValidationError):
            validate_project_name(name)


class TestFindInputVideo:
    def test_first_by_name(self, tmp_path: Path) -> None:
        (tmp_path / "b.mov").write_bytes(b"")
        (tmp_path / "a.MP4").write_bytes(b"")
        (tmp_path / "notes.txt").write_text("")
        assert find_input_video(tmp_path).name == "a.MP4"

    def test_no_videos(self, tmp_path: Path) -> None:
        (tmp_path / "notes.txt").write_text("")
        with pytest.raises(ValidationError, match="No video files"):
            find_input_video(tmp_path)

    def test_missing_dir(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            find_input_video(tmp_path / "input")


class TestCheckFfmpeg:
    def test_missing(self) -> None:
        with patch("captioncut.validation.shutil.which", return_value=None):
            with pytest.raises(DependencyError) as exc_info:
                check_ffmpeg()
        assert exc_info.value.install_hint

    def test_versions(self) -> None:
        with (
            patch("captioncut.validation.shutil.which", side_effect=lambda t: f"/usr/bin/{t}"),
            patch(
                "captioncut.validation.subprocess.run",
                return_value=MagicMock(stdout="ffmpeg version 6.1 Copyright\n"),
            ),
        ):
            result = check_ffmpeg()
        assert result == {"ffmpeg_version": "6.1", "ffprobe_version": "6.1"}


class TestCheckDiskSpace:
    def test_reports_space(self, tmp_path: Path) -> None:
        result = check_disk_space(tmp_path, required_mb=0)
        assert result["sufficient"] is True
        assert result["required_mb"] == 0

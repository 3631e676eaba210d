"""Tests for captioncut CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from captioncut import __version__
from captioncut.captions.timing import load_caption_timing
from captioncut.cli import app
from captioncut.io import read_json

runner = CliRunner()


@pytest.fixture
def in_workspace(populated_workspace, monkeypatch):
    monkeypatch.chdir(populated_workspace.path)
    return populated_workspace


@pytest.fixture
def with_timing(in_workspace):
    result = runner.invoke(app, ["stage", "generate-timing"])
    assert result.exit_code == 0, result.output
    return in_workspace


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestInitCommand:
    def test_creates_workspace(self, tmp_path: Path) -> None:
        target = tmp_path / "studio"
        result = runner.invoke(app, ["init", str(target)])
        assert result.exit_code == 0
        assert (target / "captioncut.yaml").exists()
        for store in ("input", "data", "output", "temp", "archive", "public"):
            assert (target / store).is_dir()
        assert (target / "prompts" / "emphasis.txt").exists()

    def test_fails_if_already_workspace(self, tmp_path: Path) -> None:
        runner.invoke(app, ["init", str(tmp_path)])
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == 1
        assert "already a workspace" in result.output


class TestOutsideWorkspace:
    @pytest.mark.parametrize(
        "args", [["run"], ["continue"], ["projects", "list"], ["position", "50", "50"]]
    )
    def test_commands_require_workspace(self, args, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, args)
        assert result.exit_code == 1
        assert "Not in a CaptionCut workspace" in result.output


class TestProjectsCommands:
    def test_create_and_list(self, tmp_path: Path, monkeypatch) -> None:
        runner.invoke(app, ["init", str(tmp_path)])
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["projects", "create", "keynote"])
        assert result.exit_code == 0
        assert "keynote" in result.output
        (tmp_path / "input" / "talk.mp4").write_bytes(b"video")

        result = runner.invoke(app, ["projects", "create", "retake"])
        assert result.exit_code == 0
        assert (tmp_path / "archive" / "keynote" / "input" / "talk.mp4").exists()

        result = runner.invoke(app, ["projects", "list"])
        assert result.exit_code == 0
        assert "keynote" in result.output

    def test_empty_list(self, tmp_path: Path, monkeypatch) -> None:
        runner.invoke(app, ["init", str(tmp_path)])
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["projects", "list"])
        assert result.exit_code == 0
        assert "No projects yet" in result.output

    def test_load_missing(self, in_workspace) -> None:
        result = runner.invoke(app, ["projects", "load", "nope"])
        assert result.exit_code == 1
        assert "not found in archive" in result.output

    def test_invalid_name(self, in_workspace) -> None:
        result = runner.invoke(app, ["projects", "archive", "../escape"])
        assert result.exit_code == 1

    def test_archive_then_load(self, in_workspace) -> None:
        result = runner.invoke(app, ["projects", "archive", "talk"])
        assert result.exit_code == 0
        assert not in_workspace.transcription_path.exists()

        result = runner.invoke(app, ["projects", "load", "talk"])
        assert result.exit_code == 0
        assert in_workspace.transcription_path.exists()


class TestStageCommand:
    def test_unknown_stage(self, in_workspace) -> None:
        result = runner.invoke(app, ["stage", "render"])
        assert result.exit_code == 1
        assert "Unknown stage" in result.output

    def test_generate_timing(self, with_timing) -> None:
        timing = read_json(with_timing.caption_timing_path)
        assert timing["fps"] == 30
        assert timing["pages"]

    def test_missing_artifact(self, tmp_workspace, monkeypatch) -> None:
        monkeypatch.chdir(tmp_workspace.path)
        result = runner.invoke(app, ["stage", "analyze-fillers"])
        assert result.exit_code == 1
        assert "transcribe" in result.output


class TestCaptionEdits:
    def test_position(self, with_timing) -> None:
        result = runner.invoke(app, ["position", "25", "70"])
        assert result.exit_code == 0
        timing = load_caption_timing(with_timing.caption_timing_path)
        assert (timing.position.x, timing.position.y) == (25.0, 70.0)

    def test_position_out_of_range(self, with_timing) -> None:
        result = runner.invoke(app, ["position", "150", "70"])
        assert result.exit_code == 1

    def test_keyframes(self, with_timing) -> None:
        assert runner.invoke(app, ["keyframe", "set", "30", "50", "20"]).exit_code == 0
        assert runner.invoke(app, ["keyframe", "set", "0", "50", "80"]).exit_code == 0
        timing = load_caption_timing(with_timing.caption_timing_path)
        assert [kf.frame for kf in timing.position_keyframes] == [0, 30]

        result = runner.invoke(app, ["keyframe", "list"])
        assert result.exit_code == 0
        assert "30" in result.output

        assert runner.invoke(app, ["keyframe", "remove", "30"]).exit_code == 0
        timing = load_caption_timing(with_timing.caption_timing_path)
        assert [kf.frame for kf in timing.position_keyframes] == [0]

    def test_remove_missing_keyframe(self, with_timing) -> None:
        result = runner.invoke(app, ["keyframe", "remove", "99"])
        assert result.exit_code == 1
        assert "No keyframe" in result.output

    def test_keyframes_need_timing(self, in_workspace) -> None:
        result = runner.invoke(app, ["keyframe", "list"])
        assert result.exit_code == 1
        assert "generate-timing" in result.output

    def test_emphasis_toggle(self, with_timing) -> None:
        result = runner.invoke(app, ["emphasis", "toggle", "4"])
        assert result.exit_code == 0
        assert "off" in result.output
        timing = load_caption_timing(with_timing.caption_timing_path)
        assert 4 not in timing.emphasis_indices

    def test_emphasis_toggle_cut_word(self, with_timing) -> None:
        result = runner.invoke(app, ["emphasis", "toggle", "1"])
        assert result.exit_code == 1


class TestRunCommand:
    def test_in_process_run(self, in_workspace) -> None:
        def fake_ffmpeg(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"cut video")
            return MagicMock(returncode=0, stdout="", stderr="")

        with (
            patch("captioncut.export.cut.subprocess.run", side_effect=fake_ffmpeg),
            patch("captioncut.pipeline.orchestrator.subprocess.run") as child_process,
        ):
            result = runner.invoke(app, ["run", "--from", "generate-timing", "--in-process"])

        assert result.exit_code == 0, result.output
        assert "Pipeline complete" in result.output
        child_process.assert_not_called()
        assert in_workspace.caption_timing_path.exists()
        published = list(in_workspace.public_dir.glob("video-*.mp4"))
        assert [p.read_bytes() for p in published] == [b"cut video"]

    def test_in_process_failure_exits_nonzero(self, in_workspace) -> None:
        in_workspace.emphasis_path.unlink()
        result = runner.invoke(app, ["run", "--from", "generate-timing", "--in-process"])
        assert result.exit_code == 1
        assert "Generating timing failed" in result.output

    def test_default_run_uses_child_processes(self, in_workspace) -> None:
        with patch(
            "captioncut.pipeline.orchestrator.subprocess.run",
            return_value=MagicMock(returncode=0, stdout="", stderr=""),
        ) as child_process:
            result = runner.invoke(app, ["run", "--from", "cut-video"])

        assert result.exit_code == 0, result.output
        command = child_process.call_args.args[0]
        assert command[-2:] == ["stage", "cut-video"]
        cwd = Path(child_process.call_args.kwargs["cwd"])
        assert cwd.resolve() == in_workspace.path.resolve()

"""Tests for captioncut.pipeline stages and orchestrator."""

from __future__ import annotations

import sys
import threading
from unittest.mock import MagicMock, patch

import pytest

from captioncut.exceptions import PipelineBusyError, StageError, ValidationError
from captioncut.pipeline.orchestrator import (
    InProcessStageExecutor,
    Pipeline,
    PipelineRunner,
    RunStatus,
    SubprocessStageExecutor,
    create_pipeline,
)
from captioncut.pipeline.progress import ProgressBroadcaster
from captioncut.pipeline.stages import (
    CONTINUE_FROM,
    STAGE_NAMES,
    get_stage,
    run_stage,
    stage_number,
    stages_from,
)


class RecordingExecutor:
    def __init__(self, fail_on: str | None = None, error: Exception | None = None) -> None:
        self.ran: list[str] = []
        self.fail_on = fail_on
        self.error = error or StageError(fail_on or "", "boom")

    def __call__(self, stage) -> None:
        self.ran.append(stage.name)
        if stage.name == self.fail_on:
            raise self.error


def drain(subscription) -> list[dict]:
    events = []
    while not subscription._queue.empty():
        events.append(subscription.get(timeout=0))
    return events


@pytest.fixture
def broadcaster() -> ProgressBroadcaster:
    return ProgressBroadcaster()


class TestStages:
    def test_order(self) -> None:
        assert STAGE_NAMES == (
            "transcribe",
            "analyze-fillers",
            "detect-emphasis",
            "generate-timing",
            "cut-video",
        )

    def test_labels(self) -> None:
        assert get_stage("cut-video").label == "Cutting video"

    def test_continue_point(self) -> None:
        assert CONTINUE_FROM == "detect-emphasis"
        assert [s.name for s in stages_from(CONTINUE_FROM)] == [
            "detect-emphasis",
            "generate-timing",
            "cut-video",
        ]

    def test_stage_number(self) -> None:
        assert stage_number("transcribe") == 1
        assert stage_number("cut-video") == 5

    def test_unknown_stage(self) -> None:
        with pytest.raises(ValidationError):
            get_stage("render")

    def test_runners_resolve(self) -> None:
        for name in STAGE_NAMES:
            assert callable(get_stage(name).load())

    def test_run_stage_dispatches(self, populated_workspace, config) -> None:
        summary = run_stage("generate-timing", populated_workspace, config)
        assert summary["words"] == 6


class TestPipeline:
    def test_successful_run_events(self, broadcaster) -> None:
        subscription = broadcaster.subscribe()
        finisher = MagicMock()
        pipeline = Pipeline(broadcaster, RecordingExecutor(), finisher=finisher)

        state = pipeline.run()

        assert state.status is RunStatus.COMPLETE
        events = drain(subscription)
        assert events[0] == {"status": "connected"}
        running = [e for e in events if e.get("status") == "running"]
        assert [e["step"] for e in running] == [1, 2, 3, 4, 5]
        assert [e["step_name"] for e in running][0] == "Transcribing audio"
        assert events[-1] == {
            "step": 5,
            "total_steps": 5,
            "step_name": "Complete",
            "status": "complete",
        }
        finisher.assert_called_once()

    def test_finisher_runs_before_complete_event(self, broadcaster) -> None:
        subscription = broadcaster.subscribe()
        seen_at_finish = []
        pipeline = Pipeline(
            broadcaster,
            RecordingExecutor(),
            finisher=lambda: seen_at_finish.extend(drain(subscription)),
        )
        pipeline.run()
        assert all(e.get("status") != "complete" for e in seen_at_finish)
        assert drain(subscription) == [
            {"step": 5, "total_steps": 5, "step_name": "Complete", "status": "complete"}
        ]

    def test_failure_stops_run(self, broadcaster) -> None:
        subscription = broadcaster.subscribe()
        executor = RecordingExecutor(fail_on="detect-emphasis")
        finisher = MagicMock()
        pipeline = Pipeline(broadcaster, executor, finisher=finisher)

        state = pipeline.run()

        assert executor.ran == ["transcribe", "analyze-fillers", "detect-emphasis"]
        assert state.status is RunStatus.FAILED
        assert (state.step, state.error) == (3, "boom")
        assert drain(subscription)[-1] == {
            "step": 3,
            "total_steps": 5,
            "step_name": "Detecting emphasis",
            "status": "failed",
            "error": "boom",
        }
        finisher.assert_not_called()

    def test_unexpected_exception_is_reported(self, broadcaster) -> None:
        executor = RecordingExecutor(fail_on="transcribe", error=RuntimeError("crash"))
        state = Pipeline(broadcaster, executor).run()
        assert state.status is RunStatus.FAILED
        assert state.error == "crash"

    def test_start_mid_way(self, broadcaster) -> None:
        subscription = broadcaster.subscribe()
        executor = RecordingExecutor()
        Pipeline(broadcaster, executor).run(CONTINUE_FROM)
        assert executor.ran == ["detect-emphasis", "generate-timing", "cut-video"]
        running = [e for e in drain(subscription) if e.get("status") == "running"]
        assert [e["step"] for e in running] == [3, 4, 5]

    def test_finisher_failure(self, broadcaster) -> None:
        pipeline = Pipeline(
            broadcaster, RecordingExecutor(), finisher=MagicMock(side_effect=OSError("full"))
        )
        state = pipeline.run()
        assert state.status is RunStatus.FAILED
        assert state.error == "full"

    def test_initial_state(self, broadcaster) -> None:
        assert Pipeline(broadcaster, RecordingExecutor()).snapshot().status is RunStatus.IDLE


class TestPipelineRunner:
    def test_runs_in_background(self, broadcaster) -> None:
        runner = PipelineRunner(Pipeline(broadcaster, RecordingExecutor()))
        runner.start()
        state = runner.wait(timeout=5)
        assert state.status is RunStatus.COMPLETE
        assert not runner.is_running

    def test_second_start_is_busy(self, broadcaster) -> None:
        release = threading.Event()

        def blocking_executor(stage) -> None:
            release.wait(timeout=5)

        runner = PipelineRunner(Pipeline(broadcaster, blocking_executor))
        runner.start()
        try:
            with pytest.raises(PipelineBusyError):
                runner.start()
        finally:
            release.set()
            runner.wait(timeout=10)

        runner.start("cut-video")
        assert runner.wait(timeout=5).status is RunStatus.COMPLETE

    def test_unknown_stage_rejected_before_start(self, broadcaster) -> None:
        runner = PipelineRunner(Pipeline(broadcaster, RecordingExecutor()))
        with pytest.raises(ValidationError):
            runner.start("render")
        assert not runner.is_running


class TestSubprocessStageExecutor:
    def test_command(self, tmp_path) -> None:
        executor = SubprocessStageExecutor(tmp_path)
        stage = get_stage("transcribe")
        assert executor.command(stage) == [sys.executable, "-m", "captioncut", "stage", "transcribe"]

    def test_runs_in_workspace(self, tmp_path) -> None:
        executor = SubprocessStageExecutor(tmp_path)
        with patch(
            "captioncut.pipeline.orchestrator.subprocess.run",
            return_value=MagicMock(returncode=0, stdout="", stderr=""),
        ) as mock_run:
            executor(get_stage("transcribe"))
        assert mock_run.call_args.kwargs["cwd"] == tmp_path

    def test_failure_reason_from_stderr(self, tmp_path) -> None:
        executor = SubprocessStageExecutor(tmp_path)
        with patch(
            "captioncut.pipeline.orchestrator.subprocess.run",
            return_value=MagicMock(
                returncode=1, stdout="progress", stderr="Error: No video files found\n\n"
            ),
        ):
            with pytest.raises(StageError) as exc_info:
                executor(get_stage("transcribe"))
        assert exc_info.value.message == "Error: No video files found"
        assert exc_info.value.stage == "transcribe"

    def test_failure_without_output(self, tmp_path) -> None:
        executor = SubprocessStageExecutor(tmp_path)
        with patch(
            "captioncut.pipeline.orchestrator.subprocess.run",
            return_value=MagicMock(returncode=3, stdout="", stderr=""),
        ):
            with pytest.raises(StageError, match="exit code 3"):
                executor(get_stage("transcribe"))

    def test_cannot_start(self, tmp_path) -> None:
        executor = SubprocessStageExecutor(tmp_path, python="/nonexistent/python")
        with patch(
            "captioncut.pipeline.orchestrator.subprocess.run", side_effect=FileNotFoundError()
        ):
            with pytest.raises(StageError):
                executor(get_stage("transcribe"))


class TestInProcessStageExecutor:
    def test_runs_stage(self, populated_workspace, config) -> None:
        executor = InProcessStageExecutor(populated_workspace, config)
        executor(get_stage("generate-timing"))
        assert populated_workspace.caption_timing_path.exists()


class TestCreatePipeline:
    def test_defaults_to_child_processes(self, tmp_workspace) -> None:
        pipeline = create_pipeline(tmp_workspace)
        assert isinstance(pipeline.executor, SubprocessStageExecutor)
        assert pipeline.executor.workspace_path == tmp_workspace.path

    def test_in_process_executor(self, populated_workspace, config, broadcaster) -> None:
        executor = InProcessStageExecutor(populated_workspace, config)
        pipeline = create_pipeline(populated_workspace, broadcaster, executor=executor)
        with patch("captioncut.export.cut.subprocess.run") as ffmpeg:
            ffmpeg.return_value = MagicMock(returncode=0, stdout="", stderr="")
            state = pipeline.run("generate-timing")
        assert state.status is RunStatus.COMPLETE
        assert populated_workspace.caption_timing_path.exists()

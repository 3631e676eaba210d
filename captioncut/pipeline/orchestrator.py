"""
captioncut.pipeline.orchestrator - Sequential stage runs with progress.

A Pipeline runs stages strictly in order, stopping at the first failure,
and reports every transition to a ProgressBroadcaster. PipelineRunner
gives a workspace a single run lane on a background thread.
"""

from __future__ import annotations

import enum
import logging
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from captioncut.exceptions import CaptionCutError, PipelineBusyError, StageError
from captioncut.pipeline.progress import ProgressBroadcaster, ProgressEvent
from captioncut.pipeline.stages import STAGE_NAMES, STAGES, Stage, stage_number, stages_from

logger = logging.getLogger(__name__)

COMPLETE_STEP_NAME = "Complete"

StageExecutor = Callable[[Stage], None]


class RunStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class RunState:
    """Snapshot of one pipeline run."""

    status: RunStatus = RunStatus.IDLE
    step: int = 0
    total_steps: int = len(STAGES)
    step_name: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "step": self.step,
            "total_steps": self.total_steps,
            "step_name": self.step_name,
            "error": self.error,
        }


class SubprocessStageExecutor:
    """Run each stage as ``python -m captioncut stage <name>`` in the workspace."""

    def __init__(self, workspace_path: Path, python: str | None = None) -> None:
        self.workspace_path = workspace_path
        self.python = python or sys.executable

    def command(self, stage: Stage) -> list[str]:
        return [self.python, "-m", "captioncut", "stage", stage.name]

    def __call__(self, stage: Stage) -> None:
        cmd = self.command(stage)
        logger.debug("Running %s in %s", " ".join(cmd), self.workspace_path)

        try:
            proc = subprocess.run(
                cmd,
                cwd=self.workspace_path,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise StageError(stage.name, f"could not start stage process: {e}") from e

        if proc.stdout:
            logger.debug("%s output:\n%s", stage.name, proc.stdout)

        if proc.returncode != 0:
            raise StageError(stage.name, _failure_reason(proc))


def _failure_reason(proc: subprocess.CompletedProcess) -> str:
    for stream in (proc.stderr, proc.stdout):
        lines = [line.strip() for line in (stream or "").splitlines() if line.strip()]
        if lines:
            return lines[-1]
    return f"exit code {proc.returncode}"


class InProcessStageExecutor:
    """Run stages in the calling process, sharing its console."""

    def __init__(self, workspace: Any, config: Any, console=None) -> None:
        self.workspace = workspace
        self.config = config
        self.console = console

    def __call__(self, stage: Stage) -> None:
        from captioncut.pipeline.stages import run_stage

        run_stage(stage.name, self.workspace, self.config, console=self.console)


class Pipeline:
    """Runs the stage sequence and broadcasts progress.

    Args:
        broadcaster: Receives one event per transition
        executor: Callable that runs one stage, raising on failure
        finisher: Called once after the last stage succeeds, before the
            final complete event
    """

    def __init__(
        self,
        broadcaster: ProgressBroadcaster,
        executor: StageExecutor,
        finisher: Callable[[], Any] | None = None,
    ) -> None:
        self.broadcaster = broadcaster
        self.executor = executor
        self.finisher = finisher
        self.state = RunState()
        self._state_lock = threading.Lock()

    def snapshot(self) -> RunState:
        with self._state_lock:
            return RunState(**vars(self.state))

    def _transition(self, step: int, step_name: str, status: RunStatus, error: str | None = None):
        with self._state_lock:
            self.state = RunState(
                status=status,
                step=step,
                total_steps=len(STAGES),
                step_name=step_name,
                error=error,
            )
        self.broadcaster.publish(
            ProgressEvent(
                step=step,
                total_steps=len(STAGES),
                step_name=step_name,
                status=status.value,
                error=error,
            )
        )

    def run(self, from_stage: str = STAGE_NAMES[0]) -> RunState:
        """Run ``from_stage`` and every stage after it.

        Step numbers are positions in the full sequence, so a run started
        mid-way reports e.g. step 3 of 5 first.

        Returns:
            Final RunState (complete or failed)
        """
        total = len(STAGES)

        for stage in stages_from(from_stage):
            step = stage_number(stage.name)
            logger.info("Running pipeline step %d/%d: %s", step, total, stage.label)
            self._transition(step, stage.label, RunStatus.RUNNING)

            try:
                self.executor(stage)
            except Exception as e:
                reason = e.message if isinstance(e, StageError) else str(e)
                if not isinstance(e, CaptionCutError):
                    logger.exception("Stage %s crashed", stage.name)
                else:
                    logger.error("Stage %s failed: %s", stage.name, reason)
                self._transition(step, stage.label, RunStatus.FAILED, error=reason)
                return self.snapshot()

        if self.finisher is not None:
            try:
                self.finisher()
            except Exception as e:
                logger.error("Finishing step failed: %s", e)
                self._transition(total, COMPLETE_STEP_NAME, RunStatus.FAILED, error=str(e))
                return self.snapshot()

        self._transition(total, COMPLETE_STEP_NAME, RunStatus.COMPLETE)
        return self.snapshot()


class PipelineRunner:
    """Single run lane: at most one pipeline run at a time, on a background thread."""

    def __init__(self, pipeline: Pipeline) -> None:
        self.pipeline = pipeline
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.last_result: RunState | None = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self, from_stage: str = STAGE_NAMES[0]) -> threading.Thread:
        """Start a run in the background.

        Raises:
            PipelineBusyError: If a run is already active
            ValidationError: If ``from_stage`` is not a stage name
        """
        stage_number(from_stage)

        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                raise PipelineBusyError("A pipeline run is already in progress")
            self.last_result = None
            self._thread = threading.Thread(
                target=self._run,
                args=(from_stage,),
                name="captioncut-pipeline",
                daemon=True,
            )
            self._thread.start()
            return self._thread

    def _run(self, from_stage: str) -> None:
        self.last_result = self.pipeline.run(from_stage)

    def wait(self, timeout: float | None = None) -> RunState | None:
        with self._lock:
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.last_result


def create_pipeline(
    workspace: Any,
    broadcaster: ProgressBroadcaster | None = None,
    executor: StageExecutor | None = None,
) -> Pipeline:
    """Pipeline that publishes media when done.

    Stages run as child processes unless another ``executor`` is given.
    """
    from captioncut.export.publish import publish_latest_media

    return Pipeline(
        broadcaster or ProgressBroadcaster(),
        executor or SubprocessStageExecutor(workspace.path),
        finisher=lambda: publish_latest_media(workspace),
    )

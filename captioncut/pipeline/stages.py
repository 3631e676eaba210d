"""
captioncut.pipeline.stages - The ordered stage registry.

Each stage reads the artifacts of earlier stages from the workspace and
writes its own. Runner functions are imported on first use so a stage
child process only loads what it needs.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Callable

from captioncut.exceptions import ValidationError


@dataclass(frozen=True)
class Stage:
    name: str
    label: str
    runner: str

    def load(self) -> Callable[..., dict[str, Any]]:
        module_name, func_name = self.runner.split(":")
        return getattr(importlib.import_module(module_name), func_name)


STAGES: tuple[Stage, ...] = (
    Stage("transcribe", "Transcribing audio", "captioncut.transcribe.engine:run_transcribe"),
    Stage("analyze-fillers", "Analyzing fillers", "captioncut.analyze.fillers:run_analyze_fillers"),
    Stage("detect-emphasis", "Detecting emphasis", "captioncut.llm.emphasis:run_detect_emphasis"),
    Stage("generate-timing", "Generating timing", "captioncut.captions.timing:run_generate_timing"),
    Stage("cut-video", "Cutting video", "captioncut.export.cut:run_cut_video"),
)

STAGE_NAMES = tuple(stage.name for stage in STAGES)

# Where a run resumes after the operator has reviewed fillers and cuts
CONTINUE_FROM = "detect-emphasis"


def get_stage(name: str) -> Stage:
    for stage in STAGES:
        if stage.name == name:
            return stage
    raise ValidationError(f"Unknown stage {name!r}. Valid stages: {', '.join(STAGE_NAMES)}")


def stage_number(name: str) -> int:
    """1-based position of a stage in the full sequence."""
    return STAGE_NAMES.index(get_stage(name).name) + 1


def stages_from(name: str) -> tuple[Stage, ...]:
    """The stage named ``name`` and every stage after it."""
    return STAGES[stage_number(name) - 1 :]


def run_stage(name: str, workspace: Any, config: Any, console=None) -> dict[str, Any]:
    """Run one stage in the current process.

    Args:
        name: Stage name
        workspace: Workspace instance
        config: CaptionCutConfig instance
        console: Optional rich console for output

    Returns:
        The stage runner's summary dict
    """
    stage = get_stage(name)
    if console:
        console.print(f"\n[bold]{stage.label}[/bold]")
    return stage.load()(workspace, config, console=console)

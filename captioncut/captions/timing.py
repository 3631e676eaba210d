"""
captioncut.captions.timing - Caption timing artifact generation and edits.

Stage 4 joins the transcription, the cut plan, and the emphasis picks
into the caption timing artifact: kept words remapped onto the post-cut
timeline, converted to frames, and paginated. The save channel and the
emphasis toggle edit that artifact in place.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Collection, Sequence

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from captioncut.captions.keyframes import normalize_keyframes
from captioncut.captions.models import (
    DEFAULT_PAGE_TOLERANCE_FRAMES,
    CaptionTimingData,
    CaptionWord,
    Position,
    PositionKeyframe,
    Word,
)
from captioncut.captions.paginate import DEFAULT_WORDS_PER_PAGE, ms_to_frame, paginate
from captioncut.exceptions import ValidationError
from captioncut.io import read_artifact, write_json
from captioncut.timeline.remap import is_excised, remap, remapped_duration
from captioncut.timeline.segments import CutPlan, load_cut_plan

logger = logging.getLogger(__name__)


def build_caption_words(
    words: Sequence[Word],
    plan: CutPlan,
    emphasis_indices: Collection[int],
    fps: int,
) -> list[CaptionWord]:
    """Place every word that survives the cuts on the remapped timeline.

    Words overlapping a removed segment are dropped, never shortened.

    Args:
        words: Transcribed words on the original timeline
        plan: Normalized cut plan
        emphasis_indices: original_index values to mark as emphasis
        fps: Frames per second of the output

    Returns:
        Caption words in playback order
    """
    caption_words = []
    for word in words:
        if is_excised(word.original_start_ms, word.original_end_ms, plan):
            continue

        adjusted_start = remap(word.original_start_ms, plan)
        adjusted_end = remap(word.original_end_ms, plan)
        caption_words.append(
            CaptionWord(
                text=word.text,
                original_index=word.original_index,
                original_start_ms=word.original_start_ms,
                original_end_ms=word.original_end_ms,
                adjusted_start_ms=adjusted_start,
                adjusted_end_ms=adjusted_end,
                start_frame=ms_to_frame(adjusted_start, fps),
                end_frame=ms_to_frame(adjusted_end, fps),
                is_emphasis=word.original_index in emphasis_indices,
            )
        )
    return caption_words


def generate_caption_timing(
    words: Sequence[Word],
    plan: CutPlan,
    emphasis_indices: Collection[int],
    duration_ms: int,
    fps: int = 30,
    words_per_page: int = DEFAULT_WORDS_PER_PAGE,
    position: Position | None = None,
    page_tolerance_frames: int = DEFAULT_PAGE_TOLERANCE_FRAMES,
) -> CaptionTimingData:
    """Build the caption timing artifact.

    Args:
        words: Transcribed words on the original timeline
        plan: Normalized cut plan
        emphasis_indices: original_index values to mark as emphasis
        duration_ms: Length of the original recording
        fps: Frames per second of the output
        words_per_page: Maximum words per caption page
        position: Static caption anchor
        page_tolerance_frames: Frames a page lingers past its end in the presentation layer

    Returns:
        CaptionTimingData with no keyframes

    Raises:
        TimelineError: If the cuts remove more than the recording holds
    """
    final_duration = remapped_duration(plan, duration_ms)
    caption_words = build_caption_words(words, plan, emphasis_indices, fps)

    return CaptionTimingData(
        source_ref=plan.source_ref,
        fps=fps,
        total_frames=ms_to_frame(final_duration, fps),
        duration_ms=final_duration,
        pages=paginate(caption_words, words_per_page),
        position=position,
        position_keyframes=[],
        page_tolerance_frames=page_tolerance_frames,
    )


def load_caption_timing(path: Path) -> CaptionTimingData:
    data = read_artifact(path, produced_by="generate-timing")
    try:
        return CaptionTimingData.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid caption timing artifact {path}: {e}") from e


def save_caption_timing(timing: CaptionTimingData, path: Path) -> None:
    write_json(path, timing.to_dict())


def toggle_emphasis(timing: CaptionTimingData, original_index: int) -> bool:
    """Flip the emphasis flag on one word.

    Returns:
        The word's new is_emphasis value

    Raises:
        ValidationError: If no caption word has that original_index
    """
    word = timing.find_word(original_index)
    if word is None:
        raise ValidationError(f"No caption word with original index {original_index}")
    word.is_emphasis = not word.is_emphasis
    return word.is_emphasis


class KeyframeUpdate(BaseModel):
    frame: int = Field(ge=0)
    x: float = Field(ge=0.0, le=100.0)
    y: float = Field(ge=0.0, le=100.0)


class PositionUpdate(BaseModel):
    x: float = Field(ge=0.0, le=100.0)
    y: float = Field(ge=0.0, le=100.0)


class CaptionUpdate(BaseModel):
    """Partial update accepted by the save channel."""

    position: PositionUpdate | None = None
    position_keyframes: list[KeyframeUpdate] | None = None


def apply_caption_updates(path: Path, updates: dict[str, Any]) -> dict[str, Any]:
    """Merge a partial position update into the caption timing artifact.

    Only the fields present in ``updates`` are replaced; everything else in
    the stored artifact is written back as it was read. Keyframes are
    normalized before saving.

    Args:
        path: Caption timing artifact path
        updates: Mapping with optional 'position' and 'position_keyframes'

    Returns:
        The artifact as saved

    Raises:
        ValidationError: If the update is malformed
        ArtifactError: If the artifact is missing or unreadable
    """
    try:
        update = CaptionUpdate.model_validate(updates)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid caption update: {e}") from e

    data = read_artifact(path, produced_by="generate-timing")

    if "position_keyframes" in update.model_fields_set:
        keyframes = [
            PositionKeyframe(frame=kf.frame, x=kf.x, y=kf.y)
            for kf in update.position_keyframes or []
        ]
        data["position_keyframes"] = [kf.to_dict() for kf in normalize_keyframes(keyframes)]

    if "position" in update.model_fields_set:
        if update.position is None:
            data.pop("position", None)
        else:
            data["position"] = update.position.model_dump()

    write_json(path, data)
    logger.info(
        "Saved caption updates to %s (%d keyframes)",
        path.name,
        len(data.get("position_keyframes") or []),
    )
    return data


def run_generate_timing(workspace: Any, config: Any, console=None) -> dict[str, Any]:
    """Stage 4: write the caption timing artifact.

    Args:
        workspace: Workspace instance
        config: CaptionCutConfig instance
        console: Optional rich console for output

    Returns:
        Dict with timing summary
    """
    from captioncut.transcribe.engine import words_from_transcription
    from captioncut.utils import seconds_to_ms

    transcription = read_artifact(workspace.transcription_path, produced_by="transcribe")
    plan = load_cut_plan(workspace.cuts_path)
    emphasis = read_artifact(workspace.emphasis_path, produced_by="detect-emphasis")

    emphasis_indices = {
        int(entry["original_index"]) for entry in emphasis.get("emphasis_words", [])
    }
    duration_ms = seconds_to_ms(transcription.get("duration_seconds", 0))

    timing = generate_caption_timing(
        words_from_transcription(transcription),
        plan,
        emphasis_indices,
        duration_ms,
        fps=config.fps,
        words_per_page=config.words_per_page,
        position=Position(config.default_position.x, config.default_position.y),
        page_tolerance_frames=config.page_tolerance_frames,
    )
    save_caption_timing(timing, workspace.caption_timing_path)

    all_words = timing.all_words
    if console:
        console.print(
            f"[green]✓[/green] {len(all_words)} caption words on {len(timing.pages)} pages, "
            f"{timing.total_frames} frames"
        )
        console.print(
            f"[dim]  Duration {duration_ms / 1000:.2f}s → {timing.duration_ms / 1000:.2f}s "
            f"(cut {plan.total_removed_ms / 1000:.2f}s)[/dim]"
        )

    return {
        "pages": len(timing.pages),
        "words": len(all_words),
        "emphasis": len(timing.emphasis_indices),
        "total_frames": timing.total_frames,
        "duration_ms": timing.duration_ms,
    }

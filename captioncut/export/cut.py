"""
captioncut.export.cut - Apply the cut plan to the recording with FFmpeg.

Kept spans are trimmed out of the source and concatenated in one
filter_complex pass, re-encoding video and audio.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Sequence

from captioncut.exceptions import MediaError, TimelineError
from captioncut.timeline.remap import keep_spans
from captioncut.timeline.segments import CutPlan, load_cut_plan
from captioncut.utils import format_size

logger = logging.getLogger(__name__)


def _seconds(ms: int) -> str:
    return f"{ms / 1000:.3f}"


def build_filter_graph(spans: Sequence[tuple[int, int]]) -> str:
    """Build the trim/atrim/concat filter_complex for the kept spans.

    Args:
        spans: (start_ms, end_ms) spans to keep, in original order

    Returns:
        filter_complex string producing [outv] and [outa]
    """
    parts = []
    concat_inputs = []
    for i, (start_ms, end_ms) in enumerate(spans):
        start, end = _seconds(start_ms), _seconds(end_ms)
        parts.append(f"[0:v]trim=start={start}:end={end},setpts=PTS-STARTPTS[v{i}]")
        parts.append(f"[0:a]atrim=start={start}:end={end},asetpts=PTS-STARTPTS[a{i}]")
        concat_inputs.append(f"[v{i}][a{i}]")

    parts.append(f"{''.join(concat_inputs)}concat=n={len(spans)}:v=1:a=1[outv][outa]")
    return ";".join(parts)


def build_ffmpeg_command(
    source_path: Path,
    output_path: Path,
    filter_graph: str,
    config: Any,
) -> list[str]:
    return [
        "ffmpeg",
        "-y",
        "-i",
        str(source_path),
        "-filter_complex",
        filter_graph,
        "-map",
        "[outv]",
        "-map",
        "[outa]",
        "-c:v",
        config.video_codec,
        "-crf",
        str(config.crf),
        "-preset",
        config.preset,
        "-c:a",
        config.audio_codec,
        "-b:a",
        config.audio_bitrate,
        str(output_path),
    ]


def cut_video(
    source_path: Path,
    output_path: Path,
    plan: CutPlan,
    duration_ms: int,
    config: Any,
    console=None,
) -> dict[str, Any]:
    """Render the recording with the plan's segments removed.

    With an empty plan the source is copied unchanged.

    Args:
        source_path: Original recording
        output_path: Destination for the cut video
        plan: Normalized cut plan
        duration_ms: Length of the original recording
        config: CaptionCutConfig instance (encoder settings)
        console: Optional rich console for output

    Returns:
        Dict with output path and kept span count

    Raises:
        TimelineError: If the plan leaves nothing to keep
        MediaError: If FFmpeg fails
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if not plan.segments:
        if console:
            console.print("[dim]  No cuts needed, copying original file...[/dim]")
        shutil.copyfile(source_path, output_path)
        return {"output": str(output_path), "spans": 1, "copied": True}

    spans = keep_spans(plan, duration_ms)
    if not spans:
        raise TimelineError("No segments left to keep after cuts")

    cmd = build_ffmpeg_command(source_path, output_path, build_filter_graph(spans), config)

    if console:
        console.print(f"[dim]  Keeping {len(spans)} segments, re-encoding...[/dim]")
    logger.debug("Running %s", " ".join(cmd))

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise MediaError(f"Could not run FFmpeg: {e}") from e

    if proc.returncode != 0:
        raise MediaError(f"FFmpeg cut failed (exit {proc.returncode}): {proc.stderr[-2000:]}")

    return {"output": str(output_path), "spans": len(spans), "copied": False}


def run_cut_video(workspace: Any, config: Any, console=None) -> dict[str, Any]:
    """Stage 5: write temp/<video_name>_cut.mp4.

    Args:
        workspace: Workspace instance
        config: CaptionCutConfig instance
        console: Optional rich console for output

    Returns:
        Dict with cut summary
    """
    from captioncut.io import read_artifact
    from captioncut.utils import seconds_to_ms

    transcription = read_artifact(workspace.transcription_path, produced_by="transcribe")
    plan = load_cut_plan(workspace.cuts_path)

    source_path = Path(transcription.get("source_ref") or plan.source_ref)
    video_name = transcription.get("video_name") or source_path.stem
    output_path = workspace.cut_video_path(video_name)
    duration_ms = seconds_to_ms(transcription.get("duration_seconds", 0))

    if console:
        console.print(f"[cyan]Input: {source_path.name}[/cyan]")
        console.print(
            f"[dim]  Segments to remove: {len(plan)} "
            f"({plan.total_removed_ms / 1000:.2f}s)[/dim]"
        )

    result = cut_video(source_path, output_path, plan, duration_ms, config, console=console)

    if console:
        console.print(
            f"[green]✓[/green] Cut video saved to {output_path} ({format_size(output_path)})"
        )

    return result

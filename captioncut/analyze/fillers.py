"""
captioncut.analyze.fillers - Filler and pause analysis, cut plan generation.

Writes two artifacts: the filler analysis (every candidate with an
auto_remove flag, for operator review) and the cut plan built from the
candidates flagged auto_remove.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Sequence

from captioncut.captions.models import Word
from captioncut.timeline.segments import CutPlan, TimeSegment

_STRIP_PUNCTUATION = re.compile(r"[.,!?]")


def normalize_word(text: str) -> str:
    """Lowercase and strip sentence punctuation for matching."""
    return _STRIP_PUNCTUATION.sub("", text.lower()).strip()


def is_filler_word(text: str, patterns: Sequence[re.Pattern[str]]) -> bool:
    normalized = normalize_word(text)
    return any(pattern.search(normalized) for pattern in patterns)


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def analyze_fillers(
    words: Sequence[Word],
    patterns: Sequence[re.Pattern[str]],
    pause_detect_ms: int = 500,
    pause_auto_remove_ms: int = 1000,
) -> dict[str, list[dict[str, Any]]]:
    """Detect filler words and inter-word pauses.

    Args:
        words: Transcribed words in order
        patterns: Compiled filler patterns
        pause_detect_ms: Minimum gap reported as a pause
        pause_auto_remove_ms: Minimum gap flagged for removal

    Returns:
        Dict with 'filler_words' and 'pauses' lists
    """
    filler_words = []
    pauses = []

    for i, word in enumerate(words):
        if is_filler_word(word.text, patterns):
            filler_words.append(
                {
                    "word": word.text,
                    "start_ms": word.original_start_ms,
                    "end_ms": word.original_end_ms,
                    "index": word.original_index,
                    "auto_remove": True,
                }
            )

        if i < len(words) - 1:
            next_word = words[i + 1]
            gap_ms = next_word.original_start_ms - word.original_end_ms
            if gap_ms >= pause_detect_ms:
                pauses.append(
                    {
                        "start_ms": word.original_end_ms,
                        "end_ms": next_word.original_start_ms,
                        "duration_ms": gap_ms,
                        "after_word_index": word.original_index,
                        "auto_remove": gap_ms >= pause_auto_remove_ms,
                    }
                )

    return {"filler_words": filler_words, "pauses": pauses}


def build_cut_plan(
    source_ref: str,
    filler_words: Iterable[dict[str, Any]],
    pauses: Iterable[dict[str, Any]],
    pause_keep_ms: int = 200,
) -> CutPlan:
    """Build the cut plan from analysis entries flagged auto_remove.

    Removed pauses keep ``pause_keep_ms`` of silence on each side; pauses
    too short to keep both margins are left alone.

    Args:
        source_ref: Recording the plan applies to
        filler_words: Filler entries from the analysis artifact
        pauses: Pause entries from the analysis artifact
        pause_keep_ms: Silence kept on each side of a removed pause

    Returns:
        Normalized CutPlan
    """
    segments = []

    for filler in filler_words:
        if filler.get("auto_remove") and filler["end_ms"] > filler["start_ms"]:
            segments.append(
                TimeSegment(
                    start_ms=filler["start_ms"],
                    end_ms=filler["end_ms"],
                    reason=f'filler: "{filler["word"]}"',
                )
            )

    for pause in pauses:
        if pause.get("auto_remove") and pause["duration_ms"] > pause_keep_ms * 2:
            segments.append(
                TimeSegment(
                    start_ms=pause["start_ms"] + pause_keep_ms,
                    end_ms=pause["end_ms"] - pause_keep_ms,
                    reason=f"pause: {pause['duration_ms']}ms",
                )
            )

    return CutPlan.build(source_ref, segments)


def run_analyze_fillers(workspace: Any, config: Any, console=None) -> dict[str, Any]:
    """Stage 2: write the filler analysis and cut plan artifacts.

    Args:
        workspace: Workspace instance
        config: CaptionCutConfig instance
        console: Optional rich console for output

    Returns:
        Dict with analysis summary
    """
    from captioncut.io import read_artifact, write_json
    from captioncut.transcribe.engine import words_from_transcription

    transcription = read_artifact(workspace.transcription_path, produced_by="transcribe")
    source_ref = transcription.get("source_ref", "")
    words = words_from_transcription(transcription)

    analysis = analyze_fillers(
        words,
        compile_patterns(config.filler_patterns),
        pause_detect_ms=config.pause_detect_ms,
        pause_auto_remove_ms=config.pause_auto_remove_ms,
    )

    write_json(
        workspace.filler_analysis_path,
        {
            "source_ref": source_ref,
            "filler_words": analysis["filler_words"],
            "pauses": analysis["pauses"],
            "total_fillers": len(analysis["filler_words"]),
            "total_pauses": len(analysis["pauses"]),
        },
    )

    plan = build_cut_plan(
        source_ref,
        analysis["filler_words"],
        analysis["pauses"],
        pause_keep_ms=config.pause_keep_ms,
    )
    write_json(workspace.cuts_path, plan.to_dict())

    if console:
        console.print(
            f"[green]✓[/green] Found {len(analysis['filler_words'])} fillers, "
            f"{len(analysis['pauses'])} pauses; {len(plan)} segments to remove "
            f"({plan.total_removed_ms / 1000:.2f}s)"
        )
        console.print(
            f"[dim]  Review {workspace.filler_analysis_path.name} and "
            f"{workspace.cuts_path.name}, then run: captioncut continue[/dim]"
        )

    return {
        "fillers": len(analysis["filler_words"]),
        "pauses": len(analysis["pauses"]),
        "segments": len(plan),
        "total_removed_ms": plan.total_removed_ms,
    }

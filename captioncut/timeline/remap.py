"""
captioncut.timeline.remap - Original-to-remapped timestamp math.

All functions are pure: they depend only on their arguments and on a
CutPlan whose segments are sorted and non-overlapping.
"""

from __future__ import annotations

from captioncut.exceptions import TimelineError
from captioncut.timeline.segments import CutPlan


def remap(ms: int, plan: CutPlan) -> int:
    """Map an original-timeline timestamp onto the post-cut timeline.

    Segments wholly before ``ms`` shift it back by their full duration; a
    segment straddling ``ms`` shifts it back by the part already elapsed,
    so every timestamp inside a removed span collapses onto the cut point.

    Args:
        ms: Timestamp on the original timeline (>= 0)
        plan: Normalized cut plan

    Returns:
        Timestamp on the remapped timeline
    """
    adjustment = 0
    for seg in plan.segments:
        if seg.start_ms >= ms:
            break
        if seg.end_ms <= ms:
            adjustment += seg.duration_ms
        else:
            adjustment += ms - seg.start_ms
    return ms - adjustment


def is_excised(start_ms: int, end_ms: int, plan: CutPlan) -> bool:
    """Check whether [start_ms, end_ms) intersects any removed segment."""
    for seg in plan.segments:
        if seg.start_ms >= end_ms:
            break
        if seg.end_ms > start_ms:
            return True
    return False


def keep_spans(plan: CutPlan, duration_ms: int) -> list[tuple[int, int]]:
    """Return the complement of the removed segments within [0, duration_ms].

    Args:
        plan: Normalized cut plan
        duration_ms: Length of the original recording

    Returns:
        (start_ms, end_ms) spans to keep, in original order
    """
    spans: list[tuple[int, int]] = []
    position = 0
    for seg in plan.segments:
        if seg.start_ms >= duration_ms:
            break
        if seg.start_ms > position:
            spans.append((position, seg.start_ms))
        position = max(position, seg.end_ms)

    if position < duration_ms:
        spans.append((position, duration_ms))
    return spans


def remapped_duration(plan: CutPlan, duration_ms: int) -> int:
    """Length of the recording after cuts.

    Raises:
        TimelineError: If the plan removes more than the recording holds
    """
    remaining = duration_ms - plan.total_removed_ms
    if remaining < 0:
        raise TimelineError(
            f"Cuts remove {plan.total_removed_ms}ms from a {duration_ms}ms recording"
        )
    return remaining

"""
captioncut.timeline.segments - Removal spans and cut plan normalization.

A CutPlan is the sorted, non-overlapping set of spans to remove from the
original recording. Every plan is built through merge_segments, including
plans read back from disk after an operator edited them by hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

REASON_SEPARATOR = "; "


@dataclass(frozen=True)
class TimeSegment:
    """Half-open span [start_ms, end_ms) on the original timeline."""

    start_ms: int
    end_ms: int
    reason: str = ""

    def __post_init__(self) -> None:
        if self.start_ms < 0:
            raise ValueError(f"Segment start must be >= 0, got {self.start_ms}")
        if self.start_ms >= self.end_ms:
            raise ValueError(
                f"Segment start must be before end, got {self.start_ms} >= {self.end_ms}"
            )

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def to_dict(self) -> dict[str, Any]:
        return {"start_ms": self.start_ms, "end_ms": self.end_ms, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeSegment:
        return cls(
            start_ms=int(data["start_ms"]),
            end_ms=int(data["end_ms"]),
            reason=data.get("reason", ""),
        )


def merge_segments(segments: Iterable[TimeSegment]) -> list[TimeSegment]:
    """Sort segments and merge any that overlap or touch.

    Args:
        segments: Removal spans in any order

    Returns:
        New list sorted by start, with no two segments overlapping or touching.
        Merged segments take the maximum end and join their reasons.
    """
    ordered = sorted(segments, key=lambda s: (s.start_ms, s.end_ms))
    if not ordered:
        return []

    merged: list[TimeSegment] = []
    start, end, reasons = ordered[0].start_ms, ordered[0].end_ms, [ordered[0].reason]

    for seg in ordered[1:]:
        if seg.start_ms <= end:
            end = max(end, seg.end_ms)
            reasons.append(seg.reason)
        else:
            merged.append(TimeSegment(start, end, _join_reasons(reasons)))
            start, end, reasons = seg.start_ms, seg.end_ms, [seg.reason]

    merged.append(TimeSegment(start, end, _join_reasons(reasons)))
    return merged


def _join_reasons(reasons: list[str]) -> str:
    return REASON_SEPARATOR.join(r for r in reasons if r)


@dataclass(frozen=True)
class CutPlan:
    """Normalized set of spans removed from a recording.

    Construct with CutPlan.build() so the segments are merged; the
    constructor trusts its input.
    """

    source_ref: str
    segments: tuple[TimeSegment, ...] = ()

    @classmethod
    def build(cls, source_ref: str, segments: Iterable[TimeSegment]) -> CutPlan:
        return cls(source_ref=source_ref, segments=tuple(merge_segments(segments)))

    @classmethod
    def empty(cls, source_ref: str = "") -> CutPlan:
        return cls(source_ref=source_ref)

    @property
    def total_removed_ms(self) -> int:
        return sum(seg.duration_ms for seg in self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self):
        return iter(self.segments)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_ref": self.source_ref,
            "segments": [seg.to_dict() for seg in self.segments],
            "total_removed_ms": self.total_removed_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CutPlan:
        """Rebuild a plan from its artifact form.

        The stored total is ignored and segments are re-merged, since the
        cut artifact is open to manual editing between stages.
        """
        segments = [TimeSegment.from_dict(s) for s in data.get("segments", [])]
        return cls.build(data.get("source_ref", ""), segments)


def load_cut_plan(path) -> CutPlan:
    """Read and re-normalize the cut plan artifact.

    Raises:
        ArtifactError: If the file is missing, malformed, or holds an
            invalid segment
    """
    from captioncut.exceptions import ArtifactError
    from captioncut.io import read_artifact

    data = read_artifact(path, produced_by="analyze-fillers")
    try:
        return CutPlan.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ArtifactError(path, f"Invalid cut plan ({e})") from e

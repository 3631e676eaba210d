"""
captioncut.timeline - Cut plans and original-to-remapped time math.

Segment merging, timestamp remapping, and kept-span derivation for
recordings with excised spans.
"""

from __future__ import annotations

from captioncut.timeline.remap import (
    is_excised,
    keep_spans,
    remap,
    remapped_duration,
)
from captioncut.timeline.segments import CutPlan, TimeSegment, load_cut_plan, merge_segments

__all__ = [
    "CutPlan",
    "TimeSegment",
    "is_excised",
    "keep_spans",
    "load_cut_plan",
    "merge_segments",
    "remap",
    "remapped_duration",
]

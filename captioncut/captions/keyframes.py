"""
captioncut.captions.keyframes - Caption anchor animation.

Keyframes may arrive in any order and may repeat a frame; everything here
works on a sorted, de-duplicated copy.
"""

from __future__ import annotations

from typing import Iterable

from captioncut.captions.models import Position, PositionKeyframe

DEFAULT_POSITION = Position(x=50.0, y=80.0)


def normalize_keyframes(keyframes: Iterable[PositionKeyframe]) -> list[PositionKeyframe]:
    """Sort keyframes by frame, keeping the last one written for each frame."""
    by_frame: dict[int, PositionKeyframe] = {}
    for kf in keyframes:
        by_frame[kf.frame] = kf
    return [by_frame[frame] for frame in sorted(by_frame)]


def position_at(
    frame: float,
    keyframes: Iterable[PositionKeyframe] | None,
    fallback: Position | None = None,
) -> Position:
    """Compute the caption anchor at ``frame``.

    Clamps to the first/last keyframe outside their range and linearly
    interpolates x and y between the bracketing pair otherwise.

    Args:
        frame: Frame on the remapped timeline
        keyframes: Authored keyframes, any order
        fallback: Static position used when there are no keyframes

    Returns:
        Interpolated position
    """
    ordered = normalize_keyframes(keyframes or [])
    if not ordered:
        return fallback if fallback is not None else DEFAULT_POSITION

    first, last = ordered[0], ordered[-1]
    if frame <= first.frame:
        return first.position
    if frame >= last.frame:
        return last.position

    for a, b in zip(ordered, ordered[1:]):
        if a.frame <= frame <= b.frame:
            t = (frame - a.frame) / (b.frame - a.frame)
            return Position(
                x=a.x + (b.x - a.x) * t,
                y=a.y + (b.y - a.y) * t,
            )

    return last.position


def set_keyframe(
    keyframes: Iterable[PositionKeyframe],
    frame: int,
    x: float,
    y: float,
) -> list[PositionKeyframe]:
    """Return keyframes with one at ``frame``, replacing any existing one there."""
    new = PositionKeyframe(frame=frame, x=x, y=y)
    kept = [kf for kf in keyframes if kf.frame != frame]
    return normalize_keyframes([*kept, new])


def remove_keyframe(keyframes: Iterable[PositionKeyframe], frame: int) -> list[PositionKeyframe]:
    """Return keyframes without the one at ``frame``."""
    return normalize_keyframes(kf for kf in keyframes if kf.frame != frame)

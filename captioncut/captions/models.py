"""
captioncut.captions.models - Caption timing data structures.

The caption timing artifact stores pages as the authoritative list of
words. The flat word list is derived from the pages on every access and
written to disk only as a convenience for readers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_PAGE_TOLERANCE_FRAMES = 5


@dataclass(frozen=True)
class Position:
    """Caption anchor as percentages: x=0 left, x=100 right, y=0 top, y=100 bottom."""

    x: float
    y: float

    def __post_init__(self) -> None:
        for name, value in (("x", self.x), ("y", self.y)):
            if not 0 <= value <= 100:
                raise ValueError(f"Position {name} must be within [0, 100], got {value}")

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Position:
        return cls(x=float(data["x"]), y=float(data["y"]))


@dataclass(frozen=True)
class PositionKeyframe:
    frame: int
    x: float
    y: float

    def __post_init__(self) -> None:
        if self.frame < 0:
            raise ValueError(f"Keyframe frame must be >= 0, got {self.frame}")
        Position(self.x, self.y)

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        return {"frame": self.frame, "x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PositionKeyframe:
        return cls(frame=int(data["frame"]), x=float(data["x"]), y=float(data["y"]))


@dataclass(frozen=True)
class Word:
    """A transcribed word on the original timeline."""

    text: str
    original_start_ms: int
    original_end_ms: int
    original_index: int


@dataclass
class CaptionWord:
    """A kept word placed on the remapped timeline."""

    text: str
    original_index: int
    original_start_ms: int
    original_end_ms: int
    adjusted_start_ms: int
    adjusted_end_ms: int
    start_frame: int
    end_frame: int
    is_emphasis: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "original_index": self.original_index,
            "original_start_ms": self.original_start_ms,
            "original_end_ms": self.original_end_ms,
            "adjusted_start_ms": self.adjusted_start_ms,
            "adjusted_end_ms": self.adjusted_end_ms,
            "start_frame": self.start_frame,
            "end_frame": self.end_frame,
            "is_emphasis": self.is_emphasis,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CaptionWord:
        return cls(
            text=data["text"],
            original_index=int(data["original_index"]),
            original_start_ms=int(data["original_start_ms"]),
            original_end_ms=int(data["original_end_ms"]),
            adjusted_start_ms=int(data["adjusted_start_ms"]),
            adjusted_end_ms=int(data["adjusted_end_ms"]),
            start_frame=int(data["start_frame"]),
            end_frame=int(data["end_frame"]),
            is_emphasis=bool(data.get("is_emphasis", False)),
        )


@dataclass
class CaptionPage:
    """Consecutive caption words shown together. Frame bounds come from the words."""

    words: list[CaptionWord]

    def __post_init__(self) -> None:
        if not self.words:
            raise ValueError("A caption page needs at least one word")

    @property
    def start_frame(self) -> int:
        return self.words[0].start_frame

    @property
    def end_frame(self) -> int:
        return self.words[-1].end_frame

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame <= self.end_frame

    def to_dict(self) -> dict[str, Any]:
        return {
            "words": [w.to_dict() for w in self.words],
            "start_frame": self.start_frame,
            "end_frame": self.end_frame,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CaptionPage:
        return cls(words=[CaptionWord.from_dict(w) for w in data.get("words", [])])


@dataclass
class CaptionTimingData:
    """Root caption artifact."""

    source_ref: str
    fps: int
    total_frames: int
    duration_ms: int
    pages: list[CaptionPage] = field(default_factory=list)
    position: Position | None = None
    position_keyframes: list[PositionKeyframe] = field(default_factory=list)
    page_tolerance_frames: int = DEFAULT_PAGE_TOLERANCE_FRAMES

    @property
    def all_words(self) -> list[CaptionWord]:
        return [word for page in self.pages for word in page.words]

    def find_word(self, original_index: int) -> CaptionWord | None:
        for page in self.pages:
            for word in page.words:
                if word.original_index == original_index:
                    return word
        return None

    @property
    def emphasis_indices(self) -> list[int]:
        return [w.original_index for w in self.all_words if w.is_emphasis]

    def page_at(self, frame: int) -> CaptionPage | None:
        """Page on screen at ``frame``, using this artifact's tolerance."""
        from captioncut.captions.paginate import page_at

        return page_at(self.pages, frame, self.page_tolerance_frames)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "source_ref": self.source_ref,
            "fps": self.fps,
            "total_frames": self.total_frames,
            "duration_ms": self.duration_ms,
            "pages": [page.to_dict() for page in self.pages],
            "all_words": [word.to_dict() for word in self.all_words],
            "position_keyframes": [kf.to_dict() for kf in self.position_keyframes],
            "page_tolerance_frames": self.page_tolerance_frames,
        }
        if self.position is not None:
            data["position"] = self.position.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CaptionTimingData:
        """Load from artifact form. The stored all_words list is not read."""
        position = data.get("position")
        return cls(
            source_ref=data.get("source_ref", ""),
            fps=int(data["fps"]),
            total_frames=int(data["total_frames"]),
            duration_ms=int(data["duration_ms"]),
            pages=[CaptionPage.from_dict(p) for p in data.get("pages", []) if p.get("words")],
            position=Position.from_dict(position) if position else None,
            position_keyframes=[
                PositionKeyframe.from_dict(k) for k in data.get("position_keyframes") or []
            ],
            page_tolerance_frames=int(
                data.get("page_tolerance_frames", DEFAULT_PAGE_TOLERANCE_FRAMES)
            ),
        )

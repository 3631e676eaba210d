"""
captioncut.captions.paginate - Caption pages and frame math.

Groups caption words into fixed-size pages and resolves which page is on
screen at a given frame.
"""

from __future__ import annotations

from typing import Sequence

from captioncut.captions.models import DEFAULT_PAGE_TOLERANCE_FRAMES, CaptionPage, CaptionWord
from captioncut.utils import round_half_up

DEFAULT_WORDS_PER_PAGE = 4


def ms_to_frame(ms: float, fps: float) -> int:
    """Convert milliseconds to the nearest frame number.

    Args:
        ms: Time in milliseconds
        fps: Frames per second

    Returns:
        Frame number, halves rounded up
    """
    return round_half_up(ms / 1000 * fps)


def paginate(
    words: Sequence[CaptionWord],
    words_per_page: int = DEFAULT_WORDS_PER_PAGE,
) -> list[CaptionPage]:
    """Split ordered caption words into consecutive pages.

    Args:
        words: Caption words in playback order
        words_per_page: Maximum words per page

    Returns:
        Pages of ``words_per_page`` words; the last page may be shorter
    """
    if words_per_page < 1:
        raise ValueError(f"words_per_page must be >= 1, got {words_per_page}")

    return [
        CaptionPage(words=list(words[i : i + words_per_page]))
        for i in range(0, len(words), words_per_page)
    ]


def page_at(
    pages: Sequence[CaptionPage],
    frame: int,
    tolerance: int = DEFAULT_PAGE_TOLERANCE_FRAMES,
) -> CaptionPage | None:
    """Find the page on screen at ``frame``.

    A page stays on screen for up to ``tolerance`` frames past its end
    frame, which covers frames between pages and encoder rounding at
    the tail.

    Args:
        pages: Pages in playback order
        frame: Frame on the remapped timeline
        tolerance: Frames a page lingers after its end frame

    Returns:
        The current page, or None when nothing should be shown
    """
    for page in pages:
        if page.contains(frame):
            return page

    for page in reversed(pages):
        if frame > page.end_frame:
            if frame <= page.end_frame + tolerance:
                return page
            break

    return None

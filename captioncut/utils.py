"""
captioncut.utils - Shared utility functions.

Contains common functions used across multiple modules to avoid duplication.
"""

from __future__ import annotations

import math
from pathlib import Path


def format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS or MM:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (HH:MM:SS if >= 1 hour, otherwise MM:SS)
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_bytes(size: float) -> str:
    """Format a byte count in human-readable form."""
    if size == 0:
        return "0 B"
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_size(path: Path) -> str:
    """Format file size in human-readable format."""
    if not path.exists():
        return "-"
    return format_bytes(path.stat().st_size)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's round() uses banker's rounding, which would shift frame and
    millisecond boundaries on exact halves.
    """
    return int(math.floor(value + 0.5))


def seconds_to_ms(seconds: float) -> int:
    """Convert seconds from the transcription service to integer milliseconds."""
    return round_half_up(seconds * 1000)

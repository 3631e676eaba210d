"""
captioncut.extract.audio - FFmpeg audio extraction.

Extracts a 16kHz mono WAV from a recording for transcription.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

from captioncut.exceptions import ExtractionError


def extract_audio(
    source_path: Path,
    output_path: Path,
    console=None,
) -> dict[str, Any]:
    """Extract audio from a video file using FFmpeg.

    Args:
        source_path: Path to source video file
        output_path: Output path for 16kHz mono WAV
        console: Optional rich console for output

    Returns:
        Dict with extraction results

    Raises:
        ExtractionError: If FFmpeg fails
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = [
        "ffmpeg",
        "-y",
        "-i",
        str(source_path),
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        "16000",
        "-ac",
        "1",
        str(output_path),
    ]

    if console:
        console.print("[dim]  Extracting 16kHz audio...[/dim]")

    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise ExtractionError(f"Could not run FFmpeg: {e}") from e

    if proc.returncode != 0:
        raise ExtractionError(f"FFmpeg audio extraction failed: {proc.stderr}")

    return {
        "source": str(source_path),
        "audio": str(output_path),
        "audio_size": output_path.stat().st_size if output_path.exists() else 0,
    }

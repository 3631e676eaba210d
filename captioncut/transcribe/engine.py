"""
captioncut.transcribe.engine - Transcription through litellm.

Sends the extracted audio to a Whisper-compatible transcription endpoint
and stores word-level timestamps as the transcription artifact.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from captioncut.captions.models import Word
from captioncut.exceptions import TranscriptionError
from captioncut.utils import format_duration, seconds_to_ms


def transcribe_audio(
    audio_path: Path,
    model: str = "whisper-1",
    console=None,
) -> dict[str, Any]:
    """Transcribe an audio file with word timestamps.

    Args:
        audio_path: Path to audio file (16kHz WAV recommended)
        model: Transcription model name as understood by litellm
        console: Optional rich console for output

    Returns:
        Parsed transcription dict (language, duration_seconds, text, words)

    Raises:
        TranscriptionError: If the service call fails
    """
    try:
        import litellm
    except ImportError as e:
        raise TranscriptionError(
            "litellm not installed. Install with: pip install litellm"
        ) from e

    litellm.telemetry = False

    if console:
        console.print(f"[dim]  Sending audio to {model}...[/dim]")

    try:
        with open(audio_path, "rb") as audio_file:
            result = litellm.transcription(
                model=model,
                file=audio_file,
                response_format="verbose_json",
                timestamp_granularities=["word", "segment"],
            )
    except Exception as e:
        raise TranscriptionError(f"Transcription failed: {e}") from e

    return _parse_transcription_result(_as_dict(result))


def _as_dict(result: Any) -> dict[str, Any]:
    if isinstance(result, dict):
        return result
    for attr in ("model_dump", "dict"):
        method = getattr(result, attr, None)
        if callable(method):
            return method()
    return dict(vars(result))


def _parse_transcription_result(result: dict[str, Any]) -> dict[str, Any]:
    """Parse a verbose Whisper response into our transcription format."""
    words = []
    for w in result.get("words") or []:
        if not isinstance(w, dict):
            w = _as_dict(w)
        words.append(
            {
                "text": w.get("word", w.get("text", "")).strip(),
                "start_seconds": float(w.get("start", 0)),
                "end_seconds": float(w.get("end", 0)),
            }
        )

    duration = result.get("duration")
    if duration is None:
        duration = words[-1]["end_seconds"] if words else 0.0

    return {
        "language": result.get("language") or "unknown",
        "duration_seconds": float(duration),
        "text": (result.get("text") or "").strip(),
        "words": words,
        "transcribed_at": datetime.now().isoformat(timespec="seconds"),
    }


def words_from_transcription(transcription: dict[str, Any]) -> list[Word]:
    """Read the artifact's words as Word records on the original timeline.

    ``original_index`` is the word's position in the artifact's word list.
    """
    return [
        Word(
            text=w.get("text", ""),
            original_start_ms=seconds_to_ms(w.get("start_seconds", 0)),
            original_end_ms=seconds_to_ms(w.get("end_seconds", 0)),
            original_index=i,
        )
        for i, w in enumerate(transcription.get("words", []))
    ]


def run_transcribe(workspace: Any, config: Any, console=None) -> dict[str, Any]:
    """Stage 1: find the recording, extract audio, transcribe, write the artifact.

    Args:
        workspace: Workspace instance
        config: CaptionCutConfig instance
        console: Optional rich console for output

    Returns:
        Dict with transcription summary
    """
    from captioncut.extract.audio import extract_audio
    from captioncut.io import write_json
    from captioncut.validation import find_input_video

    video_path = find_input_video(workspace.input_dir)
    video_name = video_path.stem

    if console:
        console.print(f"[cyan]Found input video: {video_path.name}[/cyan]")

    audio_path = workspace.temp_dir / f"{video_name}.wav"
    extract_audio(video_path, audio_path, console=console)

    transcription = transcribe_audio(audio_path, model=config.transcription_model, console=console)

    artifact = {
        "source_ref": str(video_path),
        "video_name": video_name,
        **transcription,
    }
    write_json(workspace.transcription_path, artifact)

    if console:
        console.print(
            f"[green]✓[/green] Transcribed {len(artifact['words'])} words "
            f"({format_duration(artifact['duration_seconds'])})"
        )

    return {
        "source_ref": artifact["source_ref"],
        "words": len(artifact["words"]),
        "duration_seconds": artifact["duration_seconds"],
    }

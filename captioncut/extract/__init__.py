"""
captioncut.extract - Audio extraction from the input recording.

Produces the 16kHz mono WAV sent to the transcription service.
"""

from __future__ import annotations

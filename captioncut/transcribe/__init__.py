"""
captioncut.transcribe - Speech-to-text with word timestamps.

Pipeline Stage 1: extract audio from the recording and transcribe it.
"""

from __future__ import annotations

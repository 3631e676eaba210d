"""
captioncut.analyze - Filler word and pause detection.

Pipeline Stage 2: find removable fillers and long pauses in the
transcription and turn them into the cut plan.
"""

from __future__ import annotations

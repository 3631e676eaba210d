"""
captioncut.pipeline - Stage registry, run orchestration, progress fan-out.

Runs the fixed stage sequence (transcribe through cut-video), one child
process per stage, and broadcasts each step's progress to subscribers.
"""

from __future__ import annotations

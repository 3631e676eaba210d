"""
captioncut.llm - LLM-backed emphasis detection.

Pipeline Stage 3: ask an LLM which of the words left after cuts deserve
visual emphasis, then reconcile its suggestions with the transcript.
"""

from __future__ import annotations

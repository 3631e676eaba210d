"""
captioncut.captions - Caption timing data, pagination, and anchor positions.

Pipeline Stage 4 output: the caption timing artifact consumed by the
presentation layer and edited in place through the save channel.
"""

from __future__ import annotations

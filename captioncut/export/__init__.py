"""
captioncut.export - Cut video rendering and media publishing.

Pipeline Stage 5: apply the cut plan to the recording with FFmpeg, then
publish the result where the caption preview can load it.
"""

from __future__ import annotations

"""
CaptionCut - Speech recording to captioned short-form video.

Takes a raw speech recording and produces a tightened, caption-annotated
video through a five-stage pipeline: transcription → filler and pause
analysis → emphasis detection → caption timing → cut.
"""

__version__ = "0.1.0"

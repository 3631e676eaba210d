"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

# Use litellm's bundled model cost map instead of fetching it over the network at import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from captioncut.config import CaptionCutConfig
from captioncut.project import Workspace


@pytest.fixture
def tmp_workspace(tmp_path: Path) -> Workspace:
    """Create a temporary workspace with stores and default config."""
    workspace = Workspace(tmp_path / "workspace")
    workspace.create()
    return workspace


@pytest.fixture
def config() -> CaptionCutConfig:
    return CaptionCutConfig()


@pytest.fixture
def sample_transcription() -> dict:
    """Seven words: one filler ("um") and one 1.2s pause after "amazing."."""
    return {
        "source_ref": "/videos/talk.mp4",
        "video_name": "talk",
        "language": "en",
        "duration_seconds": 4.5,
        "text": "So um this is amazing. Really amazing",
        "words": [
            {"text": "So", "start_seconds": 0.0, "end_seconds": 0.3},
            {"text": "um", "start_seconds": 0.4, "end_seconds": 0.7},
            {"text": "this", "start_seconds": 0.8, "end_seconds": 1.0},
            {"text": "is", "start_seconds": 1.0, "end_seconds": 1.2},
            {"text": "amazing.", "start_seconds": 1.3, "end_seconds": 1.8},
            {"text": "Really", "start_seconds": 3.0, "end_seconds": 3.4},
            {"text": "amazing", "start_seconds": 3.5, "end_seconds": 4.0},
        ],
        "transcribed_at": "2026-10-19T10:00:00",
    }


@pytest.fixture
def sample_cut_plan() -> dict:
    """Cut plan matching sample_transcription with default thresholds."""
    return {
        "source_ref": "/videos/talk.mp4",
        "segments": [
            {"start_ms": 400, "end_ms": 700, "reason": 'filler: "um"'},
            {"start_ms": 2000, "end_ms": 2800, "reason": "pause: 1200ms"},
        ],
        "total_removed_ms": 1100,
    }


@pytest.fixture
def sample_emphasis() -> dict:
    return {
        "source_ref": "/videos/talk.mp4",
        "emphasis_words": [
            {"word": "amazing.", "original_index": 4, "reason": "emotional impact"},
            {"word": "Really", "original_index": 5, "reason": "stress"},
        ],
        "total_words": 6,
        "emphasis_percentage": 33.33,
    }


def _write_artifact(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)


@pytest.fixture
def populated_workspace(
    tmp_workspace: Workspace,
    sample_transcription: dict,
    sample_cut_plan: dict,
    sample_emphasis: dict,
) -> Workspace:
    """Workspace with a recording and the first four artifacts."""
    (tmp_workspace.input_dir / "talk.mp4").write_bytes(b"fake video")
    _write_artifact(tmp_workspace.transcription_path, sample_transcription)
    _write_artifact(tmp_workspace.cuts_path, sample_cut_plan)
    _write_artifact(tmp_workspace.emphasis_path, sample_emphasis)
    return tmp_workspace


@pytest.fixture
def write_artifact():
    """Helper for writing a JSON artifact from a test."""
    return _write_artifact

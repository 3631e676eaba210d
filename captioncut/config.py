"""
captioncut.config - YAML config loading and validation.

Handles loading captioncut.yaml from the workspace root, applying defaults,
and validating all parameters.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from captioncut.exceptions import ConfigError

CONFIG_FILENAME = "captioncut.yaml"

DEFAULT_FILLER_PATTERNS = [
    r"^u+[hm]+$",
    r"^e+r+$",
    r"^a+h+$",
    r"^h+m+$",
]


class AnchorPosition(BaseModel):
    """Caption anchor as a percentage of frame width/height."""

    x: float = Field(default=50.0, ge=0.0, le=100.0)
    y: float = Field(default=80.0, ge=0.0, le=100.0)


class CaptionCutConfig(BaseModel):
    """Resolved configuration for a CaptionCut workspace."""

    fps: int = Field(default=30, gt=0)
    width: int = Field(default=1080, gt=0)
    height: int = Field(default=1920, gt=0)

    words_per_page: int = Field(default=4, gt=0)
    page_tolerance_frames: int = Field(default=5, ge=0)
    default_position: AnchorPosition = Field(default_factory=AnchorPosition)

    pause_detect_ms: int = Field(default=500, gt=0)
    pause_auto_remove_ms: int = Field(default=1000, gt=0)
    pause_keep_ms: int = Field(default=200, ge=0)
    filler_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_FILLER_PATTERNS))

    transcription_model: str = "whisper-1"
    llm_backend: str = "openai"
    llm_model: str = "gpt-4o"
    emphasis_min_percent: float = Field(default=15.0, ge=0.0, le=100.0)
    emphasis_max_percent: float = Field(default=25.0, ge=0.0, le=100.0)

    video_codec: str = "libx264"
    crf: int = Field(default=18, ge=0, le=51)
    preset: str = "medium"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    @field_validator("llm_backend")
    @classmethod
    def validate_llm_backend(cls, v: str) -> str:
        valid = {"ollama", "lmstudio", "claude", "openai"}
        if v not in valid:
            raise ValueError(f"llm_backend must be one of: {valid}")
        return v

    @field_validator("filler_patterns")
    @classmethod
    def validate_filler_patterns(cls, v: list[str]) -> list[str]:
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid filler pattern {pattern!r}: {e}") from e
        return v

    @model_validator(mode="after")
    def validate_ranges(self) -> CaptionCutConfig:
        if self.pause_auto_remove_ms < self.pause_detect_ms:
            raise ValueError("pause_auto_remove_ms must be >= pause_detect_ms")
        if self.emphasis_max_percent < self.emphasis_min_percent:
            raise ValueError("emphasis_max_percent must be >= emphasis_min_percent")
        return self


def load_config(workspace_dir: Path) -> CaptionCutConfig:
    """Load and validate configuration from a workspace directory."""
    config_file = workspace_dir / CONFIG_FILENAME
    if not config_file.exists():
        raise FileNotFoundError(f"No {CONFIG_FILENAME} found in {workspace_dir}")

    with open(config_file) as f:
        raw_config = yaml.safe_load(f) or {}

    try:
        return CaptionCutConfig(**raw_config)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid {CONFIG_FILENAME}: {e}") from e


def create_default_config() -> dict[str, Any]:
    """Create a default config for a new workspace."""
    return CaptionCutConfig().model_dump()


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)

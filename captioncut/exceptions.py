"""
captioncut.exceptions - Custom exception classes.

All CaptionCut-specific exceptions inherit from CaptionCutError.
"""


class CaptionCutError(Exception):
    """Base exception for all CaptionCut errors."""

    pass


class ConfigError(CaptionCutError):
    """Configuration loading or validation error."""

    pass


class ValidationError(CaptionCutError):
    """Invalid input: bad project name, empty input store, bad edit values."""

    pass


class ArtifactError(ValidationError):
    """A pipeline artifact is missing or contains malformed JSON."""

    def __init__(self, path, message: str, produced_by: str | None = None):
        self.path = path
        self.produced_by = produced_by
        hint = f" Run the '{produced_by}' stage first." if produced_by else ""
        super().__init__(f"{message}: {path}.{hint}")


class ProjectStateError(CaptionCutError):
    """Lifecycle operation conflicts with the current project state."""

    pass


class PipelineBusyError(CaptionCutError):
    """A pipeline run is already active."""

    pass


class StageError(CaptionCutError):
    """A pipeline stage failed."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class TimelineError(CaptionCutError):
    """Computed timeline is inconsistent (e.g. nothing left after cuts)."""

    pass


class ExtractionError(CaptionCutError):
    """Audio extraction error."""

    pass


class TranscriptionError(CaptionCutError):
    """Transcription service error."""

    pass


class MediaError(CaptionCutError):
    """FFmpeg cut/re-encode error."""

    pass


class LLMError(CaptionCutError):
    """LLM backend or prompt error."""

    pass


class LLMResponseError(LLMError):
    """LLM returned malformed or unexpected response."""

    pass


class EmphasisError(LLMError):
    """Emphasis detection produced no usable result."""

    pass


class DependencyError(CaptionCutError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")

"""Error taxonomy for the agent pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""


class ConfigurationError(PipelineError):
    """Raised for missing credentials or an invalid stage registry."""


class GenerationError(PipelineError):
    """Raised when a call to the text-generation service fails."""


class GenerationCancelled(GenerationError):
    """Raised when the cancellation handle is set during generation."""


class StageError(PipelineError):
    """A stage failed; the run is aborted and no result is produced."""

    def __init__(self, stage_name: str, error: BaseException) -> None:
        self.stage_name = stage_name
        self.error = error
        super().__init__(f"[{stage_name}] failed: {error}")

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, GenerationCancelled)


class ArtifactWriteError(PipelineError):
    """Raised when saving pipeline output to disk fails."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{message}: {path}")

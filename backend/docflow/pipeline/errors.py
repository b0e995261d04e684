"""
Domain-specific exception hierarchy for the document pipeline.

All pipeline exceptions inherit from PipelineError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (step name, execution ID, etc.) for logging/debugging.

Not everything that looks like a conflict is an error here: a duplicate
artifact is the `already_existed` store outcome and a duplicate envelope is
the `already_sent` dispatch outcome.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        execution_id: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.execution_id = execution_id
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)


class StepExecutionError(PipelineError):
    """A step failed during execution."""
    pass


class NotFoundError(PipelineError):
    """Enrollment or course does not exist.  Fatal, never retried."""
    pass


# ── Rendering ─────────────────────────────────────────────


class RenderError(PipelineError):
    """The document could not be rendered.  Retryable up to a bound."""
    pass


class RenderTimeout(RenderError):
    """The renderer did not answer within the configured ceiling."""

    def __init__(self, message: str, *, timeout_seconds: float | None = None, **kwargs) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(message, **kwargs)


class RenderFailure(RenderError):
    """The renderer ran and reported failure (non-zero exit, non-2xx, bad template)."""
    pass


class RenderUnavailable(RenderError):
    """The renderer process/service could not be reached at all."""
    pass


# ── Storage ───────────────────────────────────────────────


class StorageError(PipelineError):
    """Artifact storage operation failed."""
    pass


class ArtifactNotFoundError(StorageError):
    """No artifact exists for the requested document key."""
    pass


# ── Dispatch ──────────────────────────────────────────────


class ProviderError(PipelineError):
    """The signature provider rejected or failed a request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, **kwargs)


class DispatchFailedError(PipelineError):
    """Envelope dispatch failed.  Requires an explicit re-enqueue."""
    pass


class DocumentPipelineFailed(PipelineError):
    """Raised by the task layer only when the caller asked for re-delivery."""
    pass

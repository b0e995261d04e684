"""
PipelineStep — abstract base class for all pipeline steps.

Every step of the document pipeline inherits from this class.
The engine calls execute() and records timing, logging, state transitions
and errors automatically.  Steps only need to implement the business logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from docflow.core.constants import DocumentStage, FailureStage, StepStatus
from docflow.pipeline.context import DocumentContext, StepResult
from docflow.pipeline.errors import StepExecutionError


class PipelineStep(ABC):
    """
    Base class for every pipeline step.

    Subclasses MUST implement:
        - name (str)               — unique identifier, e.g. "render_document"
        - description (str)        — human-readable label for logs
        - failure_stage            — stage reported when the step errors
        - execute(ctx)             — the actual business logic

    Subclasses MAY set/implement:
        - completes_to             — document stage reached after the step
        - retryable / retry_on     — which exceptions the engine retries
        - should_skip(ctx)         — return True to skip this step conditionally
        - skip_reaches_stage(ctx)  — whether a skip still counts as reaching completes_to
    """

    name: str = "unnamed_step"
    description: str = "No description"
    failure_stage: FailureStage = FailureStage.LOADING
    completes_to: DocumentStage | None = None
    retryable: bool = False
    max_retries: int = 3
    retry_on: tuple[type[BaseException], ...] = (StepExecutionError,)

    @abstractmethod
    async def execute(self, ctx: DocumentContext) -> StepResult:
        """
        Run the step's logic.  Must return a StepResult.

        Read from and write to `ctx` to pass data between steps.
        Raise a PipelineError subclass on failure.
        """
        ...

    async def should_skip(self, ctx: DocumentContext) -> bool:
        """Return True to skip this step.  Default: never skip."""
        return False

    def skip_reaches_stage(self, ctx: DocumentContext) -> bool:
        """True when a skip means the work was already done earlier."""
        return True

    # ─── Helpers available to all steps ────────────────

    def _success(
        self,
        started_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        """Build a successful StepResult with timing."""
        now = datetime.now(timezone.utc)
        duration_ms = int((now - started_at).total_seconds() * 1000)
        return StepResult(
            step_name=self.name,
            status=StepStatus.COMPLETED,
            started_at=started_at,
            completed_at=now,
            duration_ms=duration_ms,
            metadata=metadata or {},
        )

    def _failure(
        self,
        started_at: datetime,
        error: str,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        """Build a failed StepResult with timing and error message."""
        now = datetime.now(timezone.utc)
        duration_ms = int((now - started_at).total_seconds() * 1000)
        return StepResult(
            step_name=self.name,
            status=StepStatus.FAILED,
            started_at=started_at,
            completed_at=now,
            duration_ms=duration_ms,
            error=error,
            metadata=metadata or {},
        )

    def _now(self) -> datetime:
        """UTC-aware now."""
        return datetime.now(timezone.utc)

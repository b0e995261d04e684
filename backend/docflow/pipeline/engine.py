"""
PipelineOrchestrator — runs the document steps sequentially for one
(enrollment, kind).

    PENDING → RESOLVING → RENDERING → STORED → DISPATCHED → DONE
                      ↘ ERRORED(stage, reason) from any of them

Responsibilities:
    - Build the step sequence (load, resolve, render, store, dispatch)
    - Execute each step with timing, logging and error handling
    - Retry retryable steps with exponential backoff
    - Convert every failure into ERRORED(stage, reason); never raise
    - Write the run to the document_runs table
    - Return a complete PipelineResult
"""

from __future__ import annotations

import asyncio
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.core.config import settings
from docflow.core.constants import DocumentStage, StepStatus
from docflow.curriculum.catalog import PeriodCatalog, SqlPeriodCatalog
from docflow.documents.renderer import DocumentRenderer, build_renderer
from docflow.pipeline.context import DocumentContext, RunOptions, StepResult
from docflow.pipeline.db_persist import persist_document_run
from docflow.pipeline.errors import PipelineError
from docflow.pipeline.step import PipelineStep
from docflow.pipeline.steps.dispatch_envelope import DispatchEnvelopeStep
from docflow.pipeline.steps.load_enrollment import LoadEnrollmentStep
from docflow.pipeline.steps.render_document import RenderDocumentStep
from docflow.pipeline.steps.resolve_curriculum import ResolveCurriculumStep
from docflow.pipeline.steps.store_artifact import StoreArtifactStep
from docflow.signature.dispatcher import EnvelopeDispatcher
from docflow.signature.provider import build_provider_client
from docflow.storage.artifact_store import ArtifactStore


@dataclass
class PipelineResult:
    """Final outcome of one document run."""

    execution_id: str
    enrollment_id: int
    kind: str
    state: str                      # DocumentStage value
    errored_stage: str | None = None
    error: str | None = None
    fingerprint: str | None = None
    artifact: Any = None            # ArtifactRef
    store_outcome: str | None = None
    dispatch: Any = None            # DispatchOutcome
    content: bytes | None = None    # only kept for skip_store previews
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: int = 0
    steps_completed: int = 0
    total_steps: int = 0
    step_results: list[dict[str, Any]] = field(default_factory=list)

    @property
    def errored(self) -> bool:
        return self.state == DocumentStage.ERRORED

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe summary (no content), used as the task result."""
        return {
            "execution_id": self.execution_id,
            "enrollment_id": self.enrollment_id,
            "kind": self.kind,
            "state": str(self.state),
            "errored_stage": self.errored_stage,
            "error": self.error,
            "fingerprint": self.fingerprint,
            "artifact": self.artifact.to_dict() if self.artifact is not None else None,
            "store_outcome": str(self.store_outcome) if self.store_outcome else None,
            "dispatch": self.dispatch.to_dict() if self.dispatch is not None else None,
            "duration_ms": self.total_duration_ms,
            "steps_completed": self.steps_completed,
            "total_steps": self.total_steps,
        }


class PipelineOrchestrator:
    """
    Runs the document steps against a DocumentContext.

    Usage::

        orchestrator = PipelineOrchestrator(
            session_factory,
            renderer=build_renderer(),
            artifact_store=store,
            dispatcher=dispatcher,
            catalog=SqlPeriodCatalog(session_factory),
        )
        result = await orchestrator.run(101, "contract")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        renderer: DocumentRenderer,
        artifact_store: ArtifactStore,
        dispatcher: EnvelopeDispatcher,
        catalog: PeriodCatalog,
        max_render_attempts: int | None = None,
        backoff_seconds: float | None = None,
        persist_runs: bool = True,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.session_factory = session_factory
        self.renderer = renderer
        self.artifact_store = artifact_store
        self.dispatcher = dispatcher
        self.catalog = catalog
        self.max_render_attempts = max_render_attempts or settings.RENDER_MAX_ATTEMPTS
        self.backoff_seconds = (
            settings.RENDER_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self.persist_runs = persist_runs
        self._sleep = sleep
        self.logger = structlog.get_logger("pipeline.orchestrator")

    def build_steps(self) -> list[PipelineStep]:
        """The fixed step sequence for one document."""
        return [
            LoadEnrollmentStep(self.session_factory),
            ResolveCurriculumStep(self.catalog),
            RenderDocumentStep(
                self.renderer,
                self.artifact_store,
                max_retries=self.max_render_attempts,
            ),
            StoreArtifactStep(self.artifact_store),
            DispatchEnvelopeStep(self.dispatcher),
        ]

    async def run(
        self,
        enrollment_id: int,
        kind: str,
        *,
        force: bool = False,
        skip_store: bool = False,
        render_only: bool = False,
        task_id: str | None = None,
    ) -> PipelineResult:
        """Full run for one document.  Never raises for pipeline faults."""
        ctx = DocumentContext(
            enrollment_id=enrollment_id,
            kind=str(kind),
            options=RunOptions(force=force, skip_store=skip_store, render_only=render_only),
            task_id=task_id,
        )

        log = self.logger.bind(
            execution_id=ctx.execution_id,
            enrollment_id=enrollment_id,
            kind=ctx.kind,
        )
        log.info("Document pipeline started", **ctx.options.to_dict())

        result = await self.run_steps(ctx, self.build_steps())

        if result.errored:
            log.error(
                "Document errored",
                stage=result.errored_stage,
                reason=result.error,
                duration_ms=result.total_duration_ms,
            )
        else:
            log.info(
                "Document pipeline finished",
                state=result.state,
                store_outcome=result.store_outcome,
                dispatch=result.dispatch.status if result.dispatch is not None else None,
                duration_ms=result.total_duration_ms,
            )

        if self.persist_runs and not ctx.options.skip_store:
            await persist_document_run(self.session_factory, ctx, result)

        return result

    async def run_steps(
        self,
        ctx: DocumentContext,
        steps: list[PipelineStep],
    ) -> PipelineResult:
        """
        Execute an ordered list of steps against a context.

        Can be called directly with a custom step list in tests.
        """
        started_at = datetime.now(timezone.utc)
        ctx.total_steps = len(steps)

        log = self.logger.bind(
            execution_id=ctx.execution_id,
            enrollment_id=ctx.enrollment_id,
            kind=ctx.kind,
            total_steps=len(steps),
        )

        steps_completed = 0

        for index, step in enumerate(steps):
            step_number = index + 1

            step_log = log.bind(
                step_name=step.name,
                step_index=step_number,
            )

            # ── Check skip condition ──────────────────
            try:
                if await step.should_skip(ctx):
                    step_log.info("Step skipped")
                    now = datetime.now(timezone.utc)
                    ctx.step_results.append(StepResult(
                        step_name=step.name,
                        status=StepStatus.SKIPPED,
                        started_at=now,
                        completed_at=now,
                    ))
                    if step.skip_reaches_stage(ctx):
                        self._advance(ctx, step, step_log)
                    steps_completed += 1
                    continue
            except Exception as exc:
                step_log.warning("should_skip raised, running step anyway", error=str(exc))

            # ── Execute step (with retry) ─────────────
            step_log.info(f"Step {step_number}/{len(steps)}: {step.description}")

            result = await self._execute_with_retry(step, ctx, step_log)
            ctx.step_results.append(result)

            if result.status == StepStatus.COMPLETED:
                steps_completed += 1
                step_log.info(
                    "Step completed",
                    duration_ms=result.duration_ms,
                    metadata=result.metadata,
                )
                self._advance(ctx, step, step_log)
            else:
                step_log.warning(
                    "Step failed, pipeline stopping",
                    error=result.error,
                    duration_ms=result.duration_ms,
                )
                ctx.stage = DocumentStage.ERRORED
                ctx.errored_stage = str(step.failure_stage)
                ctx.error = result.error
                break

        # ── Finalise ──────────────────────────────────
        if not ctx.errored:
            ctx.stage = DocumentStage.DONE

        completed_at = datetime.now(timezone.utc)
        total_duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        return PipelineResult(
            execution_id=ctx.execution_id,
            enrollment_id=ctx.enrollment_id,
            kind=ctx.kind,
            state=ctx.stage,
            errored_stage=ctx.errored_stage,
            error=ctx.error,
            fingerprint=ctx.fingerprint,
            artifact=ctx.artifact,
            store_outcome=ctx.store_outcome,
            dispatch=ctx.dispatch,
            content=ctx.content if ctx.options.skip_store else None,
            started_at=started_at,
            completed_at=completed_at,
            total_duration_ms=total_duration_ms,
            steps_completed=steps_completed,
            total_steps=len(steps),
            step_results=[sr.to_dict() for sr in ctx.step_results],
        )

    def _advance(self, ctx: DocumentContext, step: PipelineStep, log: structlog.BoundLogger) -> None:
        if step.completes_to is None or step.completes_to == ctx.stage:
            return
        log.debug("Document stage changed", previous=str(ctx.stage), stage=str(step.completes_to))
        ctx.stage = step.completes_to

    async def _execute_with_retry(
        self,
        step: PipelineStep,
        ctx: DocumentContext,
        log: structlog.BoundLogger,
    ) -> StepResult:
        """
        Execute a step.  If retryable and it raises one of its retry_on
        errors, retry up to max_retries attempts with exponential backoff.
        """
        max_attempts = step.max_retries if step.retryable else 1

        for attempt in range(1, max_attempts + 1):
            started_at = datetime.now(timezone.utc)
            try:
                result = await step.execute(ctx)
                if attempt > 1:
                    result.metadata["attempts"] = attempt
                return result

            except PipelineError as exc:
                retryable = step.retryable and isinstance(exc, step.retry_on)
                if retryable and attempt < max_attempts:
                    wait_seconds = self.backoff_seconds * 2 ** (attempt - 1)
                    log.warning(
                        f"Step failed (attempt {attempt}/{max_attempts}), retrying in {wait_seconds}s",
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    await self._sleep(wait_seconds)
                    continue

                error = str(exc)
                if retryable:
                    error = f"{type(exc).__name__} after {attempt} attempts: {exc}"
                return step._failure(
                    started_at,
                    error,
                    metadata={
                        "attempts": attempt,
                        "error_type": type(exc).__name__,
                        **exc.details,
                    },
                )

            except Exception as exc:
                # Unexpected error: never retried
                log.exception("Unexpected error in step", error=str(exc))
                return step._failure(
                    started_at,
                    f"Unexpected: {exc}",
                    metadata={"traceback": traceback.format_exc()},
                )

        # Should not reach here, but safety net
        return StepResult(
            step_name=step.name,
            status=StepStatus.FAILED,
            error="Retry loop exited unexpectedly",
        )


def build_orchestrator(
    session_factory: async_sessionmaker[AsyncSession],
    **overrides: Any,
) -> PipelineOrchestrator:
    """Orchestrator wired from settings on top of `session_factory`."""
    artifact_store = ArtifactStore(session_factory)
    dispatcher = EnvelopeDispatcher(
        session_factory,
        build_provider_client(),
        artifact_store,
    )
    return PipelineOrchestrator(
        session_factory,
        renderer=build_renderer(),
        artifact_store=artifact_store,
        dispatcher=dispatcher,
        catalog=SqlPeriodCatalog(session_factory),
        **overrides,
    )

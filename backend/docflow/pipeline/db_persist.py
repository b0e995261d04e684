"""
Pipeline DB persistence — saves each document run to the database.

Called by PipelineOrchestrator after a run completes.  One DocumentRun row
per delivery, so re-delivered enrollments leave a full audit trail.

Persistence failures are logged and swallowed: the run already happened
and its artifact/envelope state is stored independently.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.core.logging import get_logger
from docflow.db.models.document_run import DocumentRun
from docflow.pipeline.context import DocumentContext

if TYPE_CHECKING:
    from docflow.pipeline.engine import PipelineResult

logger = get_logger(__name__)


async def persist_document_run(
    session_factory: async_sessionmaker[AsyncSession],
    ctx: DocumentContext,
    result: PipelineResult,
) -> uuid.UUID | None:
    """Insert the DocumentRun row for a finished run.  Returns its id."""
    try:
        async with session_factory() as session:
            async with session.begin():
                run = DocumentRun(
                    execution_id=result.execution_id,
                    task_id=ctx.task_id,
                    enrollment_id=result.enrollment_id,
                    kind=result.kind,
                    state=str(result.state),
                    errored_stage=result.errored_stage,
                    error_message=result.error,
                    fingerprint=result.fingerprint,
                    artifact_id=result.artifact.id if result.artifact is not None else None,
                    store_outcome=str(result.store_outcome) if result.store_outcome else None,
                    dispatch_status=str(result.dispatch.status) if result.dispatch is not None else None,
                    envelope_ref=result.dispatch.envelope_ref if result.dispatch is not None else None,
                    options=ctx.options.to_dict(),
                    step_log=result.step_results,
                    started_at=result.started_at,
                    completed_at=result.completed_at,
                    duration_ms=result.total_duration_ms,
                )
                session.add(run)
            run_id = run.id

        logger.info(
            "Document run persisted to DB",
            run_id=str(run_id),
            enrollment_id=result.enrollment_id,
            kind=result.kind,
            state=str(result.state),
        )
        return run_id

    except SQLAlchemyError as exc:
        logger.error(
            "Failed to persist document run to DB (non-fatal)",
            execution_id=result.execution_id,
            error=str(exc),
        )
        return None

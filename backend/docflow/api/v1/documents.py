"""
Enrollment document endpoints — enqueue generation, inspect envelopes and runs.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.api.deps import get_db
from docflow.api.schemas.documents import (
    DocumentRequest,
    DocumentRequestAccepted,
    EnvelopeRecordResponse,
)
from docflow.core.logging import get_logger
from docflow.repositories import enrollments as enrollment_repository
from docflow.repositories import envelopes as envelope_repository
from docflow.tasks.document_tasks import generate_documents

logger = get_logger(__name__)

router = APIRouter(prefix="/enrollments", tags=["Documents"])


async def _require_enrollment(db: AsyncSession, enrollment_id: int) -> None:
    if await enrollment_repository.get_enrollment(db, enrollment_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Enrollment {enrollment_id} not found",
        )


# ─── Trigger ──────────────────────────────────────────────
@router.post(
    "/{enrollment_id}/documents",
    response_model=DocumentRequestAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_documents(
    enrollment_id: int,
    payload: DocumentRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Queue proposal/contract generation and dispatch for an enrollment."""
    payload = payload or DocumentRequest()
    await _require_enrollment(db, enrollment_id)

    kinds = [str(kind) for kind in payload.kinds]
    task = generate_documents.delay(
        enrollment_id,
        kinds=kinds,
        force=payload.force,
        skip_store=payload.skip_store,
        render_only=payload.render_only,
        redeliver_on_failure=payload.redeliver_on_failure,
    )
    logger.info("Document generation queued", enrollment_id=enrollment_id, task_id=task.id, kinds=kinds)

    return DocumentRequestAccepted(
        enrollment_id=enrollment_id,
        task_id=task.id,
        kinds=payload.kinds,
    )


# ─── Envelopes ────────────────────────────────────────────
@router.get("/{enrollment_id}/envelopes", response_model=list[EnvelopeRecordResponse])
async def list_envelopes(
    enrollment_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Envelope idempotency records of an enrollment."""
    await _require_enrollment(db, enrollment_id)
    return await envelope_repository.list_envelope_records(db, enrollment_id)


# ─── Runs ─────────────────────────────────────────────────
@router.get("/{enrollment_id}/runs")
async def list_runs(
    enrollment_id: int,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
):
    """Recent document runs of an enrollment (audit trail)."""
    runs = await envelope_repository.list_document_runs(db, enrollment_id, limit=limit)
    return [
        {
            "execution_id": run.execution_id,
            "task_id": run.task_id,
            "kind": run.kind,
            "state": run.state,
            "errored_stage": run.errored_stage,
            "error_message": run.error_message,
            "fingerprint": run.fingerprint,
            "store_outcome": run.store_outcome,
            "dispatch_status": run.dispatch_status,
            "envelope_ref": run.envelope_ref,
            "started_at": run.started_at.isoformat() if run.started_at else None,
            "duration_ms": run.duration_ms,
        }
        for run in runs
    ]

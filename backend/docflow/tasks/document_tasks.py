"""
Celery tasks — enrollment document generation.

Wires the PipelineOrchestrator into the Celery task system.  One delivery
runs every requested document kind (proposal, then contract) for an
enrollment.

Deliveries are at-least-once; repeated deliveries are absorbed by the
artifact store and the envelope record, not by this module.  An ERRORED
document is acknowledged unless the caller asked for re-delivery.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from docflow.core.constants import DocumentKind
from docflow.db.session import make_session_factory
from docflow.pipeline.engine import PipelineResult, build_orchestrator
from docflow.pipeline.errors import DocumentPipelineFailed
from docflow.tasks import celery_app

logger = structlog.get_logger("tasks.documents")

DEFAULT_KINDS = (DocumentKind.PROPOSAL, DocumentKind.CONTRACT)


def _parse_kinds(kinds: list[str] | str | None) -> tuple[list[DocumentKind], list[str]]:
    """Valid kinds in request order, plus the rejected values."""
    if kinds is None:
        return list(DEFAULT_KINDS), []
    if isinstance(kinds, str):
        kinds = [kinds]

    valid: list[DocumentKind] = []
    rejected: list[str] = []
    for value in kinds:
        try:
            kind = DocumentKind(str(value).strip().lower())
        except ValueError:
            rejected.append(str(value))
            continue
        if kind not in valid:
            valid.append(kind)
    return valid, rejected


async def _run_documents(
    enrollment_id: int,
    kinds: list[DocumentKind],
    *,
    force: bool,
    skip_store: bool,
    render_only: bool,
    task_id: str | None,
) -> list[PipelineResult]:
    # Fresh engine per task: asyncio.run() gives every task its own loop
    session_factory, engine = make_session_factory()
    try:
        orchestrator = build_orchestrator(session_factory)
        results = []
        for kind in kinds:
            results.append(
                await orchestrator.run(
                    enrollment_id,
                    kind,
                    force=force,
                    skip_store=skip_store,
                    render_only=render_only,
                    task_id=task_id,
                )
            )
        return results
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="docflow.tasks.document_tasks.generate_documents")
def generate_documents(
    self,
    enrollment_id: int,
    kinds: list[str] | None = None,
    force: bool = False,
    skip_store: bool = False,
    render_only: bool = False,
    redeliver_on_failure: bool = False,
) -> dict[str, Any]:
    """
    Generate, store and dispatch the documents of one enrollment.

    Args:
        enrollment_id: Enrollment primary key (idempotency key).
        kinds: Document kinds to produce; default proposal then contract.
        force: Re-render even if an identical artifact is stored.
        skip_store: Preview: render only, persist and send nothing.
        render_only: Render and store, do not dispatch.
        redeliver_on_failure: Ask Celery to retry the delivery when any
            document errors.  Off by default: errors are acknowledged.
    """
    task_log = logger.bind(
        task_id=self.request.id,
        enrollment_id=enrollment_id,
    )

    valid_kinds, rejected = _parse_kinds(kinds)
    if rejected:
        task_log.error("Unknown document kinds ignored", rejected=rejected)

    task_log.info(
        "Document task started",
        kinds=[str(k) for k in valid_kinds],
        force=force,
        skip_store=skip_store,
        render_only=render_only,
    )

    results = asyncio.run(
        _run_documents(
            enrollment_id,
            valid_kinds,
            force=force,
            skip_store=skip_store,
            render_only=render_only,
            task_id=self.request.id,
        )
    )

    errored = [r for r in results if r.errored]
    summary = {
        "enrollment_id": enrollment_id,
        "documents": [r.to_dict() for r in results],
        "errored": len(errored),
        "rejected_kinds": rejected,
    }

    task_log.info(
        "Document task finished",
        documents=len(results),
        errored=len(errored),
    )

    if errored and redeliver_on_failure:
        first = errored[0]
        task_log.warning(
            "Requesting re-delivery for errored documents",
            errored_kinds=[r.kind for r in errored],
            retries=self.request.retries,
        )
        raise self.retry(
            exc=DocumentPipelineFailed(
                f"{first.kind} errored at {first.errored_stage}: {first.error}",
                execution_id=first.execution_id,
                details=summary,
            )
        )

    return summary

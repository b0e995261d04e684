"""
Envelope record repository — read access for the API and scripts.

Status transitions are owned by EnvelopeDispatcher (compare-and-set);
nothing here writes.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.db.models.document_run import DocumentRun
from docflow.db.models.envelope_record import EnvelopeRecord


async def list_envelope_records(db: AsyncSession, enrollment_id: int) -> list[EnvelopeRecord]:
    """All envelope records of an enrollment, by kind."""
    stmt = (
        select(EnvelopeRecord)
        .where(EnvelopeRecord.enrollment_id == enrollment_id)
        .order_by(EnvelopeRecord.kind.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_document_runs(db: AsyncSession, enrollment_id: int, limit: int = 50) -> list[DocumentRun]:
    """Most recent document runs of an enrollment."""
    stmt = (
        select(DocumentRun)
        .where(DocumentRun.enrollment_id == enrollment_id)
        .order_by(DocumentRun.started_at.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())

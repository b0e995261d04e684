"""
DocumentRun — one row per orchestrator execution for one document.

Audit trail for at-least-once deliveries: every delivery of the same
enrollment produces its own row, so an ERRORED run carries enough context
(stage, error, fingerprint) to re-drive it by hand.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text, Uuid

from docflow.db.models.base import Base, JSONType, generate_uuid, utcnow


class DocumentRun(Base):
    """One row per pipeline execution for an (enrollment, kind) document."""

    __tablename__ = "document_runs"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    execution_id = Column(String(36), nullable=False, unique=True)
    task_id = Column(String(255), nullable=True)

    # ── Document key ──────────────────────────
    enrollment_id = Column(Integer, nullable=False, index=True)
    kind = Column(String(20), nullable=False, index=True)

    # ── Outcome ───────────────────────────────
    state = Column(String(20), nullable=False, index=True)
    errored_stage = Column(String(20), nullable=True)
    error_message = Column(Text, nullable=True)
    fingerprint = Column(String(64), nullable=True)
    artifact_id = Column(Uuid, nullable=True)
    store_outcome = Column(String(20), nullable=True)
    dispatch_status = Column(String(20), nullable=True)
    envelope_ref = Column(String(255), nullable=True)

    # ── Options + step log ────────────────────
    options = Column(JSONType, default=dict)
    step_log = Column(JSONType, default=list)

    # ── Timing (UTC) ─────────────────────────
    started_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<DocumentRun {self.execution_id} enrollment={self.enrollment_id} kind={self.kind} state={self.state}>"

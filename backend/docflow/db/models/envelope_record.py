"""
EnvelopeRecord — local idempotency record for signature envelopes.

One row per (enrollment_id, kind).  The provider owns the envelope; this
row only remembers the last known status and the provider's reference so
a redelivered task can short-circuit instead of sending again.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, Uuid

from docflow.db.models.base import Base, JSONType, generate_uuid, utcnow


class EnvelopeRecord(Base):
    """Last known state of the envelope for one enrollment document."""

    __tablename__ = "envelope_records"
    __table_args__ = (
        UniqueConstraint("enrollment_id", "kind", name="uq_envelope_records_document_key"),
    )

    id = Column(Uuid, primary_key=True, default=generate_uuid)

    enrollment_id = Column(Integer, nullable=False, index=True)
    kind = Column(String(20), nullable=False)

    # ── State ─────────────────────────────────
    status = Column(String(20), nullable=False, default="not_sent", index=True)
    provider_ref = Column(String(255), nullable=True)
    artifact_id = Column(Uuid, nullable=True)

    # ── Last provider exchange ────────────────
    last_error = Column(Text, nullable=True)
    provider_response = Column(JSONType, default=dict)
    attempts = Column(Integer, nullable=False, default=0)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<EnvelopeRecord enrollment={self.enrollment_id} kind={self.kind} status={self.status} ref={self.provider_ref}>"

"""
Artifact — an immutable rendered document.

The unique constraint on (enrollment_id, kind, fingerprint) is what makes
ArtifactStore.put_if_absent safe across worker processes: the second
concurrent insert fails at the database, never in Python.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, UniqueConstraint, Uuid

from docflow.db.models.base import Base, generate_uuid, utcnow


class Artifact(Base):
    """One row per distinct rendered document."""

    __tablename__ = "artifacts"
    __table_args__ = (
        UniqueConstraint("enrollment_id", "kind", "fingerprint", name="uq_artifacts_document_key"),
    )

    id = Column(Uuid, primary_key=True, default=generate_uuid)

    # ── Document key ──────────────────────────
    enrollment_id = Column(Integer, nullable=False, index=True)
    kind = Column(String(20), nullable=False)
    fingerprint = Column(String(64), nullable=False)

    # ── Content ───────────────────────────────
    template_id = Column(String(100), nullable=True)
    mime_type = Column(String(100), nullable=False, default="application/pdf")
    size_bytes = Column(Integer, nullable=False, default=0)
    content = Column(LargeBinary, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Artifact {self.id} enrollment={self.enrollment_id} kind={self.kind} fp={self.fingerprint[:12]}>"

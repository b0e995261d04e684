"""
Enrollment — a client's registration in a course.

This is the unit of work for document generation: its id keys every
artifact, envelope record and document run.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from docflow.db.models.base import Base, JSONType, utcnow


class Enrollment(Base):
    """One row per enrollment."""

    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    token = Column(String(64), nullable=True, unique=True)

    # ── Client (signer) ───────────────────────
    client_name = Column(String(255), nullable=False, default="")
    client_email = Column(String(320), nullable=True)
    client_tax_id = Column(String(32), nullable=True)   # CPF

    # ── Commercial terms ──────────────────────
    subtotal = Column(String(32), nullable=True)
    discount = Column(String(32), nullable=True)
    total = Column(String(32), nullable=True)
    validity_days = Column(Integer, nullable=False, default=0)

    config = Column(JSONType, default=dict)

    enrolled_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    course = relationship("Course", lazy="raise")

    def __repr__(self) -> str:
        return f"<Enrollment {self.id} course={self.course_id} client={self.client_name!r}>"

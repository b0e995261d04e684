"""
Course — static course definition with its inline module list.

Financial fields are stored as canonical decimal strings and module/aircraft
lists are sanitized on write (see docflow.curriculum.normalize).  The stored
`modules` list is *not* the authoritative period list for dynamic courses;
use docflow.curriculum.resolver.resolve() for that.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from docflow.curriculum.normalize import (
    coerce_int,
    decode_json_object,
    normalize_decimal,
    sanitize_modules,
    sanitize_string_list,
    sanitize_strings,
    strip_ticks,
)
from docflow.db.models.base import Base, JSONType, utcnow


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Discriminator; "4" switches the module list to live period entries
    course_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)

    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_unit: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    modules: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    aircraft: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    config: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)

    # ── Financial snapshot (canonical decimal strings) ──
    enrollment_fee: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    total_value: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    installments: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    installment_value: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # ── Write-side normalization ──────────────

    @validates("enrollment_fee", "total_value", "installment_value")
    def _validate_decimal(self, key: str, value: Any) -> str | None:
        return normalize_decimal(value)

    @validates("name")
    def _validate_name(self, key: str, value: Any) -> str:
        return strip_ticks("" if value is None else str(value)) or ""

    @validates("title")
    def _validate_title(self, key: str, value: Any) -> str | None:
        return strip_ticks(None if value is None else str(value))

    @validates("course_type")
    def _validate_course_type(self, key: str, value: Any) -> str | None:
        return None if value is None else str(value).strip()

    @validates("duration")
    def _validate_duration(self, key: str, value: Any) -> int:
        return coerce_int(value, default=0)

    @validates("installments")
    def _validate_installments(self, key: str, value: Any) -> int:
        return coerce_int(value, default=1)

    @validates("modules")
    def _validate_modules(self, key: str, value: Any) -> list | None:
        return sanitize_modules(value)

    @validates("aircraft")
    def _validate_aircraft(self, key: str, value: Any) -> list | None:
        return sanitize_string_list(value)

    @validates("config")
    def _validate_config(self, key: str, value: Any) -> dict | None:
        decoded = decode_json_object(value)
        return None if decoded is None else sanitize_strings(decoded)

    def financial_snapshot(self) -> dict[str, Any]:
        """Financial fields as rendered into documents (and fingerprinted)."""
        return {
            "enrollment_fee": self.enrollment_fee,
            "total_value": self.total_value,
            "installments": self.installments,
            "installment_value": self.installment_value,
        }

    def __repr__(self) -> str:
        return f"<Course id={self.id} {self.name!r} type={self.course_type}>"

"""
CatalogEntry — generic administered catalog row (periods, contracts, pages...).

Periods live here with entry_type="periodos".  They reference a course only
weakly: through config["id_curso"] or, for legacy rows, through parent_id.
The pipeline never writes to this table.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text

from docflow.db.models.base import Base, JSONType, utcnow


class CatalogEntry(Base):
    """One administered catalog entry."""

    __tablename__ = "catalog_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entry_type = Column(String(50), nullable=False, index=True)

    title = Column(String(255), nullable=False, default="")
    slug = Column(String(255), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="publish")
    content = Column(Text, nullable=True)

    # ── Ordering / weak parent reference ─────
    menu_order = Column(Integer, nullable=False, default=0)
    parent_id = Column(Integer, nullable=True, index=True)

    # ── Embedded configuration blob ──────────
    config = Column(JSONType, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<CatalogEntry {self.id} type={self.entry_type} slug={self.slug} order={self.menu_order}>"

"""
Catalog repository — read access to administered catalog entries.
"""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.core.constants import PERIOD_ENTRY_TYPE
from docflow.db.models.catalog_entry import CatalogEntry


async def list_course_periods(db: AsyncSession, course_id: int) -> list[CatalogEntry]:
    """
    Periods linked to a course, in document order.

    A period belongs to the course when its embedded config.id_curso
    matches, or (legacy rows) when its parent_id does.  Ordered by
    menu_order ascending, then id descending.
    """
    stmt = (
        select(CatalogEntry)
        .where(CatalogEntry.entry_type == PERIOD_ENTRY_TYPE)
        .where(
            or_(
                CatalogEntry.config["id_curso"].as_integer() == course_id,
                CatalogEntry.parent_id == course_id,
            )
        )
        .order_by(CatalogEntry.menu_order.asc(), CatalogEntry.id.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())

"""
Period catalog read capability injected into the curriculum resolver.

The resolver only needs "give me the period entries linked to course X,
already ordered".  Keeping that behind a protocol means the resolver never
touches a session and can be exercised with a plain in-memory catalog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.repositories import catalog as catalog_repository


@dataclass(frozen=True)
class PeriodEntry:
    """Read-only view of one period catalog entry."""

    id: int
    title: str
    slug: str | None
    menu_order: int
    status: str
    parent_id: int | None = None
    config: dict[str, Any] = field(default_factory=dict)


class PeriodCatalog(Protocol):
    """Anything that can list the periods linked to a course, in order."""

    async def periods_for_course(self, course_id: int) -> list[PeriodEntry]:
        ...


class SqlPeriodCatalog:
    """PeriodCatalog backed by the catalog_entries table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def periods_for_course(self, course_id: int) -> list[PeriodEntry]:
        async with self._session_factory() as session:
            rows = await catalog_repository.list_course_periods(session, course_id)
            return [
                PeriodEntry(
                    id=row.id,
                    title=row.title,
                    slug=row.slug,
                    menu_order=row.menu_order,
                    status=row.status,
                    parent_id=row.parent_id,
                    config=row.config if isinstance(row.config, dict) else {},
                )
                for row in rows
            ]

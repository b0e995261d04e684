"""
Enrollment repository — read access to enrollments and their course.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from docflow.db.models.enrollment import Enrollment


async def get_enrollment(db: AsyncSession, enrollment_id: int) -> Enrollment | None:
    """Fetch an enrollment with its course eagerly loaded."""
    stmt = (
        select(Enrollment)
        .options(selectinload(Enrollment.course))
        .where(Enrollment.id == enrollment_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()

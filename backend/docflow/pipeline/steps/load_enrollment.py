"""
LoadEnrollmentStep — fetch the enrollment and its course.

Missing rows are fatal for the delivery and never retried.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.core.constants import DocumentStage, FailureStage
from docflow.core.logging import get_logger
from docflow.pipeline.context import DocumentContext, StepResult
from docflow.pipeline.errors import NotFoundError
from docflow.pipeline.step import PipelineStep
from docflow.repositories import enrollments as enrollment_repository

logger = get_logger(__name__)


class LoadEnrollmentStep(PipelineStep):
    """Load enrollment + course into the context."""

    name = "load_enrollment"
    description = "Load enrollment and course"
    failure_stage = FailureStage.LOADING
    completes_to = DocumentStage.RESOLVING

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def execute(self, ctx: DocumentContext) -> StepResult:
        started_at = self._now()

        async with self._session_factory() as session:
            enrollment = await enrollment_repository.get_enrollment(session, ctx.enrollment_id)

        if enrollment is None:
            raise NotFoundError(
                f"Enrollment {ctx.enrollment_id} not found",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )
        if enrollment.course is None:
            raise NotFoundError(
                f"Course {enrollment.course_id} of enrollment {ctx.enrollment_id} not found",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        ctx.enrollment = enrollment
        ctx.course = enrollment.course

        return self._success(started_at, metadata={
            "course_id": enrollment.course.id,
            "course_type": enrollment.course.course_type,
        })

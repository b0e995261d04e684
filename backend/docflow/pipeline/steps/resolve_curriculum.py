"""
ResolveCurriculumStep — periods, template data and fingerprint.

Never fails on data: an empty period list is a valid document.
"""

from __future__ import annotations

from docflow.core.constants import DocumentStage, FailureStage
from docflow.curriculum.catalog import PeriodCatalog
from docflow.curriculum.resolver import resolve
from docflow.documents.data import build_document_data, enrollment_terms
from docflow.documents.fingerprint import compute_fingerprint
from docflow.documents.renderer import template_for
from docflow.pipeline.context import DocumentContext, StepResult
from docflow.pipeline.step import PipelineStep


class ResolveCurriculumStep(PipelineStep):
    """Resolve the course periods and fingerprint the document content."""

    name = "resolve_curriculum"
    description = "Resolve course periods and compute document fingerprint"
    failure_stage = FailureStage.RESOLVING
    completes_to = DocumentStage.RENDERING

    def __init__(self, catalog: PeriodCatalog) -> None:
        self.catalog = catalog

    async def execute(self, ctx: DocumentContext) -> StepResult:
        started_at = self._now()

        ctx.periods = await resolve(ctx.course, self.catalog)
        ctx.template_id = template_for(ctx.kind)
        ctx.fingerprint = compute_fingerprint(
            kind=ctx.kind,
            template_id=ctx.template_id,
            periods=ctx.periods,
            financial=ctx.course.financial_snapshot(),
            terms=enrollment_terms(ctx.enrollment),
        )
        ctx.document_data = build_document_data(
            kind=ctx.kind,
            enrollment=ctx.enrollment,
            course=ctx.course,
            periods=ctx.periods,
        )

        return self._success(started_at, metadata={
            "periods": len(ctx.periods),
            "template_id": ctx.template_id,
            "fingerprint": ctx.fingerprint,
        })

"""
RenderDocumentStep — template + data to PDF bytes.

Skipped when an artifact with the same fingerprint is already stored (the
document was produced before), unless the run forces a re-render.
Render errors are retried by the engine up to `max_retries` attempts.
"""

from __future__ import annotations

from docflow.core.constants import FailureStage, StoreOutcome
from docflow.core.logging import get_logger
from docflow.documents.renderer import DocumentRenderer
from docflow.pipeline.context import DocumentContext, StepResult
from docflow.pipeline.errors import RenderError
from docflow.pipeline.step import PipelineStep
from docflow.storage.artifact_store import ArtifactStore

logger = get_logger(__name__)


class RenderDocumentStep(PipelineStep):
    """Render the document through the configured backend."""

    name = "render_document"
    description = "Render document to PDF"
    failure_stage = FailureStage.RENDERING
    retryable = True
    retry_on = (RenderError,)

    def __init__(
        self,
        renderer: DocumentRenderer,
        artifact_store: ArtifactStore,
        *,
        max_retries: int = 3,
    ) -> None:
        self.renderer = renderer
        self.artifact_store = artifact_store
        self.max_retries = max_retries

    async def should_skip(self, ctx: DocumentContext) -> bool:
        if ctx.options.force or ctx.options.skip_store:
            return False

        existing = await self.artifact_store.find(ctx.enrollment_id, ctx.kind, ctx.fingerprint)
        if existing is None:
            return False

        logger.info(
            "Identical document already stored, not re-rendering",
            enrollment_id=ctx.enrollment_id,
            kind=ctx.kind,
            artifact_id=str(existing.id),
        )
        ctx.artifact = existing
        ctx.store_outcome = StoreOutcome.ALREADY_EXISTED
        return True

    async def execute(self, ctx: DocumentContext) -> StepResult:
        started_at = self._now()

        ctx.content = await self.renderer.render(ctx.template_id, ctx.document_data)

        return self._success(started_at, metadata={
            "template_id": ctx.template_id,
            "size_bytes": len(ctx.content),
        })

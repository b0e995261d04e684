"""
StoreArtifactStep — put-if-absent the rendered bytes.

`already_existed` is not an error: the run continues with the stored
artifact, exactly as if it had created it.
"""

from __future__ import annotations

from docflow.core.constants import DocumentStage, FailureStage
from docflow.pipeline.context import DocumentContext, StepResult
from docflow.pipeline.errors import StepExecutionError
from docflow.pipeline.step import PipelineStep
from docflow.storage.artifact_store import ArtifactStore


class StoreArtifactStep(PipelineStep):
    """Persist the rendered document."""

    name = "store_artifact"
    description = "Store rendered artifact"
    failure_stage = FailureStage.STORING
    completes_to = DocumentStage.STORED

    def __init__(self, artifact_store: ArtifactStore) -> None:
        self.artifact_store = artifact_store

    async def should_skip(self, ctx: DocumentContext) -> bool:
        # Already stored (render skipped) or preview mode
        return ctx.artifact is not None or ctx.options.skip_store

    def skip_reaches_stage(self, ctx: DocumentContext) -> bool:
        return ctx.artifact is not None

    async def execute(self, ctx: DocumentContext) -> StepResult:
        started_at = self._now()

        if ctx.content is None:
            raise StepExecutionError(
                "Nothing to store: render produced no content",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        result = await self.artifact_store.put_if_absent(
            ctx.enrollment_id,
            ctx.kind,
            ctx.fingerprint,
            ctx.content,
            template_id=ctx.template_id,
        )
        ctx.artifact = result.artifact
        ctx.store_outcome = result.outcome

        return self._success(started_at, metadata={
            "artifact_id": str(result.artifact.id),
            "outcome": str(result.outcome),
        })

"""
DispatchEnvelopeStep — hand the stored artifact to the signature provider.

`sent` and `already_sent` both succeed.  `failed` errors the document and
is never retried here: a new send needs an explicit re-enqueue.
"""

from __future__ import annotations

from docflow.core.constants import DocumentStage, FailureStage
from docflow.pipeline.context import DocumentContext, StepResult
from docflow.pipeline.errors import DispatchFailedError
from docflow.pipeline.step import PipelineStep
from docflow.signature.dispatcher import EnvelopeDispatcher


class DispatchEnvelopeStep(PipelineStep):
    """Send the document for signature, at most once."""

    name = "dispatch_envelope"
    description = "Dispatch signature envelope"
    failure_stage = FailureStage.DISPATCH
    completes_to = DocumentStage.DISPATCHED

    def __init__(self, dispatcher: EnvelopeDispatcher) -> None:
        self.dispatcher = dispatcher

    async def should_skip(self, ctx: DocumentContext) -> bool:
        return ctx.options.render_only or ctx.options.skip_store

    def skip_reaches_stage(self, ctx: DocumentContext) -> bool:
        # Only skipped by run options: nothing was sent
        return False

    async def execute(self, ctx: DocumentContext) -> StepResult:
        started_at = self._now()

        outcome = await self.dispatcher.send(
            ctx.enrollment_id,
            ctx.kind,
            ctx.artifact,
            enrollment=ctx.enrollment,
            course=ctx.course,
            content=ctx.content,
        )
        ctx.dispatch = outcome

        if not outcome.ok:
            raise DispatchFailedError(
                f"Envelope dispatch failed: {outcome.reason}",
                execution_id=ctx.execution_id,
                step_name=self.name,
                details=outcome.details,
            )

        return self._success(started_at, metadata=outcome.to_dict())

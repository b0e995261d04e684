"""Document generation request/response schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docflow.core.constants import DocumentKind, EnvelopeStatus


class DocumentRequest(BaseModel):
    """Payload for enqueuing document generation for an enrollment."""

    kinds: list[DocumentKind] = Field(
        default_factory=lambda: [DocumentKind.PROPOSAL, DocumentKind.CONTRACT],
        min_length=1,
    )
    force: bool = False
    skip_store: bool = False
    render_only: bool = False
    redeliver_on_failure: bool = False


class DocumentRequestAccepted(BaseModel):
    """Returned once the task is queued."""

    message: str = "Document generation queued"
    enrollment_id: int
    task_id: str
    kinds: list[DocumentKind]


class EnvelopeRecordResponse(BaseModel):
    """Local idempotency record for one enrollment document."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enrollment_id: int
    kind: DocumentKind
    status: EnvelopeStatus
    provider_ref: str | None
    artifact_id: UUID | None
    last_error: str | None
    attempts: int
    sent_at: datetime | None
    updated_at: datetime

"""API schema package."""

from docflow.api.schemas.documents import (
    DocumentRequest,
    DocumentRequestAccepted,
    EnvelopeRecordResponse,
)

__all__ = ["DocumentRequest", "DocumentRequestAccepted", "EnvelopeRecordResponse"]

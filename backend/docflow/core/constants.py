"""Shared constants and enums used across the application."""

from enum import StrEnum


# Course type whose modules are replaced by live period catalog entries.
DYNAMIC_COURSE_TYPE = "4"

# Catalog entry type holding the course periods.
PERIOD_ENTRY_TYPE = "periodos"


class DocumentKind(StrEnum):
    """Documents produced for an enrollment."""

    PROPOSAL = "proposal"
    CONTRACT = "contract"


class DocumentStage(StrEnum):
    """State of one (enrollment, kind) document through the pipeline."""

    PENDING = "PENDING"
    RESOLVING = "RESOLVING"
    RENDERING = "RENDERING"
    STORED = "STORED"
    DISPATCHED = "DISPATCHED"
    DONE = "DONE"
    ERRORED = "ERRORED"


class FailureStage(StrEnum):
    """Stage reported with an ERRORED document."""

    LOADING = "loading"
    RESOLVING = "resolving"
    RENDERING = "rendering"
    STORING = "storing"
    DISPATCH = "dispatch"


class StepStatus(StrEnum):
    """Status of an individual pipeline step."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    RETRYING = "RETRYING"


class StoreOutcome(StrEnum):
    """Result of an artifact put-if-absent."""

    CREATED = "created"
    ALREADY_EXISTED = "already_existed"


class EnvelopeStatus(StrEnum):
    """Local view of a signature envelope."""

    NOT_SENT = "not_sent"
    SENT = "sent"
    SIGNED = "signed"
    ERROR = "error"


class DispatchStatus(StrEnum):
    """Outcome of one dispatch attempt."""

    SENT = "sent"
    ALREADY_SENT = "already_sent"
    FAILED = "failed"


class RenderBackend(StrEnum):
    """HTML to PDF conversion backends."""

    WKHTMLTOPDF = "wkhtmltopdf"
    HTTP = "http"

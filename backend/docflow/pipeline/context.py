"""
DocumentContext — mutable state object carried through every step.

This is the single source of truth for one (enrollment, kind) run.  Each
step reads from and writes to the context.  The engine serialises the
final context into the DocumentRun row for auditability.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from docflow.core.constants import DocumentStage


# ═══════════════════════════════════════════════════════════
#  RunOptions — per-delivery flags
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RunOptions:
    """
    Flags carried by the task payload.

    Args:
        force: Render even when an artifact with the same fingerprint exists.
               Stored artifacts stay immutable; the store still dedupes.
        skip_store: Preview mode. Render only; nothing persisted or sent.
        render_only: Render and store, but do not dispatch.
    """

    force: bool = False
    skip_store: bool = False
    render_only: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "force": self.force,
            "skip_store": self.skip_store,
            "render_only": self.render_only,
        }


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """Outcome of a single pipeline step execution."""

    step_name: str
    status: str                     # StepStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for JSON storage."""
        return {
            "step_name": self.step_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════
#  DocumentContext
# ═══════════════════════════════════════════════════════════

@dataclass
class DocumentContext:
    """
    Carries all state between pipeline steps.

    Populated progressively: load fills enrollment/course, resolve fills
    periods/fingerprint/document_data, render fills content, store fills
    artifact, dispatch fills dispatch.
    """

    # ─── Identity (set at init) ────────────────────────
    enrollment_id: int
    kind: str
    options: RunOptions = field(default_factory=RunOptions)
    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    task_id: str | None = None

    # ─── Loaded ────────────────────────────────────────
    enrollment: Any = None
    course: Any = None

    # ─── Resolved ──────────────────────────────────────
    periods: list[dict[str, Any]] = field(default_factory=list)
    template_id: str | None = None
    document_data: dict[str, Any] = field(default_factory=dict)
    fingerprint: str | None = None

    # ─── Rendered / stored / dispatched ────────────────
    content: bytes | None = None
    artifact: Any = None            # ArtifactRef
    store_outcome: str | None = None
    dispatch: Any = None            # DispatchOutcome

    # ─── State machine ─────────────────────────────────
    stage: DocumentStage = DocumentStage.PENDING
    errored_stage: str | None = None
    error: str | None = None

    # ─── Execution tracking ────────────────────────────
    total_steps: int = 0
    step_results: list[StepResult] = field(default_factory=list)

    @property
    def errored(self) -> bool:
        return self.stage == DocumentStage.ERRORED

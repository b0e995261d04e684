"""
ArtifactStore — put-if-absent storage for rendered documents.

At-most-one-create is enforced by the `uq_artifacts_document_key` unique
constraint, not by a lock: workers in different processes race on the
INSERT, exactly one commits, every other one gets an IntegrityError and
reports `already_existed` with the winner's reference.

Each operation runs in its own short transaction from the injected
session factory, so a losing insert never poisons a caller's session.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.core.constants import StoreOutcome
from docflow.core.logging import get_logger
from docflow.db.models.artifact import Artifact
from docflow.pipeline.errors import ArtifactNotFoundError, StorageError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ArtifactRef:
    """Pointer to a stored artifact (no content)."""

    id: uuid.UUID
    enrollment_id: int
    kind: str
    fingerprint: str
    size_bytes: int
    template_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Artifact) -> ArtifactRef:
        return cls(
            id=row.id,
            enrollment_id=row.enrollment_id,
            kind=row.kind,
            fingerprint=row.fingerprint,
            size_bytes=row.size_bytes,
            template_id=row.template_id,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "enrollment_id": self.enrollment_id,
            "kind": self.kind,
            "fingerprint": self.fingerprint,
            "size_bytes": self.size_bytes,
        }


@dataclass(frozen=True)
class PutResult:
    outcome: StoreOutcome
    artifact: ArtifactRef

    @property
    def created(self) -> bool:
        return self.outcome == StoreOutcome.CREATED


def _key_clause(enrollment_id: int, kind: str, fingerprint: str):
    return (
        Artifact.enrollment_id == enrollment_id,
        Artifact.kind == str(kind),
        Artifact.fingerprint == fingerprint,
    )


class ArtifactStore:
    """Rendered documents keyed by (enrollment_id, kind, fingerprint)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def put_if_absent(
        self,
        enrollment_id: int,
        kind: str,
        fingerprint: str,
        content: bytes,
        *,
        template_id: str | None = None,
        mime_type: str = "application/pdf",
    ) -> PutResult:
        """Insert the artifact unless one with the same key already exists."""
        log = logger.bind(enrollment_id=enrollment_id, kind=str(kind), fingerprint=fingerprint[:12])

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = Artifact(
                        enrollment_id=enrollment_id,
                        kind=str(kind),
                        fingerprint=fingerprint,
                        template_id=template_id,
                        mime_type=mime_type,
                        size_bytes=len(content),
                        content=content,
                    )
                    session.add(row)
                ref = ArtifactRef.from_row(row)
        except IntegrityError:
            existing = await self.find(enrollment_id, kind, fingerprint)
            if existing is None:
                # Constraint fired but no row visible: not a duplicate-key race
                raise StorageError(
                    "Artifact insert violated a constraint but no existing artifact was found",
                    details={"enrollment_id": enrollment_id, "kind": str(kind)},
                )
            log.info("Artifact already existed", artifact_id=str(existing.id))
            return PutResult(outcome=StoreOutcome.ALREADY_EXISTED, artifact=existing)
        except SQLAlchemyError as exc:
            raise StorageError(f"Artifact insert failed: {exc}") from exc

        log.info("Artifact created", artifact_id=str(ref.id), size_bytes=ref.size_bytes)
        return PutResult(outcome=StoreOutcome.CREATED, artifact=ref)

    async def find(self, enrollment_id: int, kind: str, fingerprint: str) -> ArtifactRef | None:
        """Reference to the artifact with this key, or None."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Artifact).where(*_key_clause(enrollment_id, kind, fingerprint))
            )
            row = result.scalar_one_or_none()
            return ArtifactRef.from_row(row) if row else None

    async def get(self, enrollment_id: int, kind: str, fingerprint: str) -> bytes:
        """Content of the artifact with this key."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Artifact.content).where(*_key_clause(enrollment_id, kind, fingerprint))
            )
            content = result.scalar_one_or_none()

        if content is None:
            raise ArtifactNotFoundError(
                f"No {kind} artifact for enrollment {enrollment_id} with fingerprint {fingerprint[:12]}",
                details={"enrollment_id": enrollment_id, "kind": str(kind), "fingerprint": fingerprint},
            )
        return content

    async def get_by_id(self, artifact_id: uuid.UUID) -> bytes:
        """Content by artifact primary key (used by the dispatcher)."""
        async with self._session_factory() as session:
            row = await session.get(Artifact, artifact_id)
            if row is None:
                raise ArtifactNotFoundError(
                    f"Artifact {artifact_id} not found",
                    details={"artifact_id": str(artifact_id)},
                )
            return row.content

    async def latest(self, enrollment_id: int, kind: str) -> ArtifactRef | None:
        """Most recent artifact for (enrollment, kind), whatever its fingerprint."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Artifact)
                .where(Artifact.enrollment_id == enrollment_id, Artifact.kind == str(kind))
                .order_by(Artifact.created_at.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return ArtifactRef.from_row(row) if row else None

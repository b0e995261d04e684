"""
EnvelopeDispatcher — at-most-one signature envelope per (enrollment, kind).

    record sent/signed?          → already_sent, provider never called
    ensure not_sent record       (unique key; a concurrent insert is fine)
    provider.create_envelope
        ok                       → CAS not_sent → sent with the token
        "Envelope já enviado"    → already_sent (info), CAS to sent
        any other error          → failed, record stays not_sent

Check-then-act is tolerated: two deliveries racing past the first check
both reach the provider, and the provider's already-sent answer or the
CAS on the record turns the loser into already_sent.

Every database touch is its own short transaction so no row lock is held
while the provider call is in flight.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.core.constants import DispatchStatus, EnvelopeStatus
from docflow.core.logging import get_logger
from docflow.db.models.base import utcnow
from docflow.db.models.envelope_record import EnvelopeRecord
from docflow.pipeline.errors import ArtifactNotFoundError, ProviderError
from docflow.signature.provider import EnvelopeReceipt, is_already_sent_error
from docflow.signature.signers import build_signers
from docflow.storage.artifact_store import ArtifactRef, ArtifactStore

logger = get_logger(__name__)

# Provider document status → local envelope status
PROVIDER_STATUS_MAP = {
    "pending": EnvelopeStatus.SENT,
    "link-opened": EnvelopeStatus.SENT,
    "signed": EnvelopeStatus.SIGNED,
    "refused": EnvelopeStatus.ERROR,
    "expired": EnvelopeStatus.ERROR,
}

# Record states from which a new provider call may move the record to sent
RESENDABLE = (str(EnvelopeStatus.NOT_SENT), str(EnvelopeStatus.ERROR))


class SignatureProvider(Protocol):
    async def create_envelope(
        self,
        *,
        name: str,
        external_id: str,
        content: bytes,
        signers: list[dict[str, Any]],
    ) -> EnvelopeReceipt:
        ...

    async def get_envelope(self, token: str) -> EnvelopeReceipt:
        ...


@dataclass(frozen=True)
class DispatchOutcome:
    """Typed result of EnvelopeDispatcher.send."""

    status: DispatchStatus
    envelope_ref: str | None = None
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def sent(cls, envelope_ref: str) -> DispatchOutcome:
        return cls(status=DispatchStatus.SENT, envelope_ref=envelope_ref)

    @classmethod
    def already_sent(cls, envelope_ref: str | None, **details: Any) -> DispatchOutcome:
        return cls(status=DispatchStatus.ALREADY_SENT, envelope_ref=envelope_ref, details=details)

    @classmethod
    def failed(cls, reason: str, **details: Any) -> DispatchOutcome:
        return cls(status=DispatchStatus.FAILED, reason=reason, details=details)

    @property
    def ok(self) -> bool:
        return self.status != DispatchStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": str(self.status),
            "envelope_ref": self.envelope_ref,
            "reason": self.reason,
        }


def external_id_for(enrollment_id: int, kind: str) -> str:
    """Provider-side id of the envelope for one enrollment document."""
    return f"{enrollment_id}_{kind}"


def envelope_name(enrollment: Any, course: Any | None, kind: str) -> str:
    course_name = getattr(course, "name", None) or "Curso"
    return f"{enrollment.client_name} * {course_name} #{enrollment.id} ({kind})"


class EnvelopeDispatcher:
    """Sends rendered artifacts to the signature provider, at most once."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        provider: SignatureProvider,
        artifact_store: ArtifactStore,
        *,
        countersigners: list[dict[str, str]] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.provider = provider
        self.artifact_store = artifact_store
        self.countersigners = countersigners

    # ═══════════════════════════════════════════════════════
    #  Public API
    # ═══════════════════════════════════════════════════════

    async def send(
        self,
        enrollment_id: int,
        kind: str,
        artifact: ArtifactRef,
        *,
        enrollment: Any,
        course: Any | None = None,
        content: bytes | None = None,
    ) -> DispatchOutcome:
        kind = str(kind)
        log = logger.bind(enrollment_id=enrollment_id, kind=kind, artifact_id=str(artifact.id))

        # ── Local idempotency record ─────────────────
        record = await self.get_record(enrollment_id, kind)
        if record is not None and record.status in (EnvelopeStatus.SENT, EnvelopeStatus.SIGNED):
            log.info("Envelope already sent, provider not contacted", envelope_ref=record.provider_ref)
            return DispatchOutcome.already_sent(record.provider_ref, source="record")

        if record is None:
            await self._ensure_record(enrollment_id, kind, artifact)

        # ── Artifact content ─────────────────────────
        if content is None:
            try:
                content = await self.artifact_store.get_by_id(artifact.id)
            except ArtifactNotFoundError as exc:
                await self._record_failure(enrollment_id, kind, str(exc), {})
                log.warning("Envelope dispatch failed", reason=str(exc))
                return DispatchOutcome.failed(str(exc))

        # ── Provider call ────────────────────────────
        try:
            receipt = await self.provider.create_envelope(
                name=envelope_name(enrollment, course, kind),
                external_id=external_id_for(enrollment_id, kind),
                content=content,
                signers=build_signers(enrollment, self.countersigners),
            )
        except ProviderError as exc:
            if is_already_sent_error(exc):
                log.info(
                    "Provider reports envelope already sent",
                    provider_message=str(exc),
                    status_code=exc.status_code,
                )
                await self._mark_sent(
                    enrollment_id, kind, artifact,
                    provider_ref=None,
                    response={"message": str(exc), "status_code": exc.status_code},
                )
                stored = await self.get_record(enrollment_id, kind)
                return DispatchOutcome.already_sent(
                    stored.provider_ref if stored else None, source="provider"
                )

            log.warning(
                "Envelope dispatch failed",
                reason=str(exc),
                status_code=exc.status_code,
            )
            await self._record_failure(
                enrollment_id, kind, str(exc),
                {"status_code": exc.status_code, "body": (exc.response_body or "")[:1000]},
            )
            return DispatchOutcome.failed(str(exc), status_code=exc.status_code)

        # ── Persist not_sent → sent ──────────────────
        won = await self._mark_sent(
            enrollment_id, kind, artifact,
            provider_ref=receipt.token,
            response=receipt.raw,
        )
        if not won:
            stored = await self.get_record(enrollment_id, kind)
            stored_ref = stored.provider_ref if stored else None
            log.info(
                "Envelope sent concurrently by another delivery",
                envelope_ref=stored_ref,
                discarded_ref=receipt.token,
            )
            return DispatchOutcome.already_sent(stored_ref, source="record")

        log.info("Envelope sent", envelope_ref=receipt.token)
        return DispatchOutcome.sent(receipt.token)

    async def refresh_status(self, enrollment_id: int, kind: str) -> EnvelopeStatus | None:
        """
        Ask the provider for the envelope's current status and store it.

        Returns the local status afterwards, or None when no record exists.
        Provider failures keep the stored status.
        """
        kind = str(kind)
        record = await self.get_record(enrollment_id, kind)
        if record is None:
            return None
        if not record.provider_ref:
            return EnvelopeStatus(record.status)

        try:
            receipt = await self.provider.get_envelope(record.provider_ref)
        except ProviderError as exc:
            logger.warning(
                "Envelope status refresh failed",
                enrollment_id=enrollment_id,
                kind=kind,
                error=str(exc),
            )
            return EnvelopeStatus(record.status)

        new_status = PROVIDER_STATUS_MAP.get((receipt.status or "").lower())
        if new_status is None or new_status == record.status:
            return EnvelopeStatus(record.status)

        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(EnvelopeRecord)
                    .where(EnvelopeRecord.id == record.id)
                    .values(status=str(new_status), provider_response=receipt.raw)
                )

        logger.info(
            "Envelope status refreshed",
            enrollment_id=enrollment_id,
            kind=kind,
            previous=record.status,
            status=str(new_status),
        )
        return new_status

    async def get_record(self, enrollment_id: int, kind: str) -> EnvelopeRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EnvelopeRecord).where(
                    EnvelopeRecord.enrollment_id == enrollment_id,
                    EnvelopeRecord.kind == str(kind),
                )
            )
            return result.scalar_one_or_none()

    # ═══════════════════════════════════════════════════════
    #  Record transitions
    # ═══════════════════════════════════════════════════════

    async def _ensure_record(self, enrollment_id: int, kind: str, artifact: ArtifactRef) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(
                        EnvelopeRecord(
                            enrollment_id=enrollment_id,
                            kind=kind,
                            status=str(EnvelopeStatus.NOT_SENT),
                            artifact_id=artifact.id,
                        )
                    )
        except IntegrityError:
            # Another delivery created it first
            pass

    async def _mark_sent(
        self,
        enrollment_id: int,
        kind: str,
        artifact: ArtifactRef,
        *,
        provider_ref: str | None,
        response: dict[str, Any],
    ) -> bool:
        """
        Compare-and-set to `sent`.  True when this caller won.

        A caller holding a real provider token may also fill in a record that
        was moved to `sent` from an already-sent answer (no token yet).
        """
        condition = EnvelopeRecord.status.in_(RESENDABLE)
        if provider_ref is not None:
            condition = or_(
                condition,
                (EnvelopeRecord.status == str(EnvelopeStatus.SENT)) & EnvelopeRecord.provider_ref.is_(None),
            )

        values: dict[str, Any] = {
            "status": str(EnvelopeStatus.SENT),
            "artifact_id": artifact.id,
            "provider_response": response,
            "last_error": None,
            "attempts": EnvelopeRecord.attempts + 1,
            "sent_at": utcnow(),
            "updated_at": utcnow(),
        }
        # An already-sent answer carries no token: keep the one on record
        if provider_ref is not None:
            values["provider_ref"] = provider_ref

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(EnvelopeRecord)
                    .where(
                        EnvelopeRecord.enrollment_id == enrollment_id,
                        EnvelopeRecord.kind == kind,
                        condition,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount > 0

    async def _record_failure(
        self,
        enrollment_id: int,
        kind: str,
        reason: str,
        response: dict[str, Any],
    ) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(EnvelopeRecord)
                    .where(
                        EnvelopeRecord.enrollment_id == enrollment_id,
                        EnvelopeRecord.kind == kind,
                        EnvelopeRecord.status.in_(RESENDABLE),
                    )
                    .values(
                        last_error=reason,
                        provider_response=response,
                        attempts=EnvelopeRecord.attempts + 1,
                        updated_at=utcnow(),
                    )
                    .execution_options(synchronize_session=False)
                )

from __future__ import annotations

import asyncio
import dataclasses
import uuid
from types import SimpleNamespace

import pytest
from structlog.testing import capture_logs

from conftest import FakeSignatureProvider

from docflow.core.constants import DispatchStatus, EnvelopeStatus
from docflow.pipeline.errors import ProviderError
from docflow.signature.dispatcher import EnvelopeDispatcher, envelope_name, external_id_for

ENROLLMENT = SimpleNamespace(
    id=101,
    client_name="Ana Souza",
    client_email="ana@example.com",
    client_tax_id="123.456.789-09",
)
COURSE = SimpleNamespace(name="Piloto Comercial")


@pytest.fixture
async def artifact(artifact_store):
    result = await artifact_store.put_if_absent(101, "contract", "f" * 64, b"%PDF-contract")
    return result.artifact


async def _send(dispatcher: EnvelopeDispatcher, artifact, kind: str = "contract"):
    return await dispatcher.send(101, kind, artifact, enrollment=ENROLLMENT, course=COURSE)


def test_external_id_and_name() -> None:
    assert external_id_for(101, "contract") == "101_contract"
    assert envelope_name(ENROLLMENT, COURSE, "contract") == "Ana Souza * Piloto Comercial #101 (contract)"
    assert envelope_name(ENROLLMENT, None, "proposal").endswith("#101 (proposal)")


async def test_first_send_marks_record_sent(dispatcher, provider, artifact) -> None:
    outcome = await _send(dispatcher, artifact)

    assert outcome.status == DispatchStatus.SENT
    assert outcome.envelope_ref == "env-1"
    assert provider.created == {"101_contract": "env-1"}

    record = await dispatcher.get_record(101, "contract")
    assert record.status == EnvelopeStatus.SENT
    assert record.provider_ref == "env-1"
    assert record.artifact_id == artifact.id
    assert record.attempts == 1
    assert record.sent_at is not None


async def test_second_send_short_circuits_on_record(dispatcher, provider, artifact) -> None:
    await _send(dispatcher, artifact)

    outcome = await _send(dispatcher, artifact)

    assert outcome.status == DispatchStatus.ALREADY_SENT
    assert outcome.envelope_ref == "env-1"
    assert outcome.details["source"] == "record"
    assert provider.create_calls == 1


async def test_concurrent_sends_create_one_envelope(dispatcher, provider, artifact) -> None:
    outcomes = await asyncio.gather(*[_send(dispatcher, artifact) for _ in range(3)])

    assert len(provider.created) == 1
    assert [o.status for o in outcomes].count(DispatchStatus.SENT) == 1
    assert all(o.ok for o in outcomes)

    record = await dispatcher.get_record(101, "contract")
    assert record.status == EnvelopeStatus.SENT
    assert record.provider_ref == "env-1"


async def test_provider_already_sent_is_not_an_error(seeded_db, artifact_store, artifact) -> None:
    # The envelope exists provider-side but the local record was lost
    provider = FakeSignatureProvider()
    provider.created["101_contract"] = "env-old"
    dispatcher = EnvelopeDispatcher(seeded_db, provider, artifact_store, countersigners=[])

    with capture_logs() as logs:
        outcome = await _send(dispatcher, artifact)

    assert outcome.status == DispatchStatus.ALREADY_SENT
    assert outcome.details["source"] == "provider"
    assert not [entry for entry in logs if entry["log_level"] in ("error", "critical")]
    assert any(
        entry["event"] == "Provider reports envelope already sent" and entry["log_level"] == "info"
        for entry in logs
    )

    record = await dispatcher.get_record(101, "contract")
    assert record.status == EnvelopeStatus.SENT
    assert record.last_error is None


async def test_provider_failure_keeps_record_resendable(seeded_db, artifact_store, artifact) -> None:
    provider = FakeSignatureProvider(
        error=ProviderError("Invalid signer email", status_code=400, response_body='{"detail": "Invalid signer email"}')
    )
    dispatcher = EnvelopeDispatcher(seeded_db, provider, artifact_store, countersigners=[])

    outcome = await _send(dispatcher, artifact)

    assert outcome.status == DispatchStatus.FAILED
    assert not outcome.ok
    assert outcome.reason == "Invalid signer email"
    assert outcome.details["status_code"] == 400

    record = await dispatcher.get_record(101, "contract")
    assert record.status == EnvelopeStatus.NOT_SENT
    assert record.last_error == "Invalid signer email"
    assert record.attempts == 1

    # A later delivery with a healthy provider sends normally
    provider.error = None
    retried = await _send(dispatcher, artifact)
    assert retried.status == DispatchStatus.SENT


async def test_missing_artifact_content_fails(dispatcher, provider, artifact) -> None:
    ghost = dataclasses.replace(artifact, id=uuid.uuid4())

    outcome = await _send(dispatcher, ghost)

    assert outcome.status == DispatchStatus.FAILED
    assert provider.create_calls == 0


async def test_inline_content_skips_store_lookup(dispatcher, provider, artifact) -> None:
    ghost = dataclasses.replace(artifact, id=uuid.uuid4())

    outcome = await dispatcher.send(
        101, "contract", ghost, enrollment=ENROLLMENT, course=COURSE, content=b"%PDF-inline"
    )

    assert outcome.status == DispatchStatus.SENT


async def test_signers_client_first(seeded_db, provider, artifact_store, artifact) -> None:
    dispatcher = EnvelopeDispatcher(
        seeded_db,
        provider,
        artifact_store,
        countersigners=[{"name": "Escola de Aviação", "email": "contratos@example.com", "cpf": "111"}],
    )

    await _send(dispatcher, artifact)

    assert [s["name"] for s in provider.last_signers] == ["Ana Souza", "Escola de Aviação"]
    assert [s["order_group"] for s in provider.last_signers] == [1, 2]


async def test_refresh_status(seeded_db, provider, artifact_store, artifact) -> None:
    dispatcher = EnvelopeDispatcher(seeded_db, provider, artifact_store, countersigners=[])
    assert await dispatcher.refresh_status(101, "contract") is None

    await _send(dispatcher, artifact)
    provider.status = "signed"

    assert await dispatcher.refresh_status(101, "contract") == EnvelopeStatus.SIGNED
    record = await dispatcher.get_record(101, "contract")
    assert record.status == EnvelopeStatus.SIGNED

    # Signed envelopes are never sent again
    outcome = await _send(dispatcher, artifact)
    assert outcome.status == DispatchStatus.ALREADY_SENT
    assert provider.create_calls == 1


async def test_resend_after_refusal_keeps_provider_token(dispatcher, provider, artifact) -> None:
    await _send(dispatcher, artifact)
    provider.status = "refused"
    assert await dispatcher.refresh_status(101, "contract") == EnvelopeStatus.ERROR

    outcome = await _send(dispatcher, artifact)

    assert outcome.status == DispatchStatus.ALREADY_SENT
    assert outcome.details["source"] == "provider"
    assert outcome.envelope_ref == "env-1"
    record = await dispatcher.get_record(101, "contract")
    assert record.status == EnvelopeStatus.SENT
    assert record.provider_ref == "env-1"

    # The envelope can still be followed up to signature
    provider.status = "signed"
    assert await dispatcher.refresh_status(101, "contract") == EnvelopeStatus.SIGNED

from __future__ import annotations

import base64
import json
from types import SimpleNamespace

import httpx
import pytest

from docflow.pipeline.errors import ProviderError
from docflow.signature.provider import (
    SignatureProviderClient,
    is_already_sent_error,
    is_already_sent_message,
)
from docflow.signature.signers import CPF_AUTH_MODE, build_signers

BASE_URL = "https://sign.local/api/v1"


def _client(handler) -> SignatureProviderClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SignatureProviderClient(BASE_URL, "secret-token", client=http)


async def _create(client: SignatureProviderClient):
    return await client.create_envelope(
        name="Ana Souza * Piloto Comercial #101 (contract)",
        external_id="101_contract",
        content=b"%PDF-1",
        signers=[{"name": "Ana Souza", "email": "ana@example.com"}],
    )


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Envelope já enviado", True),
        ("Erro: ENVELOPE JÁ ENVIADO anteriormente", True),
        ("Envelope enviado", False),
        ("", False),
        (None, False),
    ],
)
def test_is_already_sent_message(text, expected) -> None:
    assert is_already_sent_message(text) is expected


def test_is_already_sent_error_checks_body() -> None:
    exc = ProviderError("HTTP 400", status_code=400, response_body='{"mens": "Envelope já enviado"}')
    assert is_already_sent_error(exc)
    assert not is_already_sent_error(ProviderError("HTTP 500", status_code=500))


async def test_create_envelope_request_and_receipt() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"token": "env-9", "status": "pending"})

    receipt = await _create(_client(handler))

    assert receipt.token == "env-9"
    assert receipt.status == "pending"
    assert seen["url"] == f"{BASE_URL}/docs/"
    assert seen["auth"] == "Bearer secret-token"
    assert seen["body"]["external_id"] == "101_contract"
    assert base64.b64decode(seen["body"]["base64_pdf"]) == b"%PDF-1"
    assert seen["body"]["signature_order_active"] is True


async def test_create_envelope_already_sent_answer() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"detail": "Envelope já enviado anteriormente."})

    with pytest.raises(ProviderError) as exc_info:
        await _create(_client(handler))

    assert exc_info.value.status_code == 400
    assert str(exc_info.value) == "Envelope já enviado anteriormente."
    assert is_already_sent_error(exc_info.value)


async def test_create_envelope_without_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"mens": "Envelope já enviado"})

    with pytest.raises(ProviderError) as exc_info:
        await _create(_client(handler))

    assert is_already_sent_error(exc_info.value)


async def test_transport_error_and_bad_body() -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    def html_body(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(ProviderError, match="unreachable"):
        await _create(_client(unreachable))
    with pytest.raises(ProviderError, match="non-JSON"):
        await _create(_client(html_body))


async def test_get_envelope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/docs/env-9/")
        return httpx.Response(200, json={"token": "env-9", "status": "signed"})

    receipt = await _client(handler).get_envelope("env-9")

    assert receipt.status == "signed"


def test_build_signers_orders_countersigners() -> None:
    enrollment = SimpleNamespace(client_name="Ana Souza", client_email=None, client_tax_id="123")
    countersigners = [
        {"name": "Escola", "email": "escola@example.com", "cpf": "1"},
        {"name": "Testemunha", "email": "t@example.com", "cpf": "2"},
    ]

    signers = build_signers(enrollment, countersigners)

    assert [s["order_group"] for s in signers] == [1, 2, 3]
    assert signers[0]["email"] == ""
    assert "auth_mode" not in signers[0]
    assert {s["auth_mode"] for s in signers[1:]} == {CPF_AUTH_MODE}
    assert all(s["send_automatic_email"] and not s["send_automatic_whatsapp"] for s in signers)

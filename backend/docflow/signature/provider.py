"""
Signature provider client — ZapSign-style REST API over httpx.

Two calls only:
    POST {base}/docs/          create an envelope (base64 PDF + signers)
    GET  {base}/docs/{token}/  read an envelope's current status

Non-2xx answers and transport failures become ProviderError carrying the
status code and raw body, so callers can inspect the provider's message.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

import httpx

from docflow.core.config import settings
from docflow.core.logging import get_logger
from docflow.pipeline.errors import ProviderError

logger = get_logger(__name__)

# Message the provider returns when an envelope for the same document was
# already created.  Matched as a substring, case-insensitively.
# Provider wording may change: prefer a status code if one is ever exposed.
ENVELOPE_ALREADY_SENT_MESSAGE = "Envelope já enviado"

EXPECTED_STATUS_CODES = (200, 201, 202)


def is_already_sent_message(text: str | None) -> bool:
    """True when a provider message says the envelope was already sent."""
    if not text:
        return False
    return ENVELOPE_ALREADY_SENT_MESSAGE.casefold() in text.casefold()


def is_already_sent_error(exc: ProviderError) -> bool:
    """Check both the error message and the raw response body."""
    return is_already_sent_message(str(exc)) or is_already_sent_message(exc.response_body)


@dataclass
class EnvelopeReceipt:
    """What the provider answered for a created or fetched envelope."""

    token: str
    status: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def _message_from_body(data: dict[str, Any]) -> str | None:
    for key in ("detail", "message", "mens", "error"):
        if data.get(key):
            return str(data[key])
    return None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return _message_from_body(body) or str(body)[:500]
    return str(body)[:500]


class SignatureProviderClient:
    """Authenticated calls to the signature provider."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_token}",
        }

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=self._headers(), json=body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=self._headers(), json=body)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Signature provider unreachable: {exc}") from exc

        if response.status_code not in EXPECTED_STATUS_CODES:
            raise ProviderError(
                _error_message(response),
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                "Signature provider returned a non-JSON body",
                status_code=response.status_code,
                response_body=response.text,
            ) from exc
        return data if isinstance(data, dict) else {"data": data}

    async def create_envelope(
        self,
        *,
        name: str,
        external_id: str,
        content: bytes,
        signers: list[dict[str, Any]],
    ) -> EnvelopeReceipt:
        """Create an envelope for one PDF.  Returns the provider token."""
        body = {
            "name": name,
            "external_id": external_id,
            "base64_pdf": base64.b64encode(content).decode("ascii"),
            "signers": signers,
            "lang": settings.SIGNATURE_LANG,
            "folder_path": settings.SIGNATURE_FOLDER_PATH,
            "brand_name": settings.SIGNATURE_BRAND_NAME,
            "brand_primary_color": settings.SIGNATURE_BRAND_PRIMARY_COLOR,
            "signature_order_active": True,
        }
        logger.info("Creating envelope", external_id=external_id, signers=len(signers))
        data = await self._request("POST", "docs/", body)

        token = data.get("token")
        if not token:
            # A 2xx without a token can still carry the provider's message
            raise ProviderError(
                _message_from_body(data) or "Signature provider response missing envelope token",
                response_body=str(data)[:1000],
            )
        return EnvelopeReceipt(token=str(token), status=data.get("status"), raw=data)

    async def get_envelope(self, token: str) -> EnvelopeReceipt:
        """Current state of an envelope."""
        data = await self._request("GET", f"docs/{token}/")
        return EnvelopeReceipt(token=str(data.get("token") or token), status=data.get("status"), raw=data)


def build_provider_client() -> SignatureProviderClient:
    """Client wired from settings."""
    return SignatureProviderClient(
        settings.SIGNATURE_API_BASE_URL,
        settings.SIGNATURE_API_TOKEN,
        timeout=settings.SIGNATURE_API_TIMEOUT_SECONDS,
    )

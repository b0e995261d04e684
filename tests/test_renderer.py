from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import httpx
import pytest

from conftest import FakePdfBackend

from docflow.documents.data import build_document_data, linked_contract_ids
from docflow.documents.renderer import (
    DocumentRenderer,
    HttpRenderBackend,
    WkhtmltopdfBackend,
    format_brl,
    template_for,
)
from docflow.pipeline.errors import RenderFailure, RenderTimeout, RenderUnavailable

RENDER_URL = "http://render.local/forms/chromium/convert/html"


def _document_data(kind: str = "contract") -> dict:
    enrollment = SimpleNamespace(
        id=101,
        token="tok-101",
        enrolled_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        client_name="Ana Souza",
        client_email="ana@example.com",
        client_tax_id="123.456.789-09",
        subtotal="45000.00",
        discount="500.00",
        total="44500.00",
        validity_days=15,
    )
    course = SimpleNamespace(
        id=1,
        name="Piloto Comercial",
        title=None,
        duration=18,
        duration_unit="meses",
        aircraft=["C152"],
        financial_snapshot=lambda: {
            "enrollment_fee": "1500.00",
            "total_value": "45000.00",
            "installments": 10,
            "installment_value": "4500.00",
        },
    )
    periods = [
        {"id": 11, "nome": "Período 1", "valor": "20000", "id_contratos": [7, 8]},
        {"id": 10, "nome": "Período 2", "valor": "25000", "id_contratos": [7]},
    ]
    return build_document_data(kind=kind, enrollment=enrollment, course=course, periods=periods)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1234.5", "1.234,50"), ("45000", "45.000,00"), (7, "7,00"), ("10,5", "10,50"), (None, ""), ("a combinar", "a combinar")],
)
def test_format_brl(value, expected) -> None:
    assert format_brl(value) == expected


def test_template_for_kind() -> None:
    assert template_for("proposal") == "proposal.html"
    assert template_for("contract") == "contract.html"
    with pytest.raises(ValueError):
        template_for("invoice")


def test_document_data_shape() -> None:
    data = _document_data()

    assert data["kind"] == "contract"
    assert data["enrollment"]["enrolled_at"] == "2024-03-01"
    assert data["course"]["title"] == "Piloto Comercial"
    assert data["terms"]["total"] == "44500.00"
    assert data["contract_ids"] == [7, 8]
    assert linked_contract_ids([{"id_contratos": None}, "junk"]) == []


@pytest.mark.parametrize("kind", ["proposal", "contract"])
def test_render_html_prints_periods_and_values(kind) -> None:
    renderer = DocumentRenderer(FakePdfBackend())

    html = renderer.render_html(template_for(kind), _document_data(kind))

    assert "Ana Souza" in html
    assert html.index("Período 1") < html.index("Período 2")
    assert "20.000,00" in html


def test_render_html_escapes_client_data() -> None:
    data = _document_data()
    data["client"]["name"] = "<script>x</script>"

    html = DocumentRenderer(FakePdfBackend()).render_html("contract.html", data)

    assert "<script>x</script>" not in html
    assert "&lt;script&gt;" in html


async def test_render_returns_backend_bytes() -> None:
    pdf = await DocumentRenderer(FakePdfBackend()).render("proposal.html", _document_data("proposal"))

    assert pdf.startswith(b"%PDF")


async def test_unknown_template_is_render_failure() -> None:
    with pytest.raises(RenderFailure):
        await DocumentRenderer(FakePdfBackend()).render("missing.html", {})


async def test_slow_backend_times_out() -> None:
    renderer = DocumentRenderer(FakePdfBackend(delay=1.0), timeout_seconds=0.05)

    with pytest.raises(RenderTimeout) as exc_info:
        await renderer.render("proposal.html", _document_data("proposal"))

    assert exc_info.value.timeout_seconds == 0.05


# ── Backends ──────────────────────────────────────────────


async def test_http_backend_posts_html() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content
        return httpx.Response(200, content=b"%PDF-remote")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        backend = HttpRenderBackend(RENDER_URL, timeout=5, client=client)
        pdf = await backend.convert("<p>ok</p>")

    assert pdf == b"%PDF-remote"
    assert b'filename="index.html"' in seen["body"]
    assert b"<p>ok</p>" in seen["body"]


def _server_error(request: httpx.Request) -> httpx.Response:
    return httpx.Response(500, text="chromium crashed")


def _refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused", request=request)


def _slow(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("slow", request=request)


@pytest.mark.parametrize(
    ("handler", "error"),
    [
        (_server_error, RenderFailure),
        (_refused, RenderUnavailable),
        (_slow, RenderTimeout),
    ],
)
async def test_http_backend_errors(handler, error) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        backend = HttpRenderBackend(RENDER_URL, timeout=5, client=client)
        with pytest.raises(error):
            await backend.convert("<p>x</p>")


async def test_wkhtmltopdf_missing_binary_is_unavailable(tmp_path) -> None:
    backend = WkhtmltopdfBackend(str(tmp_path / "no-such-wkhtmltopdf"))

    with pytest.raises(RenderUnavailable):
        await backend.convert("<p>x</p>")

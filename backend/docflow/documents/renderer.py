"""
DocumentRenderer — template + data in, PDF bytes out.

Two layers:
    1. Jinja2 renders `templates/<template_id>` to HTML (local, fast).
    2. An HtmlToPdfBackend converts the HTML (external, slow, flaky):
         - WkhtmltopdfBackend: spawns the wkhtmltopdf binary
         - HttpRenderBackend:  POSTs the HTML to a rendering service

The conversion is bounded by a timeout.  Failures surface as one of three
RenderError subclasses and are never retried here; the orchestrator owns
retry policy.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Protocol

import httpx
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from docflow.core.config import settings
from docflow.core.constants import DocumentKind, RenderBackend
from docflow.core.logging import get_logger
from docflow.pipeline.errors import RenderFailure, RenderTimeout, RenderUnavailable

logger = get_logger(__name__)

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

TEMPLATES: dict[DocumentKind, str] = {
    DocumentKind.PROPOSAL: "proposal.html",
    DocumentKind.CONTRACT: "contract.html",
}

# wkhtmltopdf flags: A4 full-bleed, print CSS, backgrounds on
WKHTMLTOPDF_OPTIONS = [
    "--quiet",
    "--encoding", "utf-8",
    "--page-size", "A4",
    "--margin-top", "0",
    "--margin-bottom", "0",
    "--margin-left", "0",
    "--margin-right", "0",
    "--zoom", "1.0",
    "--disable-smart-shrinking",
    "--print-media-type",
    "--background",
    "--enable-local-file-access",
]


def template_for(kind: str) -> str:
    """Template id for a document kind."""
    return TEMPLATES[DocumentKind(kind)]


def format_brl(value: Any) -> str:
    """'1234.5' -> '1.234,50'.  Non-numeric values pass through unchanged."""
    if value is None or value == "":
        return ""
    try:
        amount = Decimal(str(value).replace(",", "."))
    except InvalidOperation:
        return str(value)
    text = f"{amount:,.2f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _get_env(templates_dir: Path | None = None) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(templates_dir or _TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["brl"] = format_brl
    return env


# ═══════════════════════════════════════════════════════════
#  Backends
# ═══════════════════════════════════════════════════════════


class HtmlToPdfBackend(Protocol):
    async def convert(self, html: str) -> bytes:
        ...


class WkhtmltopdfBackend:
    """Convert with a local wkhtmltopdf binary (stdin HTML, stdout PDF)."""

    def __init__(self, binary: str, options: list[str] | None = None) -> None:
        self.binary = binary
        self.options = WKHTMLTOPDF_OPTIONS if options is None else options

    async def convert(self, html: str) -> bytes:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary, *self.options, "-", "-",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise RenderUnavailable(f"Cannot start {self.binary}: {exc}") from exc

        try:
            stdout, stderr = await proc.communicate(html.encode("utf-8"))
        except asyncio.CancelledError:
            # Timed out by the caller: do not leave the process behind
            proc.kill()
            await proc.wait()
            raise

        if proc.returncode != 0 or not stdout:
            message = stderr.decode("utf-8", errors="replace").strip()[-500:]
            raise RenderFailure(
                f"wkhtmltopdf exited with {proc.returncode}: {message}",
                details={"returncode": proc.returncode},
            )
        return stdout


class HttpRenderBackend:
    """Convert through an HTTP rendering service (Gotenberg-style multipart)."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def convert(self, html: str) -> bytes:
        files = {"files": ("index.html", html.encode("utf-8"), "text/html")}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, files=files)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, files=files)
        except httpx.TimeoutException as exc:
            raise RenderTimeout(f"Render service timed out: {exc}", timeout_seconds=self.timeout) from exc
        except httpx.TransportError as exc:
            raise RenderUnavailable(f"Render service unreachable: {exc}") from exc

        if not response.is_success:
            raise RenderFailure(
                f"Render service returned {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )
        return response.content


# ═══════════════════════════════════════════════════════════
#  Renderer
# ═══════════════════════════════════════════════════════════


class DocumentRenderer:
    """
    Renders a template with structured data and converts it to PDF bytes.

    Usage::

        renderer = build_renderer()
        pdf = await renderer.render("proposal.html", data)
    """

    def __init__(
        self,
        backend: HtmlToPdfBackend,
        *,
        timeout_seconds: float = 120.0,
        templates_dir: Path | None = None,
    ) -> None:
        self.backend = backend
        self.timeout_seconds = timeout_seconds
        self._env = _get_env(templates_dir)

    def render_html(self, template_id: str, data: dict[str, Any]) -> str:
        """Template step only; useful for previews."""
        try:
            template = self._env.get_template(template_id)
            return template.render(**data)
        except TemplateError as exc:
            raise RenderFailure(
                f"Template '{template_id}' failed: {exc}",
                details={"template_id": template_id},
            ) from exc

    async def render(self, template_id: str, data: dict[str, Any]) -> bytes:
        """Render `template_id` with `data` to PDF bytes, bounded by the timeout."""
        html = self.render_html(template_id, data)
        try:
            content = await asyncio.wait_for(
                self.backend.convert(html),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise RenderTimeout(
                f"Rendering '{template_id}' exceeded {self.timeout_seconds}s",
                timeout_seconds=self.timeout_seconds,
                details={"template_id": template_id},
            ) from exc

        logger.debug("Document rendered", template_id=template_id, size_bytes=len(content))
        return content


def build_renderer() -> DocumentRenderer:
    """Renderer wired from settings."""
    if settings.RENDER_BACKEND == RenderBackend.HTTP:
        backend: HtmlToPdfBackend = HttpRenderBackend(
            settings.RENDER_SERVICE_URL,
            timeout=settings.RENDER_TIMEOUT_SECONDS,
        )
    else:
        backend = WkhtmltopdfBackend(settings.WKHTMLTOPDF_BINARY)
    return DocumentRenderer(backend, timeout_seconds=settings.RENDER_TIMEOUT_SECONDS)

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from docflow.core.constants import PERIOD_ENTRY_TYPE
from docflow.curriculum.catalog import PeriodEntry, SqlPeriodCatalog
from docflow.db.models import Base, CatalogEntry, Course, Enrollment
from docflow.documents.renderer import DocumentRenderer
from docflow.pipeline.engine import PipelineOrchestrator
from docflow.pipeline.errors import ProviderError, RenderFailure
from docflow.signature.dispatcher import EnvelopeDispatcher
from docflow.signature.provider import EnvelopeReceipt
from docflow.storage.artifact_store import ArtifactStore

ALREADY_SENT_TEXT = "Envelope já enviado anteriormente."


# ═══════════════════════════════════════════════════════════
#  Fakes
# ═══════════════════════════════════════════════════════════


class FakePdfBackend:
    """HTML to "PDF" converter failing the first `failures` calls."""

    def __init__(self, failures: int = 0, error: Exception | None = None, delay: float = 0.0) -> None:
        self.failures = failures
        self.error = error or RenderFailure("renderer exited with 1")
        self.delay = delay
        self.calls = 0

    async def convert(self, html: str) -> bytes:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls <= self.failures:
            raise self.error
        return b"%PDF-1.4\n" + html.encode("utf-8")


class FakeSignatureProvider:
    """Provider that refuses a second envelope for the same external id."""

    def __init__(self, error: Exception | None = None, status: str = "pending") -> None:
        self.error = error
        self.status = status
        self.create_calls = 0
        self.created: dict[str, str] = {}
        self.last_signers: list[dict[str, Any]] = []

    async def create_envelope(
        self,
        *,
        name: str,
        external_id: str,
        content: bytes,
        signers: list[dict[str, Any]],
    ) -> EnvelopeReceipt:
        self.create_calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if external_id in self.created:
            raise ProviderError(
                ALREADY_SENT_TEXT,
                status_code=400,
                response_body='{"detail": "%s"}' % ALREADY_SENT_TEXT,
            )
        token = f"env-{len(self.created) + 1}"
        self.created[external_id] = token
        self.last_signers = signers
        return EnvelopeReceipt(token=token, status="pending", raw={"token": token, "status": "pending"})

    async def get_envelope(self, token: str) -> EnvelopeReceipt:
        return EnvelopeReceipt(token=token, status=self.status, raw={"token": token, "status": self.status})


class InMemoryCatalog:
    """PeriodCatalog over a fixed list, returned unsorted."""

    def __init__(self, entries: list[PeriodEntry] | None = None, error: Exception | None = None) -> None:
        self.entries = entries or []
        self.error = error
        self.calls = 0

    async def periods_for_course(self, course_id: int) -> list[PeriodEntry]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [
            e for e in self.entries
            if e.config.get("id_curso") == course_id or e.parent_id == course_id
        ]


# ═══════════════════════════════════════════════════════════
#  Database
# ═══════════════════════════════════════════════════════════


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'docflow.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


async def _seed(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        async with session.begin():
            session.add_all([
                # Dynamic course: periods come from the catalog
                Course(
                    id=1,
                    name="Piloto Comercial",
                    course_type="4",
                    duration=18,
                    duration_unit="meses",
                    modules=[{"etapa": "Teórico", "limite": "20"}],
                    aircraft='["`C152`", "PA-34"]',
                    enrollment_fee="1500,00",
                    total_value="45000",
                    installments="10",
                    installment_value="4500",
                ),
                # Static course: stored modules are authoritative
                Course(
                    id=2,
                    name="Comissário de Voo",
                    course_type="2",
                    duration=6,
                    duration_unit="meses",
                    modules='[{"etapa":"etapa1","limite":"10"}]',
                    enrollment_fee="300",
                    total_value="8000,00",
                    installments=4,
                    installment_value="2000",
                ),
            ])
            await session.flush()
            session.add_all([
                CatalogEntry(
                    id=10,
                    entry_type=PERIOD_ENTRY_TYPE,
                    title="Período 2 - Multimotor",
                    slug="periodo-2",
                    menu_order=2,
                    config={"id_curso": 1, "valor": "25000", "id_contratos": [7], "h_praticas": 40},
                ),
                CatalogEntry(
                    id=11,
                    entry_type=PERIOD_ENTRY_TYPE,
                    title="Período 1 - Monomotor",
                    slug="periodo-1",
                    menu_order=1,
                    config={"id_curso": 1, "valor": "20000", "id_contratos": [7, 8], "h_teoricas": 120},
                ),
                # Periods of the static course are never substituted
                CatalogEntry(
                    id=12,
                    entry_type=PERIOD_ENTRY_TYPE,
                    title="Período avulso",
                    slug="periodo-avulso",
                    menu_order=1,
                    config={"id_curso": 2},
                ),
                Enrollment(
                    id=101,
                    course_id=1,
                    token="tok-101",
                    client_name="Ana Souza",
                    client_email="ana@example.com",
                    client_tax_id="123.456.789-09",
                    subtotal="45000.00",
                    discount="0.00",
                    total="45000.00",
                    validity_days=15,
                ),
                Enrollment(
                    id=202,
                    course_id=2,
                    token="tok-202",
                    client_name="Bruno Lima",
                    client_email="bruno@example.com",
                    client_tax_id="987.654.321-00",
                    total="8000.00",
                ),
            ])


@pytest.fixture
async def seeded_db(session_factory):
    await _seed(session_factory)
    return session_factory


# ═══════════════════════════════════════════════════════════
#  Components
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def pdf_backend() -> FakePdfBackend:
    return FakePdfBackend()


@pytest.fixture
def provider() -> FakeSignatureProvider:
    return FakeSignatureProvider()


@pytest.fixture
def artifact_store(seeded_db) -> ArtifactStore:
    return ArtifactStore(seeded_db)


@pytest.fixture
def dispatcher(seeded_db, provider, artifact_store) -> EnvelopeDispatcher:
    return EnvelopeDispatcher(seeded_db, provider, artifact_store, countersigners=[])


@pytest.fixture
def make_orchestrator(seeded_db, pdf_backend, artifact_store, dispatcher):
    def _make(**overrides: Any) -> PipelineOrchestrator:
        options = {
            "renderer": DocumentRenderer(pdf_backend, timeout_seconds=5),
            "artifact_store": artifact_store,
            "dispatcher": dispatcher,
            "catalog": SqlPeriodCatalog(seeded_db),
            "max_render_attempts": 3,
            "backoff_seconds": 0,
        }
        options.update(overrides)
        return PipelineOrchestrator(seeded_db, **options)

    return _make

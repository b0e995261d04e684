from __future__ import annotations

import pytest

from docflow.core.constants import DocumentStage
from docflow.pipeline.engine import PipelineResult
from docflow.pipeline.errors import DocumentPipelineFailed
from docflow.tasks import document_tasks
from docflow.tasks.document_tasks import _parse_kinds, generate_documents


class _FakeEngine:
    def __init__(self) -> None:
        self.disposed = False

    async def dispose(self) -> None:
        self.disposed = True


class _FakeOrchestrator:
    def __init__(self, errored_kinds: tuple[str, ...] = ()) -> None:
        self.errored_kinds = errored_kinds
        self.calls: list[tuple[int, str, dict]] = []

    async def run(self, enrollment_id: int, kind: str, **options) -> PipelineResult:
        self.calls.append((enrollment_id, str(kind), options))
        errored = str(kind) in self.errored_kinds
        return PipelineResult(
            execution_id=f"exec-{kind}",
            enrollment_id=enrollment_id,
            kind=str(kind),
            state=DocumentStage.ERRORED if errored else DocumentStage.DONE,
            errored_stage="rendering" if errored else None,
            error="RenderTimeout after 3 attempts" if errored else None,
        )


@pytest.fixture
def engine() -> _FakeEngine:
    return _FakeEngine()


@pytest.fixture
def orchestrator(monkeypatch, engine) -> _FakeOrchestrator:
    fake = _FakeOrchestrator()
    monkeypatch.setattr(document_tasks, "make_session_factory", lambda: (object(), engine))
    monkeypatch.setattr(document_tasks, "build_orchestrator", lambda session_factory: fake)
    return fake


def test_parse_kinds() -> None:
    assert _parse_kinds(None) == (["proposal", "contract"], [])
    assert _parse_kinds("Contract") == (["contract"], [])
    assert _parse_kinds(["contract", "invoice", "contract", " PROPOSAL "]) == (["contract", "proposal"], ["invoice"])


def test_default_kinds_run_proposal_then_contract(orchestrator, engine) -> None:
    summary = generate_documents(101)

    assert [call[1] for call in orchestrator.calls] == ["proposal", "contract"]
    assert summary["enrollment_id"] == 101
    assert summary["errored"] == 0
    assert [doc["state"] for doc in summary["documents"]] == ["DONE", "DONE"]
    assert engine.disposed


def test_flags_reach_the_orchestrator(orchestrator) -> None:
    generate_documents(101, kinds=["contract"], force=True, render_only=True)

    [(enrollment_id, kind, options)] = orchestrator.calls
    assert (enrollment_id, kind) == (101, "contract")
    assert options["force"] is True
    assert options["render_only"] is True
    assert options["skip_store"] is False


def test_unknown_kinds_are_reported_and_ignored(orchestrator) -> None:
    summary = generate_documents(101, kinds=["invoice", "contract"])

    assert [call[1] for call in orchestrator.calls] == ["contract"]
    assert summary["rejected_kinds"] == ["invoice"]


def test_errored_document_is_acknowledged_by_default(orchestrator) -> None:
    orchestrator.errored_kinds = ("proposal",)

    summary = generate_documents(101)

    assert summary["errored"] == 1
    # One errored document does not stop the next kind
    assert [call[1] for call in orchestrator.calls] == ["proposal", "contract"]
    assert summary["documents"][0]["errored_stage"] == "rendering"


def test_errored_document_requests_redelivery_when_asked(orchestrator, engine) -> None:
    orchestrator.errored_kinds = ("contract",)

    with pytest.raises(DocumentPipelineFailed) as exc_info:
        generate_documents(101, redeliver_on_failure=True)

    assert "contract errored at rendering" in str(exc_info.value)
    assert exc_info.value.details["errored"] == 1
    assert engine.disposed

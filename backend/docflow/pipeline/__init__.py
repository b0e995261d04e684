"""
Pipeline Engine — document generation and dispatch orchestrator.

This package provides the step-based orchestrator that takes an enrollment
through Load → Resolve → Render → Store → Dispatch, with per-step logging,
retry, typed failure stages and an audit row per run.

The orchestrator itself lives in `docflow.pipeline.engine`; it is not
re-exported here because storage/signature modules import
`docflow.pipeline.errors` and must not pull the engine in with it.
"""

from docflow.pipeline.context import DocumentContext, RunOptions, StepResult
from docflow.pipeline.step import PipelineStep

__all__ = ["DocumentContext", "PipelineStep", "RunOptions", "StepResult"]

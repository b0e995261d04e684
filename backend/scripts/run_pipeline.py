#!/usr/bin/env python3
"""
Run the document pipeline locally without Celery.

Same orchestrator the worker uses, against the configured database,
renderer and signature provider.  Useful to re-drive an ERRORED document
by hand or to preview a PDF.

Usage:
    cd backend
    python -m scripts.run_pipeline 101
    python -m scripts.run_pipeline 101 --kind contract --force
    python -m scripts.run_pipeline 101 --kind proposal --skip-store --out /tmp/proposal.pdf
    python -m scripts.run_pipeline 101 --refresh
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate and dispatch enrollment documents")
    parser.add_argument("enrollment_id", type=int)
    parser.add_argument(
        "--kind",
        action="append",
        choices=["proposal", "contract"],
        help="Document kind (repeatable). Default: proposal and contract",
    )
    parser.add_argument("--force", action="store_true", help="Re-render even if an identical artifact exists")
    parser.add_argument("--skip-store", action="store_true", help="Render only; persist and send nothing")
    parser.add_argument("--render-only", action="store_true", help="Render and store, do not dispatch")
    parser.add_argument("--out", type=Path, help="With --skip-store: write the PDF here")
    parser.add_argument("--refresh", action="store_true", help="Only refresh envelope status from the provider")
    return parser.parse_args(argv)


def _print_result(result):
    """Pretty-print a PipelineResult."""
    print(f"\n{'─' * 50}")
    print(f"  Document     : {result.kind} (enrollment {result.enrollment_id})")
    print(f"  Execution ID : {result.execution_id[:12]}...")
    print(f"  State        : {result.state}")
    print(f"  Steps        : {result.steps_completed}/{result.total_steps}")
    print(f"  Duration     : {result.total_duration_ms}ms")
    if result.fingerprint:
        print(f"  Fingerprint  : {result.fingerprint[:16]}...")
    if result.artifact is not None:
        print(f"  Artifact     : {result.artifact.id} ({result.store_outcome})")
    if result.dispatch is not None:
        print(f"  Dispatch     : {result.dispatch.status} {result.dispatch.envelope_ref or ''}")
    if result.error:
        print(f"  Error        : [{result.errored_stage}] {result.error}")

    print("\n  Step Results:")
    for sr in result.step_results:
        icon = "✓" if sr["status"] == "COMPLETED" else "✗" if sr["status"] == "FAILED" else "⊘"
        print(f"    {icon} {sr['step_name']} ({sr['duration_ms']}ms)")
        for k, v in (sr.get("metadata") or {}).items():
            if k != "traceback":
                print(f"        {k}: {v}")
    print(f"{'─' * 50}\n")


async def main(argv=None):
    from docflow.core.logging import setup_logging
    from docflow.db.session import make_session_factory
    from docflow.pipeline.engine import build_orchestrator

    args = _parse_args(argv)
    setup_logging("WARNING")     # quiet logs, show formatted output only

    kinds = args.kind or ["proposal", "contract"]
    session_factory, engine = make_session_factory()
    failed = False
    try:
        orchestrator = build_orchestrator(session_factory)

        if args.refresh:
            for kind in kinds:
                status = await orchestrator.dispatcher.refresh_status(args.enrollment_id, kind)
                print(f"  {kind:<9}: {status or 'no envelope record'}")
            return 0

        for kind in kinds:
            result = await orchestrator.run(
                args.enrollment_id,
                kind,
                force=args.force,
                skip_store=args.skip_store,
                render_only=args.render_only,
            )
            _print_result(result)
            failed = failed or result.errored

            if args.out and result.content is not None:
                target = args.out if len(kinds) == 1 else args.out.with_name(f"{args.out.stem}_{kind}.pdf")
                target.write_bytes(result.content)
                print(f"  PDF written to {target}")
    finally:
        await engine.dispose()

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

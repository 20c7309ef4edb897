"""CLI entrypoint: single-page generation and CSV batch runs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List

from rich.table import Table

from config import get_settings
from core import AuthorCandidate, GenerationRequest, JobState, SourceDescriptor, SourceKind
from orchestrator import BatchOrchestrator, parse_batch_csv
from pipeline import GenerationPipeline
from sources import save_upload
from utils import PaperPageError, attach_package_loggers
from utils.logger import console


_STATE_STYLES = {
    JobState.QUEUED: "dim",
    JobState.RUNNING: "yellow",
    JobState.SUCCESS: "green",
    JobState.FAILED: "red",
}


def _author_list(text: str) -> List[AuthorCandidate]:
    raw = str(text or "").strip()
    if not raw:
        return []
    return [AuthorCandidate.model_validate(item) for item in json.loads(raw)]


def _upload_directory(files_dir: str, settings) -> Dict[str, str]:
    """Store every PDF of a directory as an upload, keyed by original name."""
    uploaded: Dict[str, str] = {}
    for path in sorted(Path(files_dir).glob("*.pdf")):
        uploaded[path.name] = save_upload(
            path.name,
            path.read_bytes(),
            uploads_root=settings.source.uploads_root,
            max_bytes=settings.source.max_upload_bytes,
        )
    return uploaded


def _jobs_table(orchestrator: BatchOrchestrator) -> Table:
    table = Table(title="Batch jobs", show_header=True)
    table.add_column("Project ID", style="cyan")
    table.add_column("Type")
    table.add_column("State")
    table.add_column("Title / Message", style="white")
    for job in orchestrator.jobs:
        style = _STATE_STYLES[job.state]
        table.add_row(
            job.id,
            job.source.kind.value,
            f"[{style}]{job.state.value}[/{style}]",
            job.result_title or job.message,
        )
    return table


async def _run_generate(args, settings) -> int:
    request = GenerationRequest(
        project_id=args.project_id,
        source=SourceDescriptor(kind=SourceKind(args.source_type), locator=args.source_url),
        authors_text=args.authors,
        author_list=_author_list(args.author_list_json),
        institution=args.institution,
        venue=args.venue,
        research_year=args.research_year,
    )
    pipeline = GenerationPipeline.from_settings(settings)
    try:
        result = await pipeline.run(request)
    except PaperPageError as e:
        print(json.dumps({"success": False, "kind": e.kind, "error": e.message}, ensure_ascii=False))
        return 1
    finally:
        await pipeline.aclose()

    print(
        json.dumps(
            {
                "success": True,
                "project_id": result.project_id,
                "title": result.record.title,
                "authors": [author.name for author in result.record.authors],
                "used_fallback": result.used_fallback,
                "document_path": result.document_path,
            },
            ensure_ascii=False,
        )
    )
    return 0


async def _run_batch(args, settings) -> int:
    rows = parse_batch_csv(Path(args.csv_path).read_text(encoding="utf-8"))
    files = _upload_directory(args.files_dir, settings) if args.files_dir else {}

    pipeline = GenerationPipeline.from_settings(settings)
    orchestrator = BatchOrchestrator(pipeline, max_workers=args.workers or settings.batch.max_workers)
    errors = orchestrator.load(rows, files)
    try:
        summary = await orchestrator.run_pending()
        if args.retry_failed and summary.failed:
            summary = await orchestrator.retry_failed()
    finally:
        await pipeline.aclose()

    console.print(_jobs_table(orchestrator))
    print(
        json.dumps(
            {
                "total": summary.total,
                "success": summary.success,
                "failed": summary.failed,
                "percent": summary.percent,
                "row_errors": [error.model_dump() for error in errors],
                "jobs": [
                    {"id": job.id, "state": job.state.value, "message": job.message, "title": job.result_title}
                    for job in orchestrator.jobs
                ],
            },
            ensure_ascii=False,
        )
    )
    return 0 if summary.failed == 0 and not errors else 1


def _run_upload(args, settings) -> int:
    path = Path(args.file)
    try:
        locator = save_upload(
            path.name,
            path.read_bytes(),
            uploads_root=settings.source.uploads_root,
            max_bytes=settings.source.max_upload_bytes,
        )
    except ValueError as e:
        print(json.dumps({"success": False, "error": str(e)}, ensure_ascii=False))
        return 1
    print(json.dumps({"success": True, "path": locator}, ensure_ascii=False))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Academic project page generator")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate")
    gen.add_argument("--project-id", required=True)
    gen.add_argument("--source-type", required=True, choices=[kind.value for kind in SourceKind])
    gen.add_argument("--source-url", required=True)
    gen.add_argument("--authors", default="", help="Comma separated, 'Name @ Affiliation' allowed")
    gen.add_argument("--author-list-json", default="")
    gen.add_argument("--institution", default="")
    gen.add_argument("--venue", default="")
    gen.add_argument("--research-year", default="")

    batch = sub.add_parser("batch")
    batch.add_argument("csv_path")
    batch.add_argument("--files-dir", default="")
    batch.add_argument("--workers", type=int, default=0)
    batch.add_argument("--retry-failed", action="store_true")

    upload = sub.add_parser("upload")
    upload.add_argument("file")

    args = parser.parse_args()
    attach_package_loggers(level=logging.DEBUG if args.verbose else logging.INFO)
    settings = get_settings()

    if args.command == "generate":
        return asyncio.run(_run_generate(args, settings))
    if args.command == "batch":
        return asyncio.run(_run_batch(args, settings))
    return _run_upload(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())

"""Command line interface for running and inspecting citation checks."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

from .client import CitationApiClient
from .config import Settings, load_settings
from .errors import CitationServiceError
from .models import CitationIssue, StatusUpdate
from .report import render_report
from .review import FinalReviewService
from .session import CitationCheckSession

logger = logging.getLogger("scholar_citations")


def _build_client(settings: Settings) -> CitationApiClient:
    return CitationApiClient.from_settings(settings)


def _print_status(update: StatusUpdate) -> None:
    print(f"{update.status} {update.step} {update.progress_pct}%", file=sys.stderr)


def _print_issue(issue: CitationIssue) -> None:
    print(f"  found {issue.type} at lines {issue.line_start}-{issue.line_end}", file=sys.stderr)


async def _check(client: CitationApiClient, args: argparse.Namespace) -> int:
    content = Path(args.input).read_text(encoding="utf-8")
    session = CitationCheckSession(
        client,
        args.project,
        content,
        enable_web=args.web,
        on_status=_print_status,
        on_issue=_print_issue,
        poll_interval=args.poll_interval,
    )
    started = await session.start(streaming=not args.poll_only)
    print(f"Started citation job {started.job_id}", file=sys.stderr)
    job = await session.wait()
    print(render_report(job))
    if args.json_output:
        args.json_output.write_text(json.dumps(job.to_dict(), indent=2))
    return 0


async def _status(client: CitationApiClient, args: argparse.Namespace) -> int:
    job = await client.get_citation_job(args.job_id)
    print(render_report(job))
    return 0


async def _result(client: CitationApiClient, args: argparse.Namespace) -> int:
    job = await client.get_citation_result(args.document_id)
    if job is None:
        print(f"No citation check has been run for document {args.document_id}.")
        return 0
    print(render_report(job))
    return 0


async def _cancel(client: CitationApiClient, args: argparse.Namespace) -> int:
    await client.cancel_citation_job(args.job_id)
    print(f"Cancelled citation job {args.job_id}")
    return 0


async def _review(client: CitationApiClient, args: argparse.Namespace) -> int:
    content = Path(args.input).read_text(encoding="utf-8")
    result = await FinalReviewService(client).review(content)
    print(result.text)
    return 0


COMMANDS = {
    "check": _check,
    "status": _status,
    "result": _result,
    "cancel": _cancel,
    "review": _review,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run and inspect ScholarAI citation checks")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check the citations of a LaTeX file")
    check.add_argument("input", help="Path to the .tex file to check")
    check.add_argument("--project", required=True, help="Project the document belongs to")
    check.add_argument("--web", action="store_true", help="Also search web sources for evidence")
    check.add_argument(
        "--poll-only",
        action="store_true",
        help="Follow the job by polling instead of the event stream",
    )
    check.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between job snapshots when polling",
    )
    check.add_argument(
        "--json-output",
        type=Path,
        help="Write the final job snapshot to a JSON file",
    )

    status = subparsers.add_parser("status", help="Show the current state of a job")
    status.add_argument("job_id")

    result = subparsers.add_parser("result", help="Show the latest check of a document")
    result.add_argument("document_id")

    cancel = subparsers.add_parser("cancel", help="Cancel a running job")
    cancel.add_argument("job_id")

    review = subparsers.add_parser("review", help="Request an AI final review of a file")
    review.add_argument("input", help="Path to the document to review")
    return parser


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings()
    async with _build_client(settings) as client:
        return await COMMANDS[args.command](client, args)


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except CitationServiceError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())

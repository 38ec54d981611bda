"""Command-line management for the docsearch index.

Usage::

    python -m docsearch.cli init-db
    python -m docsearch.cli add-document --workspace ws1 --id doc1 \\
        --title "Handbook" --file handbook.txt
    python -m docsearch.cli reindex --workspace ws1 [--document doc1 ...]
    python -m docsearch.cli remove --workspace ws1 [--document doc1 ...]
    python -m docsearch.cli status [--workspace ws1]
    python -m docsearch.cli ask "How do I deploy?" --workspace ws1

``reindex`` and ``remove`` run the indexing job in-process and wait for
it, bypassing the queue.  Without ``--document`` they act on the whole
workspace.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from docsearch.config.loader import load_config
from docsearch.config.settings import Settings
from docsearch.models.jobs import (
    DocumentReindexJob,
    DocumentRemoveJob,
    IndexingJob,
    WorkspaceCreateJob,
    WorkspaceDeleteJob,
)
from docsearch.models.streaming import (
    ContentDeltaEvent,
    ErrorEvent,
    SourcesAndMetaEvent,
)
from docsearch.utils.errors import DocSearchError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsearch",
        description="Manage the docsearch semantic index.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create document and embedding tables")

    add_doc = subparsers.add_parser("add-document", help="Insert or update a document from a text file")
    add_doc.add_argument("--workspace", required=True)
    add_doc.add_argument("--id", required=True, dest="document_id")
    add_doc.add_argument("--file", required=True, type=Path)
    add_doc.add_argument("--title", default=None)
    add_doc.add_argument("--space", default=None)
    add_doc.add_argument("--slug", default=None)

    reindex = subparsers.add_parser("reindex", help="Rebuild chunks for a workspace or documents")
    reindex.add_argument("--workspace", required=True)
    reindex.add_argument("--document", action="append", dest="documents", default=[])

    remove = subparsers.add_parser("remove", help="Delete chunks for a workspace or documents")
    remove.add_argument("--workspace", required=True)
    remove.add_argument("--document", action="append", dest="documents", default=[])

    status = subparsers.add_parser("status", help="Print the indexing health report as JSON")
    status.add_argument("--workspace", default=None)

    ask = subparsers.add_parser("ask", help="Ask a question and stream the answer")
    ask.add_argument("query")
    ask.add_argument("--workspace", default=None)
    ask.add_argument("--space", default=None)

    return parser


def _job_for_args(args: argparse.Namespace) -> IndexingJob:
    if args.command == "reindex":
        if args.documents:
            return DocumentReindexJob(workspace_id=args.workspace, document_ids=tuple(args.documents))
        return WorkspaceCreateJob(workspace_id=args.workspace)
    if args.documents:
        return DocumentRemoveJob(workspace_id=args.workspace, document_ids=tuple(args.documents))
    return WorkspaceDeleteJob(workspace_id=args.workspace)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_init_db(components: dict[str, Any]) -> int:
    await components["document_provider"].initialize()
    await components["embedding_store"].initialize()
    print("Tables ready.")
    return 0


async def _handle_add_document(args: argparse.Namespace, components: dict[str, Any]) -> int:
    if not args.file.exists():
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        return 1
    text = args.file.read_text(encoding="utf-8")
    await components["document_provider"].upsert_document(
        document_id=args.document_id,
        workspace_id=args.workspace,
        text_content=text,
        title=args.title,
        space_id=args.space,
        slug_id=args.slug,
    )
    print(f"Document {args.document_id} stored ({len(text)} chars).")
    return 0


async def _handle_job(args: argparse.Namespace, components: dict[str, Any]) -> int:
    job = _job_for_args(args)
    await components["indexing_consumer"].process(job)
    print(f"{job.kind} finished for workspace {job.workspace_id}.")
    return 0


async def _handle_status(args: argparse.Namespace, components: dict[str, Any]) -> int:
    report = await components["status_service"].status(args.workspace)
    print(json.dumps(report.model_dump(by_alias=True, exclude_none=True), indent=2))
    return 0


async def _handle_ask(args: argparse.Namespace, components: dict[str, Any]) -> int:
    events = components["answer_service"].ask(
        args.query, workspace_id=args.workspace, space_id=args.space
    )
    exit_code = 0
    try:
        async for event in events:
            if isinstance(event, SourcesAndMetaEvent):
                for number, source in enumerate(event.sources, start=1):
                    print(f"[{number}] {source.title or source.document_id} {source.link}")
                print()
            elif isinstance(event, ContentDeltaEvent):
                print(event.content, end="", flush=True)
            elif isinstance(event, ErrorEvent):
                print(f"\nError: {event.error}", file=sys.stderr)
                exit_code = 1
    finally:
        await events.aclose()
    print()
    return exit_code


async def run_command(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Dispatch *args* to its handler, mapping application errors to exit code 1."""
    try:
        if args.command == "init-db":
            return await _handle_init_db(components)
        if args.command == "add-document":
            return await _handle_add_document(args, components)
        if args.command in ("reindex", "remove"):
            return await _handle_job(args, components)
        if args.command == "status":
            return await _handle_status(args, components)
        if args.command == "ask":
            return await _handle_ask(args, components)
    except DocSearchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Error: unknown command {args.command}", file=sys.stderr)
    return 2


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    from docsearch.main import _build_all, shutdown_components

    components = _build_all(app_settings, load_config(settings=app_settings))
    try:
        if args.command != "init-db":
            await components["document_provider"].initialize()
        return await run_command(args, components)
    finally:
        await shutdown_components(components)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    sys.exit(asyncio.run(_run(args, app_settings)))


if __name__ == "__main__":
    main()

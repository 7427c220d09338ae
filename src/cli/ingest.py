# =============================================================================
# src/cli/ingest.py: Operator CLI for the Document Retrieval Core
# =============================================================================
#
# Standalone CLI for driving the ingestion pipeline and the hybrid index
# without the web upload flow.  Useful for backfills, debugging a single
# file's extraction, and checking what a tenant's search would return.
#
# Supported subcommands:
#
#   ingest    : Store a local file, create its document, and process it
#   search    : Run hybrid search for a tenant and print the LLM context
#   reprocess : Re-run the pipeline for a stored document
#   remove    : Drop a document's chunks from the index and the store
#   stats     : Index and processing statistics (optionally per tenant)
#
# Every command opens the same SQLite store and loads the hybrid index from
# it first, so search results reflect everything previously ingested.
#
# Provider Selection:
#   - Embedding: OpenAI (if OPENAI_API_KEY) -> Ollama (if OLLAMA_BASE_URL)
#     -> none (documents are indexed for keyword search only)
#   - OCR: Tesseract
#
# Usage examples:
#   python -m src.cli ingest --tenant acme --file ./q3-report.pdf
#   python -m src.cli search --tenant acme --query "Q3 revenue by region"
#   python -m src.cli reprocess --document-id 5f0c...
#   python -m src.cli remove --document-id 5f0c...
#   python -m src.cli stats --tenant acme
# =============================================================================

"""Operator CLI for the document retrieval core.

Usage::

    python -m src.cli ingest --tenant acme --file ./q3-report.pdf
    python -m src.cli search --tenant acme --query "Q3 revenue by region"
    python -m src.cli stats
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
import uuid
from pathlib import Path
from typing import Any

from src.config.settings import Settings

_FALLBACK_MEDIA_TYPE = "application/octet-stream"


def _guess_media_type(path: Path) -> str:
    media_type, _ = mimetypes.guess_type(path.name)
    return media_type or _FALLBACK_MEDIA_TYPE


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, services: dict[str, Any]) -> int:
    from src.models.document import Document

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    orchestrator = services["orchestrator"]
    media_type = args.media_type or _guess_media_type(path)
    if not orchestrator.is_media_type_supported(media_type):
        print(f"Error: unsupported media type: {media_type}", file=sys.stderr)
        return 1

    data = path.read_bytes()
    document_id = uuid.uuid4().hex
    storage_path = await services["object_storage"].upload(
        f"{args.tenant}/{document_id}/{path.name}", data, media_type
    )
    document = Document(
        document_id=document_id,
        tenant_id=args.tenant,
        filename=path.name,
        media_type=media_type,
        byte_length=len(data),
        storage_path=storage_path,
    )

    print(f"Ingesting {path.name} ({media_type}, {len(data)} bytes)")
    result = await orchestrator.process_document(document, data)
    _print_result(result)
    return 0 if result.succeeded else 1


async def _handle_search(args: argparse.Namespace, services: dict[str, Any]) -> int:
    search = services["search"]
    assembler = services["assembler"]
    settings: Settings = services["settings"]

    results = await search.search(
        args.query,
        tenant_id=args.tenant,
        file_ids=args.file_id or None,
        limit=args.limit or settings.search_default_limit,
    )
    if not results:
        print("No relevant document content found.")
        return 0

    print(assembler.assemble(results))
    print("Sources:")
    for citation in assembler.citations(results):
        print(f"  {citation['filename']:<40} {citation['chunk_id']}  ({citation['similarity']:.3f})")
    return 0


async def _handle_reprocess(args: argparse.Namespace, services: dict[str, Any]) -> int:
    result = await services["orchestrator"].reprocess_document(args.document_id)
    _print_result(result)
    return 0 if result.succeeded else 1


async def _handle_remove(args: argparse.Namespace, services: dict[str, Any]) -> int:
    removed = await services["orchestrator"].remove_document_processing(args.document_id)
    await services["store"].delete_document(args.document_id)
    print(f"Removed document {args.document_id} ({removed} indexed chunks)")
    return 0


async def _handle_stats(args: argparse.Namespace, services: dict[str, Any]) -> int:
    from src.config.loader import load_config

    config = load_config(settings=services["settings"])
    index_stats = services["index"].stats(args.tenant)
    processing = await services["orchestrator"].get_processing_stats(args.tenant)

    print(f"{config.get('app', {}).get('name', 'docvault-retrieval')} statistics")
    print("=" * 40)
    if args.tenant:
        print(f"  Tenant:             {args.tenant}")
    print(f"  Embedding:          {', '.join(config['embedding']['available_providers']) or 'none'}")
    print(f"  Indexed chunks:     {index_stats.total_chunks}")
    print(f"  Embedded chunks:    {index_stats.embedded_chunks}")
    print(f"  Indexed documents:  {index_stats.total_documents}")
    print(f"  Tenants:            {index_stats.total_tenants}")
    print(f"  Keywords:           {index_stats.keyword_count}")
    print(f"  Avg chunk chars:    {index_stats.avg_chunk_chars:.0f}")
    print()
    print("  Documents by state:")
    print(f"    {'pending':<12} {processing.pending}")
    print(f"    {'processing':<12} {processing.processing}")
    print(f"    {'completed':<12} {processing.completed}")
    print(f"    {'failed':<12} {processing.failed}")
    print(f"    {'total':<12} {processing.total}")
    return 0


def _print_result(result: Any) -> None:
    status = result.status
    print(f"\nDocument {result.document_id}: {status.state.value}")
    if status.reason:
        print(f"  Reason:   {status.reason} ({status.error_code})")
    print(f"  Chunks:   {result.chunk_count} (indexed {result.indexed_count})")
    if result.lexical_only:
        print("  Mode:     keyword-only (no embedding provider)")
    print(f"  Time:     {result.elapsed_seconds:.2f}s")


_HANDLERS = {
    "ingest": _handle_ingest,
    "search": _handle_search,
    "reprocess": _handle_reprocess,
    "remove": _handle_remove,
    "stats": _handle_stats,
}


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    """Build and open the services, dispatch one command, then shut down."""
    from src.main import build_services, close_services, open_services

    services = build_services(app_settings)
    await open_services(services)
    try:
        return await _HANDLERS[args.command](args, services)
    finally:
        await close_services(services)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the operator CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Ingest documents and query the tenant-scoped hybrid index.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest a local file")
    ingest_parser.add_argument("--tenant", required=True, help="Owning tenant id")
    ingest_parser.add_argument("--file", required=True, help="Path to the file")
    ingest_parser.add_argument(
        "--media-type",
        dest="media_type",
        default=None,
        help="MIME type (guessed from the file extension when omitted)",
    )

    # -- search --
    search_parser = subparsers.add_parser("search", help="Search a tenant's documents")
    search_parser.add_argument("--tenant", required=True, help="Tenant to search")
    search_parser.add_argument("--query", required=True, help="Free-text query")
    search_parser.add_argument("--limit", type=int, default=None, help="Maximum results")
    search_parser.add_argument(
        "--file-id",
        dest="file_id",
        action="append",
        default=[],
        help="Restrict to this document id (repeatable)",
    )

    # -- reprocess --
    reprocess_parser = subparsers.add_parser("reprocess", help="Re-run the pipeline for a document")
    reprocess_parser.add_argument("--document-id", dest="document_id", required=True)

    # -- remove --
    remove_parser = subparsers.add_parser("remove", help="Remove a document and its chunks")
    remove_parser.add_argument("--document-id", dest="document_id", required=True)

    # -- stats --
    stats_parser = subparsers.add_parser("stats", help="Show index and processing statistics")
    stats_parser.add_argument("--tenant", default=None, help="Limit to one tenant")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, configures logging from the environment-backed
    Settings, and exits with the handler's status code.
    """
    from src.utils.logging import configure_logging

    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    exit_code = asyncio.run(_run(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

"""
LedgerLens - Offline CSV Ingestion
===================================
CLI entry point that orchestrates:
    1. Validate settings (``GOOGLE_API_KEY`` present — fail-fast).
    2. Initialise the embedder and ``TransactionVectorStore``
       (optionally dropping the existing table).
    3. Run the same ``CSVIngestionPipeline`` that backs ``POST /sync``.
    4. Print a structured execution summary.

Flags:
    --drop         Drop the LanceDB table before ingesting.
    --drop-only    Drop the table and exit immediately (no ingestion).
    --batch-size   Override ``INGEST_BATCH_SIZE``.
    --delay        Override ``INGEST_BATCH_DELAY_SECONDS``.

Usage:
    python -m ledgerlens.scripts.ingest_csv data/transactions.csv
    python -m ledgerlens.scripts.ingest_csv data/transactions.csv --drop --delay 0
    ledgerlens-ingest --drop-only
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ledgerlens-ingest", description="LedgerLens — load a CSV export into the vector table.")
    parser.add_argument("csv_path", nargs="?", type=Path, help="CSV file to ingest.")
    parser.add_argument("--drop", action="store_true", default=False, help="Drop the LanceDB table before ingesting.")
    parser.add_argument("--drop-only", action="store_true", default=False, help="Drop the LanceDB table and exit (no ingestion).")
    parser.add_argument("--batch-size", type=int, default=None, help="Documents per upsert batch.")
    parser.add_argument("--delay", type=float, default=None, help="Seconds to wait between batches.")
    args = parser.parse_args(argv)

    if not args.drop_only and args.csv_path is None:
        parser.error("csv_path is required unless --drop-only is given")
    return args


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    try:
        from ledgerlens.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)

    # Logger import reads settings, so it comes after the check above
    from ledgerlens.src.utils.logger import get_logger
    logger = get_logger(__name__)

    _print_header(settings, args.csv_path)

    # Must run before the store is opened: --drop is destructive
    if not args.drop_only and not args.csv_path.is_file():
        logger.error("CSV file not found: %s", args.csv_path)
        sys.exit(1)

    from ledgerlens.src.core.clients import build_embedder
    from ledgerlens.src.database.vector_store import TransactionVectorStore

    try:
        embedder = build_embedder()
    except Exception:
        logger.exception("Failed to initialise embedding model.")
        sys.exit(1)

    store = TransactionVectorStore(embedder=embedder)

    if args.drop or args.drop_only:
        logger.warning("Dropping table '%s' as requested.", store.table_name)
        store.drop_table()

        if args.drop_only:
            logger.info("--drop-only: Table dropped. Exiting.")
            return

        # Re-initialise so a fresh table is created
        store = TransactionVectorStore(embedder=embedder)

    logger.info("VectorStore ready — table '%s' (%d existing rows).", store.table_name, store.count())

    from ledgerlens.src.core.ingestor import CSVIngestionPipeline

    pipeline = CSVIngestionPipeline(vector_store=store, embedder=embedder, batch_size=args.batch_size, batch_delay=args.delay)
    result = asyncio.run(pipeline.ingest_file(args.csv_path))

    _print_footer(result, store.count(), time.perf_counter() - t_start)

    if result["summary"]["failed"]:
        sys.exit(2)


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object, csv_path: Path | None) -> None:
    api_key_val = settings.GOOGLE_API_KEY.get_secret_value()  # type: ignore[attr-defined]
    masked = f"****{api_key_val[-4:]}" if len(api_key_val) > 4 else "****"

    print()
    print("=" * 60)
    print("  LEDGERLENS — CSV Ingestion")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                     # type: ignore[attr-defined]
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")         # type: ignore[attr-defined]
    print(f"  LanceDB URI  : {settings.LANCEDB_URI}")             # type: ignore[attr-defined]
    print(f"  Table        : {settings.LANCEDB_TABLE_NAME}")      # type: ignore[attr-defined]
    print(f"  Source file  : {csv_path or '-'}")
    print(f"  API Key      : {masked}")
    print("=" * 60)
    print()


def _print_footer(result: dict, table_rows: int, elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Rows parsed          : {result['total_documents']}")
    print(f"  Rows upserted        : {result['processed_documents']}")
    print(f"  Batches (ok / failed): {result['summary']['successful']} / {result['summary']['failed']}")
    print(f"  Table rows now       : {table_rows}")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)

    for batch in result["results"]:
        if batch["status"] == "error":
            print(f"  ✗ batch {batch['batch_number']} (rows {batch['start_index']}–{batch['end_index']}): {batch['error']}")
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()

"""
LedgerLens - CSVIngestionPipeline
==================================
Turns an uploaded CSV export into vector-store rows:
read → one ``Document`` per row → fixed-size batches → upsert.

Key design decisions:
    • **Dependency Injection** – receives the vector store + embedder.
    • **Sequential batches** – each batch is upserted in turn with a
      fixed pause in between to stay under the embedding API quota.
      No pause follows the last batch.
    • **Failure isolation** – a failed batch is recorded in the result
      list and the loop moves on; nothing is retried.
    • **Temp-file hygiene** – uploads are spooled to ``UPLOAD_TMP_DIR``
      and removed in a ``finally`` block whatever the outcome.

Usage:
    from ledgerlens.src.core.ingestor import CSVIngestionPipeline
    pipeline = CSVIngestionPipeline(vector_store, embedder)
    CSVIngestionPipeline.validate_upload(filename, content_type)
    result = await pipeline.ingest_upload(content, filename)
"""

from __future__ import annotations

import asyncio
import math
import tempfile
import time
from pathlib import Path
from typing import Any

from langchain_community.document_loaders import CSVLoader
from langchain_core.documents import Document

from ledgerlens.config.settings import settings
from ledgerlens.src.database.vector_store import Embedder, TransactionVectorStore
from ledgerlens.src.utils.logger import get_logger
from ledgerlens.src.utils.text_utils import clean_text

logger = get_logger(__name__)

CSV_CONTENT_TYPE = "text/csv"
CSV_SUFFIX = ".csv"

BatchResult = dict[str, str | int]


class CSVIngestionPipeline:
    """
    CSV ingestion: load rows → batch → embed + upsert.

    Parameters
    ----------
    vector_store
        An initialised ``TransactionVectorStore`` (injected).
    embedder
        Embedding model used for the one-off dimension probe.
    batch_size
        Documents per upsert.  Defaults to ``settings.INGEST_BATCH_SIZE``.
    batch_delay
        Seconds to wait between batches.  Defaults to
        ``settings.INGEST_BATCH_DELAY_SECONDS``.
    """

    def __init__(self, vector_store: TransactionVectorStore, embedder: Embedder, batch_size: int | None = None, batch_delay: float | None = None) -> None:
        self._store = vector_store
        self._embedder = embedder
        self._batch_size = settings.INGEST_BATCH_SIZE if batch_size is None else batch_size
        self._batch_delay = settings.INGEST_BATCH_DELAY_SECONDS if batch_delay is None else batch_delay

        if self._batch_size < 1:
            raise ValueError(f"batch_size must be ≥ 1, got {self._batch_size}")

    # ══════════════════════════════════════════════════════════════════
    #  VALIDATION
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def validate_upload(filename: str | None, content_type: str | None) -> None:
        """
        Reject anything that is neither served as ``text/csv`` nor named ``*.csv``.

        Raises
        ------
        ValueError
            With the message returned to the client.
        """
        if not filename:
            raise ValueError("No CSV file provided")

        media_type = (content_type or "").split(";")[0].strip().lower()
        if media_type != CSV_CONTENT_TYPE and not filename.lower().endswith(CSV_SUFFIX):
            raise ValueError("File must be a CSV")

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC ENTRY POINTS
    # ══════════════════════════════════════════════════════════════════

    async def ingest_upload(self, content: bytes, filename: str) -> dict[str, Any]:
        """Spool *content* to a temp file, ingest it, and always remove the file."""
        settings.UPLOAD_TMP_DIR.mkdir(parents=True, exist_ok=True)
        source_name = Path(filename).name

        with tempfile.NamedTemporaryFile(dir=settings.UPLOAD_TMP_DIR, prefix="upload_", suffix=CSV_SUFFIX, delete=False) as handle:
            handle.write(content)
            temp_path = Path(handle.name)

        try:
            return await self.ingest_file(temp_path, source_name)
        finally:
            try:
                temp_path.unlink(missing_ok=True)
                logger.debug("Temporary file cleaned up: %s", temp_path.name)
            except OSError:
                logger.exception("Error cleaning up temporary file: %s", temp_path)


    async def ingest_file(self, path: Path, source_name: str | None = None) -> dict[str, Any]:
        """Load *path* as CSV and upsert its rows batch by batch."""
        documents = self.load_documents(path, source_name or path.name)
        logger.info("Loaded %d documents from CSV '%s'.", len(documents), source_name or path.name)

        if documents:
            self._probe_dimension(documents[0])

        return await self.run_batches(documents)


    def load_documents(self, path: Path, source_name: str) -> list[Document]:
        """Parse every CSV row into a ``Document`` tagged with ``source`` and ``row``."""
        loader = CSVLoader(file_path=str(path), encoding="utf-8-sig")
        return [
            Document(page_content=clean_text(raw.page_content), metadata={"source": source_name, "row": int(raw.metadata.get("row", idx))})
            for idx, raw in enumerate(loader.load())
        ]


    async def run_batches(self, documents: list[Document]) -> dict[str, Any]:
        """
        Upsert *documents* in sequential batches.

        Returns
        -------
        dict
            Execution summary with keys ``total_documents``,
            ``processed_documents``, ``total_batches``, ``batch_size``,
            ``embedding_model``, ``expected_embedding_dimension``,
            ``results`` and ``summary``.
        """
        t_start = time.perf_counter()
        total = len(documents)
        total_batches = math.ceil(total / self._batch_size)
        processed = 0
        results: list[BatchResult] = []

        for i in range(total_batches):
            start = i * self._batch_size
            end = min(start + self._batch_size, total)
            batch = documents[start:end]
            logger.info("Processing batch %d/%d (%d documents)", i + 1, total_batches, len(batch))

            try:
                self._store.add_documents(batch)
                processed += len(batch)
                results.append(self._batch_result(i, batch, start, end, len(batch), "success"))
                logger.info("Batch %d completed. Total processed: %d/%d", i + 1, processed, total)
            except Exception as exc:
                logger.exception("Error processing batch %d", i + 1)
                results.append(self._batch_result(i, batch, start, end, 0, "error", str(exc)))

            if i < total_batches - 1:
                await self._pause()

        successful = sum(1 for r in results if r["status"] == "success")
        logger.info("Ingestion complete — %d/%d document(s), %d/%d batch(es) ok in %.2fs.", processed, total, successful, total_batches, time.perf_counter() - t_start)

        return {
            "total_documents": total,
            "processed_documents": processed,
            "total_batches": total_batches,
            "batch_size": self._batch_size,
            "embedding_model": settings.EMBEDDING_MODEL,
            "expected_embedding_dimension": settings.EMBEDDING_DIMENSION,
            "results": results,
            "summary": {"successful": successful, "failed": len(results) - successful},
        }

    # ══════════════════════════════════════════════════════════════════
    #  HELPERS
    # ══════════════════════════════════════════════════════════════════

    async def _pause(self) -> None:
        if self._batch_delay > 0:
            await asyncio.sleep(self._batch_delay)


    def _probe_dimension(self, document: Document) -> None:
        """Embed one row and warn if the vector width differs from the table schema."""
        vector = self._embedder.embed_query(document.page_content)
        logger.info("Embedding dimension: %d (expected: %d)", len(vector), settings.EMBEDDING_DIMENSION)
        if len(vector) != settings.EMBEDDING_DIMENSION:
            logger.warning("Embedding dimension is %d, expected %d", len(vector), settings.EMBEDDING_DIMENSION)


    @staticmethod
    def _batch_result(index: int, batch: list[Document], start: int, end: int, processed: int, status: str, error: str | None = None) -> BatchResult:
        result: BatchResult = {
            "batch_number": index + 1,
            "documents_in_batch": len(batch),
            "documents_processed": processed,
            "start_index": start,
            "end_index": end - 1,
            "status": status,
        }
        if error is not None:
            result["error"] = error
        return result

"""
LedgerLens - TransactionVectorStore
====================================
OOP wrapper around LanceDB providing a clean interface for:
  • Table creation with a strict PyArrow schema
  • Document upsert (embedding + metadata) keyed by a stable row id
  • Cosine similarity search returning ``(Document, score)`` pairs

Design decisions:
  • **Singleton DB connection** — ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per URI at module level.
  • **Local or hosted** — ``LANCEDB_URI`` may be a directory or a
    ``db://`` LanceDB Cloud project; the API key is only sent for the latter.
  • **Dependency Injection** — the embedder is injected, never
    hard-coded, making the store testable with fake embedders.
  • **Similarity, not distance** — LanceDB reports cosine *distance*;
    callers get ``score = 1 - distance`` so higher is more relevant.

Usage:
    from ledgerlens.src.core.clients import build_embedder
    from ledgerlens.src.database.vector_store import TransactionVectorStore

    store = TransactionVectorStore(build_embedder())
    store.add_documents(documents)
    matches = store.similarity_search_with_score("largest payment", k=4)
"""

from __future__ import annotations

import hashlib
import threading
from typing import Protocol, runtime_checkable

import lancedb
import pyarrow as pa
from langchain_core.documents import Document

from ledgerlens.config.settings import settings
from ledgerlens.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
DocumentRecord = dict[str, str | int | list[float]]
ScoredMatch = tuple[Document, float]


# ── Embedder Protocol ─────────────────────────────────────────────────

@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


def build_schema(dimension: int) -> pa.Schema:
    """Table schema for transaction rows with a ``dimension``-wide vector column."""
    return pa.schema([
        pa.field("id", pa.utf8()),
        pa.field("vector", pa.list_(pa.float32(), dimension)),
        pa.field("text", pa.utf8()),
        pa.field("source", pa.utf8()),
        pa.field("row", pa.int32()),
    ])


def document_id(source: str, row: int) -> str:
    """Stable id for a CSV row: re-ingesting the same file overwrites its rows."""
    return hashlib.sha1(f"{source}:{row}".encode("utf-8")).hexdigest()


# ── Connection cache ──────────────────────────────────────────────────
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def _get_connection(uri: str) -> lancedb.DBConnection:
    """
    Return a **singleton** ``lancedb.DBConnection`` for *uri*.

    Thread-safe via ``_DB_LOCK``.  Remote (``db://``) URIs are opened with
    ``LANCEDB_API_KEY`` and ``LANCEDB_REGION``.
    """
    if uri not in _db_connection_cache:
        with _DB_LOCK:
            if uri not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", uri)
                if uri.startswith("db://"):
                    if settings.LANCEDB_API_KEY is None:
                        raise RuntimeError("LANCEDB_API_KEY is required for a hosted LanceDB URI.")
                    _db_connection_cache[uri] = lancedb.connect(uri, api_key=settings.LANCEDB_API_KEY.get_secret_value(), region=settings.LANCEDB_REGION)
                else:
                    _db_connection_cache[uri] = lancedb.connect(uri)
    return _db_connection_cache[uri]


class TransactionVectorStore:
    """
    High-level abstraction over a LanceDB vector table of CSV rows.

    Parameters
    ----------
    embedder : Embedder
        Any object satisfying the ``Embedder`` protocol.
    uri
        Override the database location.  Defaults to ``settings.LANCEDB_URI``.
    table_name
        Override the table name.  Defaults to ``settings.LANCEDB_TABLE_NAME``.
    dimension
        Override the vector width.  Defaults to ``settings.EMBEDDING_DIMENSION``.
    """

    __slots__ = ("embedder", "_uri", "_table_name", "_dimension", "db", "table")

    def __init__(self, embedder: Embedder, uri: str | None = None, table_name: str | None = None, dimension: int | None = None) -> None:
        self.embedder: Embedder = embedder
        self._uri: str = str(uri or settings.LANCEDB_URI)
        self._table_name: str = table_name or settings.LANCEDB_TABLE_NAME
        self._dimension: int = dimension or settings.EMBEDDING_DIMENSION
        self.db: lancedb.DBConnection | None = None
        self.table: lancedb.table.Table | None = None
        self._connect()


    @property
    def table_name(self) -> str:
        return self._table_name


    def _connect(self) -> None:
        """Open (or re-use) the LanceDB connection and initialise the table."""
        try:
            self.db = _get_connection(self._uri)

            if self._table_name in self.db.table_names():
                self.table = self.db.open_table(self._table_name)
                logger.info("Opened existing table '%s' (%d rows).", self._table_name, self.table.count_rows())
            else:
                self.table = self.db.create_table(self._table_name, schema=build_schema(self._dimension))
                logger.info("Created new table '%s' (dimension=%d).", self._table_name, self._dimension)

        except OSError as exc:
            logger.error("LanceDB filesystem error at %s: %s", self._uri, exc)
            raise
        except Exception:
            logger.exception("Unexpected error connecting to LanceDB.")
            raise


    def _require_table(self) -> lancedb.table.Table:
        if self.table is None:
            raise RuntimeError("Vector table is not initialised. Call _connect() first.")
        return self.table


    def add_documents(self, documents: list[Document]) -> int:
        """
        Embed documents and upsert them by ``(source, row)``.

        Parameters
        ----------
        documents
            Documents whose metadata carries ``source`` and ``row``.

        Returns
        -------
        int
            Number of rows written.
        """
        table = self._require_table()
        if not documents:
            return 0

        texts = [doc.page_content for doc in documents]
        try:
            vectors = self.embedder.embed_documents(texts)
        except Exception as exc:
            logger.error("Embedding %d documents failed: %s", len(texts), exc)
            raise

        if len(vectors) != len(documents):
            raise ValueError(f"Embedder returned {len(vectors)} vectors for {len(documents)} documents.")

        records: list[DocumentRecord] = []
        for doc, vec in zip(documents, vectors):
            source = str(doc.metadata.get("source", "unknown"))
            row = int(doc.metadata.get("row", 0))
            records.append({"id": document_id(source, row), "vector": vec, "text": doc.page_content, "source": source, "row": row})

        try:
            table.merge_insert("id").when_matched_update_all().when_not_matched_insert_all().execute(records)
        except OSError as exc:
            logger.error("Failed to write records to LanceDB: %s", exc)
            raise

        logger.info("Upserted %d documents into table '%s'.", len(records), self._table_name)
        return len(records)


    def similarity_search_by_vector_with_score(self, vector: list[float], k: int = 4) -> list[ScoredMatch]:
        """
        Nearest-neighbour search for a pre-computed query vector.

        Returns
        -------
        list[ScoredMatch]
            Up to ``k`` ``(Document, similarity)`` pairs, most similar first.
        """
        table = self._require_table()
        if table.count_rows() == 0:
            logger.info("Table '%s' is empty; search skipped.", self._table_name)
            return []

        rows = table.search(vector, vector_column_name="vector").distance_type("cosine").limit(k).to_list()

        matches: list[ScoredMatch] = []
        for row in rows:
            doc = Document(page_content=row["text"], metadata={"id": row["id"], "source": row["source"], "row": row["row"]})
            matches.append((doc, 1.0 - float(row["_distance"])))

        logger.info("Search returned %d results (k=%d).", len(matches), k)
        return matches


    def similarity_search_with_score(self, query: str, k: int = 4) -> list[ScoredMatch]:
        """Embed *query* and delegate to ``similarity_search_by_vector_with_score``."""
        try:
            vector = self.embedder.embed_query(query)
        except Exception as exc:
            logger.error("Failed to embed query: %s", exc)
            raise
        return self.similarity_search_by_vector_with_score(vector, k)


    def count(self) -> int:
        """Return the total number of rows in the table."""
        if self.table is None:
            return 0
        return self.table.count_rows()


    def drop_table(self) -> None:
        """Drop the vector table (used by the CLI before a clean re-ingest)."""
        if self.db is None:
            logger.warning("No database connection; nothing to drop.")
            return
        try:
            self.db.drop_table(self._table_name)
            self.table = None
            logger.info("Dropped table '%s'.", self._table_name)
        except (ValueError, FileNotFoundError):
            logger.warning("Table '%s' does not exist — nothing to drop.", self._table_name)
        except OSError as exc:
            logger.error("Filesystem error dropping table '%s': %s", self._table_name, exc)
            raise


    def __repr__(self) -> str:
        return f"TransactionVectorStore(uri='{self._uri}', table='{self._table_name}', rows={self.count()})"

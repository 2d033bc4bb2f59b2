"""
Lazily-initialised clients shared across requests.

Each provider builds its object on first use and caches it at module
level; tests swap them out through ``app.dependency_overrides``.
"""

from __future__ import annotations

import threading

from ledgerlens.src.core.clients import build_chat_model, build_embedder
from ledgerlens.src.core.ingestor import CSVIngestionPipeline
from ledgerlens.src.core.rag_engine import ChatEngine
from ledgerlens.src.core.summarizer import FinancialSummarizer
from ledgerlens.src.database.vector_store import Embedder, TransactionVectorStore
from ledgerlens.src.utils.logger import get_logger

logger = get_logger(__name__)

_LOCK = threading.Lock()
_embedder: Embedder | None = None
_vector_store: TransactionVectorStore | None = None
_chat_engine: ChatEngine | None = None
_summarizer: FinancialSummarizer | None = None


def get_embedder() -> Embedder:
    global _embedder
    with _LOCK:
        if _embedder is None:
            _embedder = build_embedder()
    return _embedder


def get_vector_store() -> TransactionVectorStore:
    global _vector_store
    embedder = get_embedder()
    with _LOCK:
        if _vector_store is None:
            _vector_store = TransactionVectorStore(embedder)
    return _vector_store


def get_chat_engine() -> ChatEngine:
    global _chat_engine
    store, embedder = get_vector_store(), get_embedder()
    with _LOCK:
        if _chat_engine is None:
            _chat_engine = ChatEngine(store, embedder)
    return _chat_engine


def get_summarizer() -> FinancialSummarizer:
    global _summarizer
    store, embedder = get_vector_store(), get_embedder()
    with _LOCK:
        if _summarizer is None:
            _summarizer = FinancialSummarizer(store, embedder, build_chat_model())
    return _summarizer


def get_ingestion_pipeline() -> CSVIngestionPipeline:
    # Stateless apart from its clients, so one per request is fine
    return CSVIngestionPipeline(get_vector_store(), get_embedder())


def reset_clients() -> None:
    """Forget every cached client (called on shutdown)."""
    global _embedder, _vector_store, _chat_engine, _summarizer
    with _LOCK:
        _embedder = _vector_store = _chat_engine = _summarizer = None
    logger.info("Cached clients released.")

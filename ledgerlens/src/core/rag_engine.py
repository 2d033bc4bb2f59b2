"""
LedgerLens - Chat Engine
=========================
Retrieval-augmented question answering over ingested transaction rows.

Flow:
    1. Validate the query and result limit.
    2. Embed the query (Gemini embeddings).
    3. Nearest-neighbour search for ``limit`` rows.
    4. Drop matches below ``CHAT_RELEVANCE_THRESHOLD``.
    5. No survivors → canned reply, no LLM call.
    6. Pick a system prompt by keyword match on the lowercased query.
    7. Render matches as numbered records and call Gemini once.

Usage:
    from ledgerlens.src.core.rag_engine import ChatEngine
    engine = ChatEngine(vector_store, embedder)
    reply = await engine.answer("What was the largest payment?")
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from ledgerlens.config.prompt_templates import CHAT_CONTEXT_SEPARATOR, CHAT_USER_TEMPLATE, DEFAULT_PROMPT, NO_RESULTS_RESPONSE, PROMPT_RULES
from ledgerlens.config.settings import settings
from ledgerlens.src.core.clients import build_chat_model
from ledgerlens.src.database.vector_store import Embedder, ScoredMatch, TransactionVectorStore
from ledgerlens.src.utils.logger import get_logger
from ledgerlens.src.utils.text_utils import format_scored_records

logger = get_logger(__name__)

ChatModelFactory = Callable[[float | None], BaseChatModel]


def select_system_prompt(query: str) -> str:
    """Return the first prompt whose keywords occur in the lowercased query, else the default."""
    query_lower = query.lower()
    for keywords, prompt in PROMPT_RULES:
        if any(keyword in query_lower for keyword in keywords):
            return prompt
    return DEFAULT_PROMPT


def filter_by_threshold(matches: list[ScoredMatch], threshold: float) -> list[ScoredMatch]:
    """Keep matches whose similarity is at least *threshold*."""
    return [(doc, score) for doc, score in matches if score >= threshold]


def retrieve(store: TransactionVectorStore, embedder: Embedder, query: str, limit: int, threshold: float) -> list[ScoredMatch]:
    """Embed *query*, search the store for *limit* rows, and apply *threshold*."""
    vector = embedder.embed_query(query)
    raw = store.similarity_search_by_vector_with_score(vector, limit)
    kept = filter_by_threshold(raw, threshold)
    logger.debug("[RETRIEVE] %d/%d matches ≥ %.2f.", len(kept), len(raw), threshold)
    return kept


class ChatEngine:
    """
    Answers free-text questions about the stored transactions.

    Parameters
    ----------
    vector_store
        An initialised ``TransactionVectorStore``.
    embedder
        An ``Embedder``-compatible object for query embedding.
    model_factory
        Builds a chat model for a given temperature (``None`` = default).
        The default-temperature model is built once and reused.
    """

    __slots__ = ("_store", "_embedder", "_model_factory", "_default_llm")

    def __init__(self, vector_store: TransactionVectorStore, embedder: Embedder, model_factory: ChatModelFactory = build_chat_model) -> None:
        self._store = vector_store
        self._embedder = embedder
        self._model_factory = model_factory
        self._default_llm: BaseChatModel | None = None


    def _llm_for(self, temperature: float | None) -> BaseChatModel:
        if temperature is not None:
            return self._model_factory(temperature)
        if self._default_llm is None:
            self._default_llm = self._model_factory(None)
        return self._default_llm


    async def answer(self, query: str, limit: int | None = None, temperature: float | None = None) -> dict[str, Any]:
        """
        Run retrieval + generation for one query.

        Returns
        -------
        dict
            ``response``, ``query``, ``results_found`` and, when the LLM was
            called, ``metadata`` (``top_scores``, ``model``, ``embedding_model``).

        Raises
        ------
        ValueError
            Empty query or a non-positive ``limit``.
        """
        if not query or not query.strip():
            raise ValueError("Query is required")

        limit = settings.CHAT_DEFAULT_LIMIT if limit is None else limit
        if limit < 1:
            raise ValueError(f"limit must be ≥ 1, got {limit}")

        t_start = time.perf_counter()
        matches = retrieve(self._store, self._embedder, query, limit, settings.CHAT_RELEVANCE_THRESHOLD)

        if not matches:
            logger.info("[CHAT] No relevant matches for query '%s'.", query[:50])
            return {"response": NO_RESULTS_RESPONSE, "query": query, "results_found": 0}

        content = await self.generate(query, matches, self._llm_for(temperature))
        logger.info("[CHAT] Answered with %d match(es) in %.1fms.", len(matches), (time.perf_counter() - t_start) * 1000)

        return {
            "response": content,
            "query": query,
            "results_found": len(matches),
            "metadata": {
                "top_scores": [score for _, score in matches],
                "model": settings.LLM_MODEL,
                "embedding_model": settings.EMBEDDING_MODEL,
            },
        }


    @staticmethod
    async def generate(query: str, matches: list[ScoredMatch], llm: BaseChatModel) -> str:
        """Build the system + user messages and return the model's text."""
        context = format_scored_records(matches, CHAT_CONTEXT_SEPARATOR)
        messages = [
            SystemMessage(content=select_system_prompt(query)),
            HumanMessage(content=CHAT_USER_TEMPLATE.format(context=context, query=query)),
        ]
        response = await llm.ainvoke(messages)
        content = response.content if hasattr(response, "content") else str(response)
        if not isinstance(content, str):
            content = str(content)
        return content

"""
Request / response models for the HTTP API.

Python attributes are snake_case; the wire format is camelCase.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── /sync ─────────────────────────────────────────────────────────────

class BatchResult(CamelModel):
    batch_number: int
    documents_in_batch: int
    documents_processed: int
    start_index: int
    end_index: int
    status: Literal["success", "error"]
    error: str | None = None


class SyncSummary(CamelModel):
    successful: int
    failed: int


class SyncResponse(CamelModel):
    total_documents: int
    processed_documents: int
    total_batches: int
    batch_size: int
    embedding_model: str
    expected_embedding_dimension: int
    results: list[BatchResult]
    summary: SyncSummary


# ── /chat ─────────────────────────────────────────────────────────────

class ChatRequest(CamelModel):
    query: str | None = None
    limit: int | None = None
    temperature: float | None = None


class ChatMetadata(CamelModel):
    top_scores: list[float]
    model: str
    embedding_model: str


class ChatResponse(CamelModel):
    response: str
    query: str
    results_found: int
    metadata: ChatMetadata | None = None


# ── /summarize ────────────────────────────────────────────────────────

class Period(CamelModel):
    start_date: str
    end_date: str
    description: str


class SummaryResponse(CamelModel):
    success: bool
    records_analyzed: int | None = None
    period: Period | None = None
    insights: dict[str, Any] | None = None
    generated_at: str | None = None
    error: str | None = None
    details: str | None = None
    suggestion: str | None = None


# ── /status ───────────────────────────────────────────────────────────

class StatusResponse(CamelModel):
    status: str
    table: str
    rows: int
    embedding_model: str
    llm_model: str

"""
LedgerLens - API Routes
========================
Thin controllers: validate the request, delegate to the core engines,
translate failures into HTTP responses.

    POST /sync       → CSV upload → batched upsert into the vector table
    POST /chat       → retrieval-augmented answer to a free-text query
    GET  /summarize  → fixed-schema financial analysis
    GET  /status     → table name and row count
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ledgerlens.config.settings import settings
from ledgerlens.src.api.dependencies import get_chat_engine, get_ingestion_pipeline, get_summarizer, get_vector_store
from ledgerlens.src.api.schemas import ChatRequest, ChatResponse, StatusResponse, SummaryResponse, SyncResponse
from ledgerlens.src.core.ingestor import CSVIngestionPipeline
from ledgerlens.src.core.rag_engine import ChatEngine
from ledgerlens.src.core.summarizer import FinancialSummarizer
from ledgerlens.src.database.vector_store import TransactionVectorStore
from ledgerlens.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/sync", response_model=SyncResponse, response_model_exclude_unset=True)
async def sync(
    file: UploadFile | None = File(None),
    pipeline: CSVIngestionPipeline = Depends(get_ingestion_pipeline),
) -> SyncResponse:
    try:
        CSVIngestionPipeline.validate_upload(file.filename if file else None, file.content_type if file else None)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        content = await file.read()
        result = await pipeline.ingest_upload(content, file.filename)
    except Exception as exc:
        logger.exception("Error processing CSV '%s'", file.filename)
        raise HTTPException(status_code=400, detail=f"Failed to process CSV: {exc}")

    return SyncResponse(**result)


@router.post("/chat", response_model=ChatResponse, response_model_exclude_unset=True)
async def chat(request: ChatRequest, engine: ChatEngine = Depends(get_chat_engine)) -> ChatResponse:
    try:
        result = await engine.answer(request.query or "", limit=request.limit, temperature=request.temperature)
    except Exception as exc:
        logger.exception("Error in chat endpoint")
        raise HTTPException(status_code=400, detail=f"Chat processing failed: {exc}")

    return ChatResponse(**result)


@router.get("/summarize", response_model=SummaryResponse, response_model_exclude_unset=True)
async def summarize(summarizer: FinancialSummarizer = Depends(get_summarizer)) -> SummaryResponse:
    try:
        result = await summarizer.summarize()
    except Exception as exc:
        logger.exception("Financial summarization error")
        return SummaryResponse(
            success=False,
            error="Failed to generate financial summary",
            details=str(exc),
            suggestion="Please check your transaction data format and try again",
        )

    return SummaryResponse(**result)


@router.get("/status", response_model=StatusResponse)
async def status(store: TransactionVectorStore = Depends(get_vector_store)) -> StatusResponse:
    return StatusResponse(
        status="ok",
        table=store.table_name,
        rows=store.count(),
        embedding_model=settings.EMBEDDING_MODEL,
        llm_model=settings.LLM_MODEL,
    )

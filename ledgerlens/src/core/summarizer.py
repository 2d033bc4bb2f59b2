"""
LedgerLens - Financial Summarizer
==================================
Produces the fixed-schema financial analysis served by ``GET /summarize``.

Flow:
    1. One broad similarity query (``TRANSACTION_PROBE_QUERY``), top
       ``SUMMARY_TOP_K`` rows, kept if ≥ ``SUMMARY_RELEVANCE_THRESHOLD``.
    2. All survivors are rendered into a single prompt that demands the
       analysis JSON schema.
    3. One Gemini call.
    4. The reply is repaired (code fences and surrounding prose stripped)
       and parsed; anything that is not a JSON object degrades to a
       zeroed fallback flagged with ``processingError``.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from ledgerlens.config.prompt_templates import ANALYSIS_CONTEXT_SEPARATOR, ANALYSIS_SYSTEM_PROMPT, ANALYSIS_USER_TEMPLATE, FALLBACK_RECOMMENDATIONS, REQUIRED_ANALYSIS_SECTIONS, TRANSACTION_PROBE_QUERY
from ledgerlens.config.settings import settings
from ledgerlens.src.core.rag_engine import retrieve
from ledgerlens.src.database.vector_store import Embedder, ScoredMatch, TransactionVectorStore
from ledgerlens.src.utils.logger import get_logger
from ledgerlens.src.utils.text_utils import extract_period, format_scored_records

logger = get_logger(__name__)

_CODE_FENCE_RE = re.compile(r"```json\s*|\s*```")
_OUTER_OBJECT_RE = re.compile(r"^[^{]*(\{[\s\S]*\})[^}]*$")

NO_RECORDS_ERROR = "No transaction records found in the database"
NO_RECORDS_SUGGESTION = "Please upload transaction data first using the /sync endpoint"


def build_fallback_analysis(record_count: int, raw_response: str) -> dict[str, Any]:
    """Zeroed analysis returned when the model's reply cannot be parsed."""
    return {
        "totalTransactions": {
            "count": record_count,
            "description": "Total number of transactions processed in the selected period",
        },
        "totalAmountInOut": {
            "totalInflow": 0,
            "totalOutflow": 0,
            "netAmount": 0,
            "description": "Unable to calculate due to parsing error - please check data format",
        },
        "bankwiseSummary": {"banks": [], "description": "Bank analysis unavailable due to processing error"},
        "top5ContactsByExpense": {"contacts": [], "description": "Contact analysis unavailable due to processing error"},
        "accountwiseSpending": {"accounts": [], "description": "Account analysis unavailable due to processing error"},
        "monthlyTrend": {"months": [], "description": "Monthly trend analysis unavailable due to processing error"},
        "transactionTypeDistribution": {"types": [], "description": "Transaction type analysis unavailable due to processing error"},
        "keyInsights": {
            "highestExpenseMonth": "Unknown",
            "lowestExpenseMonth": "Unknown",
            "averageMonthlySpending": 0,
            "mostFrequentTransactionType": "Unknown",
            "largestSingleTransaction": 0,
            "financialHealthScore": 50,
            "recommendations": list(FALLBACK_RECOMMENDATIONS),
        },
        "executiveSummary": f"Analysis of {record_count} transaction records encountered processing errors. Please review data format and try again.",
        "processingError": True,
        "rawResponse": raw_response,
    }


def repair_json_text(raw: str) -> str:
    """Strip ```json fences and any prose before the first ``{`` / after the last ``}``."""
    text = _CODE_FENCE_RE.sub("", raw.strip())
    return _OUTER_OBJECT_RE.sub(r"\1", text)


def parse_analysis(raw: str, record_count: int) -> dict[str, Any]:
    """
    Parse the model's reply into the analysis object.

    Missing sections are only logged; an unparsable reply or a JSON value
    that is not an object yields ``build_fallback_analysis``.
    """
    try:
        parsed = json.loads(repair_json_text(raw))
    except json.JSONDecodeError as exc:
        logger.error("[SUMMARY] JSON parsing error: %s", exc)
        logger.debug("[SUMMARY] Raw model output: %s", raw)
        return build_fallback_analysis(record_count, raw)

    if not isinstance(parsed, dict):
        logger.error("[SUMMARY] Model returned %s instead of a JSON object.", type(parsed).__name__)
        return build_fallback_analysis(record_count, raw)

    for section in REQUIRED_ANALYSIS_SECTIONS:
        if section not in parsed:
            logger.warning("[SUMMARY] Missing section: %s", section)

    return parsed


class FinancialSummarizer:
    """
    One-shot financial analysis over the most transaction-like rows.

    Parameters
    ----------
    vector_store
        An initialised ``TransactionVectorStore``.
    embedder
        An ``Embedder``-compatible object for the probe query.
    llm
        Chat model used for the analysis call.
    """

    __slots__ = ("_store", "_embedder", "_llm")

    def __init__(self, vector_store: TransactionVectorStore, embedder: Embedder, llm: BaseChatModel) -> None:
        self._store = vector_store
        self._embedder = embedder
        self._llm = llm


    def fetch_transactions(self) -> list[ScoredMatch]:
        """Run the fixed probe query and keep matches above the summary threshold."""
        return retrieve(self._store, self._embedder, TRANSACTION_PROBE_QUERY, settings.SUMMARY_TOP_K, settings.SUMMARY_RELEVANCE_THRESHOLD)


    async def analyse(self, matches: list[ScoredMatch]) -> dict[str, Any]:
        """Call the model once with every match and parse its JSON reply."""
        context = format_scored_records(matches, ANALYSIS_CONTEXT_SEPARATOR)
        messages = [
            SystemMessage(content=ANALYSIS_SYSTEM_PROMPT),
            HumanMessage(content=ANALYSIS_USER_TEMPLATE.format(context=context)),
        ]
        response = await self._llm.ainvoke(messages)
        raw = response.content if hasattr(response, "content") else str(response)
        if not isinstance(raw, str):
            raw = str(raw)
        return parse_analysis(raw, len(matches))


    async def summarize(self) -> dict[str, Any]:
        """
        Full ``/summarize`` payload.

        Returns ``{"success": False, "error", "suggestion"}`` when nothing
        clears the threshold; otherwise ``success``, ``records_analyzed``,
        ``period``, ``insights`` and ``generated_at``.  Client errors from
        the embedder, store or LLM propagate to the caller.
        """
        matches = self.fetch_transactions()
        if not matches:
            logger.info("[SUMMARY] No transaction records above threshold.")
            return {"success": False, "error": NO_RECORDS_ERROR, "suggestion": NO_RECORDS_SUGGESTION}

        insights = await self.analyse(matches)
        logger.info("[SUMMARY] Analysed %d record(s).", len(matches))

        return {
            "success": True,
            "records_analyzed": len(matches),
            "period": extract_period(doc.page_content for doc, _ in matches),
            "insights": insights,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }

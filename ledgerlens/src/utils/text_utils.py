"""
LedgerLens - Text Utilities
============================
Helpers for cleaning CSV row text, rendering scored matches into a prompt
context block, and recovering a reporting period from free-form records.

These utilities are consumed by the ingestion pipeline and by both
engines and should remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable
from datetime import datetime

from langchain_core.documents import Document


# ── Non-printable character pattern ────────────────────────────────────
# Control characters (C0/C1) except \n, \r, \t, plus BOM and zero-width marks.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")

# ── Date tokens, in the formats the transaction exports use ────────────
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4}|\d{2}-\d{2}-\d{4}")
_DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


def clean_text(text: str) -> str:
    """
    Sanitise raw row text for embedding.

    Steps:
        1. Unicode NFC normalisation.
        2. Strip non-printable / zero-width characters (BOM, soft hyphens).
        3. Collapse runs of horizontal whitespace into one space,
           *preserving* newlines.
        4. Strip leading / trailing whitespace from every line.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(lines).strip()


def format_scored_records(matches: Iterable[tuple[Document, float]], separator: str) -> str:
    """Render ``(document, score)`` pairs as numbered records with a relevance percentage."""
    return separator.join(
        f"Record {i} (Relevance: {score * 100:.1f}%):\n{doc.page_content}"
        for i, (doc, score) in enumerate(matches, 1)
    )


def _parse_date(token: str) -> datetime | None:
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(token, fmt)
        except ValueError:
            continue
    return None


def extract_period(texts: Iterable[str]) -> dict[str, str]:
    """
    Derive the covered period from the first date-like token of each text.

    Tokens are ordered chronologically (day-first for the slash and dash
    formats); tokens that look like dates but are not valid calendar
    dates are ignored.  Tokens are returned as written.

    Examples::

        ["Date: 2024-03-05 ...", "Date: 01/02/2024 ..."]
            → startDate="01/02/2024", endDate="2024-03-05"
        ["no dates here"]
            → startDate="Unknown", endDate="Unknown"
    """
    found: list[tuple[datetime, str]] = []
    for text in texts:
        match = _DATE_RE.search(text)
        if match is None:
            continue
        parsed = _parse_date(match.group(0))
        if parsed is not None:
            found.append((parsed, match.group(0)))

    if not found:
        return {
            "startDate": "Unknown",
            "endDate": "Unknown",
            "description": "Transaction period could not be determined",
        }

    found.sort(key=lambda item: item[0])
    start, end = found[0][1], found[-1][1]
    return {
        "startDate": start,
        "endDate": end,
        "description": f"Analysis covers transactions from {start} to {end}",
    }

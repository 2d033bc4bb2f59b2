"""
LedgerLens - Centralized Configuration
=======================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.
- ``LANCEDB_API_KEY`` is also ``SecretStr``.  It is only needed when
  ``LANCEDB_URI`` points at the hosted LanceDB Cloud (``db://...``).

Vector index
------------
``LANCEDB_URI`` is either a local directory or a ``db://<project>`` URI.
``LANCEDB_TABLE_NAME`` is the index that ``/sync`` writes to and that
``/chat`` and ``/summarize`` read from.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required** — the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini).  **Required.**
    EMBEDDING_MODEL : str
        Model identifier passed to ``GoogleGenerativeAIEmbeddings``.
    EMBEDDING_DIMENSION : int
        Vector width of the table schema (3072 for ``gemini-embedding-001``).
    LLM_MODEL : str
        Model identifier for ``ChatGoogleGenerativeAI``.
    INGEST_BATCH_SIZE : int
        Documents upserted per batch during ``/sync``.
    INGEST_BATCH_DELAY_SECONDS : float
        Pause between two consecutive batches.
    CHAT_RELEVANCE_THRESHOLD / SUMMARY_RELEVANCE_THRESHOLD : float
        Minimum cosine similarity a match needs to be kept.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    UPLOAD_TMP_DIR: Path = BASE_DIR / "data" / "tmp"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys (REQUIRED — no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    EMBEDDING_DIMENSION: int = 3072
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.6

    # ── LanceDB ────────────────────────────────────────────────────────
    LANCEDB_URI: str = str(BASE_DIR / "data" / "lancedb")
    LANCEDB_API_KEY: SecretStr | None = None
    LANCEDB_REGION: str = "us-east-1"
    LANCEDB_TABLE_NAME: str = "transactions"

    # ── Ingestion ──────────────────────────────────────────────────────
    INGEST_BATCH_SIZE: int = 50
    INGEST_BATCH_DELAY_SECONDS: float = 2.0

    # ── Retrieval ──────────────────────────────────────────────────────
    CHAT_DEFAULT_LIMIT: int = 4
    CHAT_RELEVANCE_THRESHOLD: float = 0.5
    SUMMARY_TOP_K: int = 50
    SUMMARY_RELEVANCE_THRESHOLD: float = 0.6

    # ── HTTP ───────────────────────────────────────────────────────────
    APP_TITLE: str = "LedgerLens"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: list[str] = ["*"]

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("INGEST_BATCH_SIZE", "EMBEDDING_DIMENSION", "CHAT_DEFAULT_LIMIT", "SUMMARY_TOP_K")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be ≥ 1, got {v}")
        return v


    @field_validator("INGEST_BATCH_DELAY_SECONDS")
    @classmethod
    def _delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"INGEST_BATCH_DELAY_SECONDS must be ≥ 0, got {v}")
        return v


    @field_validator("CHAT_RELEVANCE_THRESHOLD", "SUMMARY_RELEVANCE_THRESHOLD")
    @classmethod
    def _threshold_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"relevance threshold must be within 0–1, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from ledgerlens.config.settings import settings
settings = Settings()

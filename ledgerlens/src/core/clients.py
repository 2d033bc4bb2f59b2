"""
LedgerLens - Hosted Model Clients
==================================
Factories for the two Gemini clients the service talks to:

``build_embedder``
    ``GoogleGenerativeAIEmbeddings`` — text → fixed-length vectors
    (3072 floats for ``gemini-embedding-001``).

``build_chat_model``
    ``ChatGoogleGenerativeAI`` — one instance per distinct temperature.
    Request-level temperatures are clamped to ``[0, 2]`` and get their
    own client, so the shared default model is never reconfigured.
"""

from __future__ import annotations

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings

from ledgerlens.config.settings import settings
from ledgerlens.src.utils.logger import get_logger

logger = get_logger(__name__)

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0


def clamp_temperature(value: float) -> float:
    """Clamp a caller-supplied temperature into Gemini's accepted range."""
    return max(MIN_TEMPERATURE, min(MAX_TEMPERATURE, float(value)))


def build_embedder() -> GoogleGenerativeAIEmbeddings:
    """Initialise the Gemini embedding client."""
    embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("Embedder initialised: %s", settings.EMBEDDING_MODEL)
    return embedder


def build_chat_model(temperature: float | None = None) -> BaseChatModel:
    """Initialise a Gemini chat model; ``None`` means ``settings.LLM_TEMPERATURE``."""
    resolved = settings.LLM_TEMPERATURE if temperature is None else clamp_temperature(temperature)
    llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=resolved, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, resolved)
    return llm

"""
LedgerLens - Logging
=====================
One stdout logger per module for the API, the engines and the ingestion CLI.

Level follows ``settings.ENV``: ``"dev"`` logs DEBUG (per-batch progress,
retrieval counts, raw model output on JSON failures); ``"prod"`` keeps
WARNING and above (failed batches, dimension mismatches, missing analysis
sections).  Engine messages carry a bracketed stage tag such as
``[CHAT]``, ``[RETRIEVE]`` or ``[SUMMARY]`` so a request can be followed
through the log with grep.  uvicorn's access log is left untouched.

Usage:
    from ledgerlens.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("[CHAT] Answered with %d match(es).", n)
"""

import logging
import sys

from ledgerlens.config.settings import settings

# ── Resolve default level from environment mode ───────────────────────
_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}
_DEFAULT_LEVEL = _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Create and return a named logger with a standardised formatter.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit logging level override.
               If *None*, the level is derived from ``settings.ENV``.
    """
    resolved_level = level if level is not None else _DEFAULT_LEVEL
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(resolved_level)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(resolved_level)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)

        # One handler per named logger; the root logger stays quiet
        logger.propagate = False

    return logger

"""
LedgerLens - Application Entry Point
=====================================
FastAPI application factory: registers the routes from
``ledgerlens.src.api.routes``, configures CORS, and releases the cached
Gemini / LanceDB clients on shutdown.  Clients themselves are created
lazily on the first request that needs them.

Run:
    uvicorn ledgerlens.src.api.app:app --reload
    python -m ledgerlens.src.api.app
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledgerlens.config.settings import settings
from ledgerlens.src.api.dependencies import reset_clients
from ledgerlens.src.api.routes import router
from ledgerlens.src.utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (env=%s, table=%s)", settings.APP_TITLE, settings.ENV, settings.LANCEDB_TABLE_NAME)
    yield
    reset_clients()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_TITLE, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="info")


if __name__ == "__main__":
    main()

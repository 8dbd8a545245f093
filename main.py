"""
Social connection service — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import config
from connectors.factory import get_users_connection_repository
from connectors.routes import router as connect_router
from database.session import create_schema, get_engine

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("sqlalchemy.engine", "aiosqlite", "asyncpg", "httpx"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Social Connect",
        version="1.0.0",
        description="Per-user connections to external identity providers.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(connect_router, prefix="/api/v1/connect")

    @app.on_event("startup")
    async def on_startup():
        logger.info("Preparing connection tables…")
        await create_schema(get_engine(), config.kind_prefix)

        logger.info("Discovering connection factories…")
        repository = get_users_connection_repository()
        if not repository.locator.registered_provider_ids():
            logger.warning("No providers configured; every connection lookup will be empty")

        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )

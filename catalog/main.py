"""
Catalog admin FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from catalog import config, db
from catalog.routes import admin as admin_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Startup checks settings and opens the database pool; shutdown closes it.
    """
    config.require("DATABASE_URL", "JWT_SECRET")
    logging.basicConfig(
        level=config.settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    await db.init_pool()
    logger.info("Database pool initialized (%s)", config.settings.ENVIRONMENT)

    yield

    await db.close_pool()
    logger.info("Database pool closed")


app = FastAPI(
    title="Catalog",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(admin_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}

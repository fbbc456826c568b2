"""
Notetree Backend Application

FastAPI application entrypoint with async lifespan management.
Handles startup (database readiness, schema, query cache) and graceful
shutdown.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from notetree.api.v1.generate import router as generate_router
from notetree.api.v1.notes import router as notes_router
from notetree.api.v1.notes import shared_router
from notetree.core.config import settings
from notetree.core.database import dispose_engine, get_engine, init_models
from notetree.core.errors import register_error_handlers
from notetree.core.logging import setup_logging
from notetree.services.notes import query_cache

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Wait for the database to become available.

    Useful in containerized environments where the database may start
    after the application. Implements retry logic with linear delay.

    Args:
        retries: Maximum connection attempts.
        delay: Seconds between attempts.

    Returns:
        True if connection established, False if all retries exhausted.
    """
    engine = get_engine()
    for i in range(retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.info("Database connection established")
                return True
        except Exception as e:
            logger.warning(
                "Waiting for database (%d/%d)... Error: %s", i + 1, retries, e
            )
            await asyncio.sleep(delay)

    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Validates database connectivity (required, blocks startup on failure)
        - Creates the schema if missing
        - Connects the query embedding cache (optional)

    Shutdown:
        - Closes the cache and disposes the engine
    """
    logger.info("Starting Notetree...")
    logger.info("Log Level: %s", settings.LOG_LEVEL)

    if not await wait_for_db():
        logger.critical("Could not connect to the database. Shutting down.")
        raise RuntimeError("Database connection failed")

    await init_models(get_engine())
    await query_cache.connect()

    yield  # Application runs here

    logger.info("Shutting down Notetree...")
    await query_cache.close()
    await dispose_engine()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
)
register_error_handlers(app)

app.include_router(notes_router, prefix="/api/notes", tags=["Notes"])
app.include_router(shared_router, prefix="/api/shared/notes", tags=["Shared"])
app.include_router(generate_router, prefix="/api", tags=["Completions"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "notetree",
        "environment": settings.ENVIRONMENT,
    }

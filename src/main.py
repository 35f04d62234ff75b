"""Housekeeping tasks - task access control for property staff."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.api_router import router as api_router


logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "dev-secret-change-me"


def validate_startup() -> None:
    """Validate required credentials before serving requests.

    Raises:
        SystemExit: If the session signing secret is missing, or left at the
            development default in production
    """
    logger.info("startup_validation_begin")

    try:
        secret_key = settings.require_credential("secret_key", "Session signing secret")
        if settings.is_production and secret_key == DEFAULT_SECRET_KEY:
            raise ValueError("SECRET_KEY must be changed from the development default in production.")
        logger.info("startup_validation_complete", extra={"status": "ok"})
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so validation logs are captured
    configure_logfire()
    validate_startup()

    await init_db()
    logger.info("Database initialized")

    yield
    # Shutdown
    await close_connection()


app = FastAPI(
    title="housekeeping-tasks",
    description="Task access control for admins and housekeepers",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(api_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)

"""devtrack ingestion server - main entry point."""

import asyncio
import pathlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devtrack import __version__
from devtrack.api.middleware import RequestLoggingMiddleware
from devtrack.api.routes import events, health
from devtrack.core.config import settings
from devtrack.core.logging import get_logger, log_error, setup_logging
from devtrack.db.session import engine

setup_logging(
    level="DEBUG" if settings.debug else "INFO",
    json_logs=settings.environment == "production",
)
logger = get_logger(__name__)

BASE_DIR = pathlib.Path(__file__).resolve().parent.parent


def run_migrations() -> None:
    """Upgrade the database schema to the latest alembic revision."""
    from alembic.config import Config

    from alembic import command

    alembic_cfg = Config(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(BASE_DIR / "alembic"))
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(
        "Starting devtrack ingestion server",
        extra={
            "event_type": "startup",
            "environment": settings.environment,
            "debug": settings.debug,
        },
    )

    if settings.run_migrations:
        logger.info("Starting database migrations...")
        try:
            # alembic's env.py calls asyncio.run, so keep it off the running loop
            await asyncio.wait_for(
                asyncio.to_thread(run_migrations),
                timeout=settings.migration_timeout_seconds,
            )
            logger.info("Database migrations completed successfully")
        except asyncio.TimeoutError:
            logger.error(
                f"Database migrations timed out after {settings.migration_timeout_seconds} seconds"
                " - continuing without migrations"
            )
        except Exception as e:
            log_error(logger, "Database migrations failed", error=e)
            raise

    yield

    logger.info("Shutting down devtrack ingestion server", extra={"event_type": "shutdown"})
    await engine.dispose()


app = FastAPI(
    title="devtrack",
    description="Developer activity ingestion API",
    version=__version__,
    lifespan=lifespan,
)

# Middleware are processed in REVERSE order of addition
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(events.router, prefix="/events", tags=["Events"])


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler with full error logging."""
    log_error(
        logger,
        "Unhandled exception",
        error=exc,
        extra={
            "path": request.url.path,
            "method": request.method,
            "client_ip": request.client.host if request.client else "unknown",
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint for basic connectivity check."""
    return {"status": "ok", "service": "devtrack", "version": __version__}

"""
backend/oddsbook/main.py

Purpose:
    FastAPI application bootstrap, middleware/router wiring, odds poller
    scheduling and database lifecycle.

Dependencies:
    - oddsbook.database
    - oddsbook.routers.odds_proxy
    - oddsbook.routers.merged_odds
    - oddsbook.workers.odds_poller
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

import oddsbook.database as _db
from oddsbook.config import settings
from oddsbook.database import close_db, connect_db
from oddsbook.middleware.logging import StructuredLoggingMiddleware, setup_logging
from oddsbook.providers.errors import OddsProviderError
from oddsbook.providers.odds_api import odds_provider
from oddsbook.routers.merged_odds import router as merged_odds_router
from oddsbook.routers.odds_proxy import provider_error_response, router as odds_proxy_router
from oddsbook.services.snapshot_repository import snapshot_repository

logger = logging.getLogger("oddsbook")
scheduler = AsyncIOScheduler()

POLLER_JOB_ID = "odds_poller"


def _register_poller() -> None:
    from oddsbook.workers.odds_poller import poll_all_sports

    scheduler.add_job(
        poll_all_sports,
        "interval",
        id=POLLER_JOB_ID,
        minutes=settings.ODDS_POLLER_INTERVAL_MINUTES,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Odds poller scheduled every %d minutes", settings.ODDS_POLLER_INTERVAL_MINUTES)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()
    scheduler.start()
    if settings.ODDS_POLLER_ENABLED:
        _register_poller()
    else:
        logger.info("Odds poller disabled via config")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    # Let fire-and-forget snapshot writes land before the client goes away.
    await snapshot_repository.drain()
    await odds_provider.aclose()
    await close_db()


app = FastAPI(
    title="Oddsbook",
    description="Odds aggregation and proxy service",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.BACKEND_CORS_ORIGINS.split(",") if o.strip()],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(StructuredLoggingMiddleware)

app.include_router(odds_proxy_router)
app.include_router(merged_odds_router)


@app.exception_handler(OddsProviderError)
async def provider_error_handler(request: Request, exc: OddsProviderError):
    logger.warning("Provider error on %s %s: %s", request.method, request.url.path, exc)
    return provider_error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into field/message pairs."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
            "message": err.get("msg", "Invalid value."),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"error": "Validation error.", "errors": errors})


async def _database_unavailable(request: Request, exc: Exception):
    logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, exc.__class__.__name__)
    return JSONResponse(status_code=503, content={"error": "Service temporarily unavailable."})


for _exc_class in (ServerSelectionTimeoutError, ConnectionFailure):
    app.add_exception_handler(_exc_class, _database_unavailable)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "An internal error occurred."})


@app.get("/health")
async def health():
    """DB ping, provider circuit/quota and the next poller run."""
    db_ok = False
    if _db.db is not None:
        try:
            result = await _db.db.command("ping")
            db_ok = result.get("ok") == 1.0
        except Exception:
            logger.warning("Health ping failed", exc_info=True)

    job = scheduler.get_job(POLLER_JOB_ID) if scheduler.running else None
    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
        "odds_provider": {
            "circuit": odds_provider.circuit_state,
            "usage": odds_provider.api_usage,
        },
        "poller": {
            "enabled": settings.ODDS_POLLER_ENABLED,
            "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
        },
    }

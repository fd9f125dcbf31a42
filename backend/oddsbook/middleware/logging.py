"""
backend/oddsbook/middleware/logging.py

Purpose:
    One JSON log line per request plus process-wide logging setup. Lines for
    routes that reach the odds provider also carry the remaining upstream
    quota, so a run of 429s can be read straight off the access log.

Dependencies:
    - starlette
    - oddsbook.config
"""

import hashlib
import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from oddsbook.config import settings

logger = logging.getLogger("oddsbook.access")

_PROVIDER_PATHS = ("/prematch_live_odds", "/scores", "/sports", "/merged_odds")


def _client_hash(request: Request) -> str | None:
    if not request.client:
        return None
    return hashlib.sha256((request.client.host or "").encode()).hexdigest()[:12]


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # Reuse an upstream proxy's id when present so lines correlate.
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        # Path only: /sports carries the caller's api_key in the query string.
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "client_ip_hash": _client_hash(request),
        }
        if request.url.path in _PROVIDER_PATHS:
            from oddsbook.providers.odds_api import odds_provider
            log_data["quota_remaining"] = odds_provider.api_usage["requests_remaining"]

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, json.dumps(log_data))

        response.headers["X-Request-ID"] = request_id
        return response


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    # httpx logs full request URLs, including the apiKey query parameter.
    logging.getLogger("httpx").setLevel(logging.WARNING)

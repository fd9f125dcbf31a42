"""
backend/oddsbook/providers/errors.py

Purpose:
    Error taxonomy for upstream odds provider calls. Raised by the provider
    client, handled per bookmaker group by the fetch orchestrator and mapped
    to HTTP statuses by the API layer.
"""

from __future__ import annotations

from typing import Any


class OddsProviderError(Exception):
    """Base class for classified upstream failures."""

    status_code: int = 502

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.body = body


class BadRequest(OddsProviderError):
    """Invalid sport/market/bookmaker combination or missing key. Not retryable."""

    status_code = 400


class RateLimited(OddsProviderError):
    """Upstream quota exhausted (HTTP 429). Callers back off; never retried here."""

    status_code = 429


class UpstreamError(OddsProviderError):
    """Any other non-2xx upstream response, status and body preserved."""


class PartialDataWarning(UserWarning):
    """A market yielded no data after every bookmaker group was tried.

    Used as a log category only; the fetch continues with the next market.
    """

"""
backend/oddsbook/providers/http_client.py

Purpose:
    Shared async HTTP plumbing for the odds provider: a small circuit breaker
    and an httpx wrapper that retries only transport failures and gateway
    statuses. Rate limits and client errors are returned untouched so the
    provider can classify them.

Dependencies:
    - httpx
"""

import asyncio
import logging
import time
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("oddsbook.http_client")

_GATEWAY_STATUSES = frozenset({502, 503, 504})
_TRANSPORT_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)
_MAX_BACKOFF_SECONDS = 30.0


class CircuitBreaker:
    """Opens after ``failure_threshold`` consecutive exhausted requests.

    While open, callers are refused until ``recovery_timeout`` seconds have
    passed since the last failure; the next attempt is the half-open probe.
    """

    def __init__(self, failure_threshold: int = 3, recovery_timeout: float = 300.0):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.opened_at: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.opened_at is not None

    @property
    def state(self) -> str:
        if not self.is_open:
            return "closed"
        return "half_open" if self._recovered() else "open"

    def _recovered(self) -> bool:
        return self.opened_at is not None and time.monotonic() - self.opened_at >= self.recovery_timeout

    def record_success(self) -> None:
        if self.is_open:
            logger.info("Circuit breaker closed")
        self.failure_count = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.failure_count >= self.failure_threshold:
            if not self.is_open:
                logger.warning("Circuit breaker OPEN after %d failures", self.failure_count)
            self.opened_at = time.monotonic()

    def can_attempt(self) -> bool:
        return self.state != "open"


def safe_url(url: str) -> str:
    """URL without its query string; the query carries the api key."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class ResilientClient:
    """httpx.AsyncClient with bounded exponential back-off and a circuit breaker."""

    def __init__(
        self,
        name: str,
        timeout: float = 30.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._name = name
        self._attempts = max_retries + 1
        self._base_delay = base_delay
        self.circuit = CircuitBreaker()

    def _backoff(self, attempt: int) -> float:
        return min(self._base_delay * (2 ** attempt), _MAX_BACKOFF_SECONDS)

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        last_exc: Optional[Exception] = None
        last_resp: Optional[httpx.Response] = None
        where = f"{method} {safe_url(url)}"

        for attempt in range(self._attempts):
            if attempt:
                await asyncio.sleep(self._backoff(attempt - 1))
            try:
                resp = await self._client.request(method, url, **kwargs)
            except _TRANSPORT_ERRORS as exc:
                last_exc, last_resp = exc, None
                logger.warning(
                    "[%s] %s on %s (attempt %d/%d)",
                    self._name, exc.__class__.__name__, where, attempt + 1, self._attempts,
                )
                continue

            if resp.status_code not in _GATEWAY_STATUSES:
                self.circuit.record_success()
                return resp
            last_exc, last_resp = None, resp
            logger.warning(
                "[%s] Gateway status %d on %s (attempt %d/%d)",
                self._name, resp.status_code, where, attempt + 1, self._attempts,
            )

        self.circuit.record_failure()
        if last_resp is not None:
            logger.error("[%s] Giving up on %s after %d attempts (status %d)",
                         self._name, where, self._attempts, last_resp.status_code)
            return last_resp
        logger.error("[%s] Giving up on %s after %d attempts: %s",
                     self._name, where, self._attempts, last_exc)
        raise last_exc  # type: ignore[misc]

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

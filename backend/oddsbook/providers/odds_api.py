import logging
from typing import Any, Iterable, Optional

import httpx

from oddsbook.config import settings
from oddsbook.config_odds import ALL_REGIONS_PARAM
from oddsbook.models.odds import (
    Match,
    MarketDescriptor,
    SportInfo,
    parse_market_descriptors,
    parse_matches,
    parse_sports,
)
from oddsbook.providers.base import BaseOddsProvider
from oddsbook.providers.errors import BadRequest, RateLimited, UpstreamError
from oddsbook.providers.http_client import ResilientClient, safe_url

logger = logging.getLogger("oddsbook.odds_api")


def _join(value: Iterable[str] | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return ",".join(v for v in value if v)


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class TheOddsAPIProvider(BaseOddsProvider):
    """The Odds API v4 client.

    Every call is a single request bounded by the configured timeout. Status
    codes are classified here; nothing is cached or persisted.
    """

    def __init__(self, client: Optional[ResilientClient] = None, base_url: Optional[str] = None):
        self._client = client or ResilientClient(
            "odds_api",
            timeout=settings.ODDS_API_TIMEOUT_SECONDS,
            max_retries=settings.ODDS_API_MAX_RETRIES,
            base_delay=settings.ODDS_API_RETRY_BASE_DELAY,
        )
        self._base_url = (base_url or settings.ODDS_API_BASE_URL).rstrip("/")
        self._api_usage: dict[str, Optional[int]] = {"requests_used": None, "requests_remaining": None}

    def _track_usage_headers(self, resp: httpx.Response) -> None:
        """Extract and store API quota usage from response headers."""
        used = resp.headers.get("x-requests-used")
        remaining = resp.headers.get("x-requests-remaining")
        try:
            if used is not None:
                self._api_usage["requests_used"] = int(float(used))
            if remaining is not None:
                self._api_usage["requests_remaining"] = int(float(remaining))
        except ValueError:
            logger.debug("Unparseable quota headers: used=%r remaining=%r", used, remaining)
            return
        if used is not None or remaining is not None:
            logger.debug(
                "Odds quota: %s used, %s remaining",
                self._api_usage["requests_used"], self._api_usage["requests_remaining"],
            )

    async def _get(
        self,
        path: str,
        params: dict[str, Any],
        api_key: Optional[str],
        *,
        allow_not_found: bool = False,
    ) -> Any:
        key = api_key or settings.ODDS_API_KEY
        if not key:
            raise BadRequest("api_key is required")

        if not self._client.circuit.can_attempt():
            raise UpstreamError("Odds provider circuit open", status_code=503)

        url = f"{self._base_url}{path}"
        try:
            resp = await self._client.get(url, params={"apiKey": key, **params})
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Timeout calling {safe_url(url)}", status_code=504) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Transport error calling {safe_url(url)}: {exc.__class__.__name__}", status_code=502) from exc

        self._track_usage_headers(resp)

        if allow_not_found and resp.status_code == 404:
            return None
        if resp.status_code == 429:
            logger.warning("Rate limited (429) on %s", safe_url(url))
            raise RateLimited("Rate limit exceeded", body=_response_body(resp))
        if resp.status_code == 400:
            raise BadRequest(
                "Invalid markets, bookmakers, or sport key",
                body=_response_body(resp),
            )
        if resp.status_code < 200 or resp.status_code >= 300:
            raise UpstreamError(
                f"Odds API request failed with status {resp.status_code}",
                status_code=resp.status_code,
                body=_response_body(resp),
            )
        try:
            return resp.json()
        except ValueError as exc:
            # 2xx with a non-JSON body, e.g. an HTML maintenance page from a proxy.
            logger.warning("Unparseable %d response from %s", resp.status_code, safe_url(url))
            raise UpstreamError(
                "Unparseable odds response",
                status_code=502,
                body=resp.text[:500],
            ) from exc

    # -- sports ------------------------------------------------------------

    async def list_sports_raw(self, api_key: Optional[str] = None, all_sports: bool = False) -> Any:
        params = {"all": "true"} if all_sports else {}
        return await self._get("/sports", params, api_key)

    async def list_sports(self, api_key: Optional[str] = None, all_sports: bool = False) -> list[SportInfo]:
        return parse_sports(await self.list_sports_raw(api_key, all_sports=all_sports))

    # -- markets -----------------------------------------------------------

    async def list_markets(self, sport_key: str, api_key: Optional[str] = None) -> list[MarketDescriptor]:
        payload = await self._get(f"/sports/{sport_key}/markets", {}, api_key, allow_not_found=True)
        if payload is None:
            logger.info("No markets metadata for %s", sport_key)
            return []
        return parse_market_descriptors(payload)

    # -- odds --------------------------------------------------------------

    async def get_odds_raw(
        self,
        sport_key: str,
        markets: Iterable[str] | str,
        bookmakers: Optional[Iterable[str] | str] = None,
        regions: Optional[Iterable[str] | str] = None,
        api_key: Optional[str] = None,
    ) -> Any:
        params: dict[str, str] = {
            "markets": _join(markets),
            "oddsFormat": "decimal",
            "dateFormat": "iso",
        }
        # A bookmaker list is more specific and cheaper than regions; send one or the other.
        bookmaker_param = _join(bookmakers)
        if bookmaker_param:
            params["bookmakers"] = bookmaker_param
        else:
            params["regions"] = _join(regions) or ALL_REGIONS_PARAM
        return await self._get(f"/sports/{sport_key}/odds", params, api_key)

    async def get_odds(
        self,
        sport_key: str,
        markets: Iterable[str] | str,
        bookmakers: Optional[Iterable[str]] = None,
        regions: Optional[Iterable[str] | str] = None,
        api_key: Optional[str] = None,
    ) -> list[Match]:
        payload = await self.get_odds_raw(sport_key, markets, bookmakers, regions, api_key)
        return parse_matches(payload)

    # -- scores ------------------------------------------------------------

    async def get_scores_raw(self, sport_key: str, days_from: int = 3, api_key: Optional[str] = None) -> Any:
        return await self._get(
            f"/sports/{sport_key}/scores",
            {"daysFrom": int(days_from), "dateFormat": "iso"},
            api_key,
        )

    @property
    def api_usage(self) -> dict:
        return dict(self._api_usage)

    @property
    def circuit_state(self) -> str:
        return self._client.circuit.state

    async def aclose(self) -> None:
        await self._client.aclose()


# Singleton provider instance
odds_provider = TheOddsAPIProvider()

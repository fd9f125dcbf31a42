"""
backend/oddsbook/services/odds_gateway_service.py

Purpose:
    Request-level odds operations behind the HTTP API: the cached odds and
    scores proxy, the uncached sports list, and merged multi-bookmaker odds
    built by the fetch orchestrator. Successful upstream results are cached
    and persisted as snapshots without blocking the response.

Dependencies:
    - oddsbook.providers.odds_api
    - oddsbook.services.odds_cache
    - oddsbook.services.odds_fetch_service
    - oddsbook.services.snapshot_repository
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from oddsbook.config import settings
from oddsbook.config_odds import ALL_MARKETS_PARAM, ALL_REGIONS_PARAM, SPORT_BOOKMAKERS
from oddsbook.models.odds import (
    MergedOddsResponse,
    PrematchOddsRequest,
    ScoresRequest,
)
from oddsbook.providers.errors import BadRequest
from oddsbook.providers.odds_api import TheOddsAPIProvider
from oddsbook.services.odds_cache import TTLCache
from oddsbook.services.odds_fetch_service import OddsFetchService
from oddsbook.services.snapshot_repository import SnapshotRepository

logger = logging.getLogger("oddsbook.odds_gateway")


@dataclass(frozen=True)
class OddsQuery:
    """Effective upstream parameters for one proxy odds request."""

    sport: str
    markets: str
    bookmakers: str
    regions: str

    @property
    def cache_key(self) -> str:
        return f"{self.sport}_{self.markets}_{self.bookmakers or self.regions}"


def resolve_odds_query(request: PrematchOddsRequest) -> OddsQuery:
    markets = request.markets or ALL_MARKETS_PARAM
    if markets == "all":
        markets = ALL_MARKETS_PARAM
    bookmakers = request.bookmakers or SPORT_BOOKMAKERS.get(request.sport, "")
    # With a bookmaker selection in effect regions are neither sent nor part of the cache key.
    regions = "" if bookmakers else (request.regions or ALL_REGIONS_PARAM)
    return OddsQuery(sport=request.sport, markets=markets, bookmakers=bookmakers, regions=regions)


def _require_key(api_key: Optional[str]) -> str:
    if not api_key:
        raise BadRequest("api_key is required")
    return api_key


class OddsGatewayService:
    def __init__(
        self,
        provider: Optional[TheOddsAPIProvider] = None,
        *,
        odds_cache: Optional[TTLCache] = None,
        scores_cache: Optional[TTLCache] = None,
        repository: Optional[SnapshotRepository] = None,
        fetch_service: Optional[OddsFetchService] = None,
    ) -> None:
        if provider is None:
            from oddsbook.providers.odds_api import odds_provider
            provider = odds_provider
        if odds_cache is None:
            from oddsbook.services.odds_cache import odds_cache
        if scores_cache is None:
            from oddsbook.services.odds_cache import scores_cache
        if repository is None:
            from oddsbook.services.snapshot_repository import snapshot_repository
            repository = snapshot_repository
        self._provider = provider
        self._odds_cache = odds_cache
        self._scores_cache = scores_cache
        self._repository = repository
        self._fetch_service = fetch_service or OddsFetchService(provider)

    async def prematch_live_odds(self, request: PrematchOddsRequest) -> Any:
        api_key = _require_key(request.api_key)
        query = resolve_odds_query(request)

        cached = self._odds_cache.get(query.cache_key)
        if cached is not None:
            logger.info("Cache hit for %s odds", query.sport)
            return cached

        data = await self._provider.get_odds_raw(
            query.sport,
            query.markets,
            bookmakers=query.bookmakers or None,
            regions=query.regions or None,
            api_key=api_key,
        )
        self._odds_cache.set(query.cache_key, data, settings.ODDS_CACHE_TTL_SECONDS)
        self._repository.schedule_append("odds", query.sport, data, selector=query.cache_key)
        return data

    async def scores(self, request: ScoresRequest) -> Any:
        api_key = _require_key(request.api_key)
        cache_key = f"{request.sport}_{request.days_from}"

        cached = self._scores_cache.get(cache_key)
        if cached is not None:
            logger.info("Cache hit for %s scores", request.sport)
            return cached

        data = await self._provider.get_scores_raw(request.sport, request.days_from, api_key=api_key)
        self._scores_cache.set(cache_key, data, settings.SCORES_CACHE_TTL_SECONDS)
        self._repository.schedule_append("scores", request.sport, data, selector=cache_key)
        return data

    async def sports(self, api_key: Optional[str]) -> Any:
        return await self._provider.list_sports_raw(_require_key(api_key))

    async def merged_odds(
        self,
        sport: str,
        api_key: Optional[str] = None,
        *,
        use_cache: bool = True,
    ) -> MergedOddsResponse:
        """Merged best-price odds for every market of a sport.

        ``api_key`` falls back to the server key; the cache is shared by both.
        """
        cache_key = f"merged_{sport}"
        if use_cache:
            cached = self._odds_cache.get(cache_key)
            if cached is not None:
                return cached.model_copy(update={"cached": True})

        result = await self._fetch_service.fetch_sport(sport, api_key=api_key)
        groups = self._fetch_service.bookmaker_groups
        response = MergedOddsResponse(
            sport=sport,
            fetched_at=result.fetched_at,
            matches=list(result.matches.values()),
            markets=[o.report(groups) for o in result.markets],
        )
        self._odds_cache.set(cache_key, response, settings.ODDS_CACHE_TTL_SECONDS)
        if response.matches:
            self._repository.schedule_append(
                "merged",
                sport,
                [m.model_dump() for m in response.matches],
                selector=cache_key,
                fetched_at=result.fetched_at,
            )
        return response

"""
backend/oddsbook/services/odds_fetch_service.py

Purpose:
    Fetch orchestration for one sport: resolve its markets, walk the
    bookmaker fallback groups per market until one returns data, pace every
    provider call, then hand the accumulated payloads to the merge engine.

    Each market runs a small state machine:
        PENDING -> TRYING(0) -> TRYING(i+1) on empty/error
                             -> SUCCEEDED on first non-empty result
        TRYING(last) -> EXHAUSTED
    Exhaustion degrades to partial data; it never aborts the sport fetch.

Dependencies:
    - oddsbook.providers.odds_api
    - oddsbook.services.odds_merge_service
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from oddsbook.config import settings
from oddsbook.config_odds import BOOKMAKER_GROUPS, DEFAULT_MARKETS
from oddsbook.models.odds import Match, MarketFetchReport
from oddsbook.providers.base import BaseOddsProvider
from oddsbook.providers.errors import OddsProviderError, PartialDataWarning
from oddsbook.services.odds_merge_service import merge_matches
from oddsbook.utils import utcnow

logger = logging.getLogger("oddsbook.odds_fetch")


class MarketFetchState(str, Enum):
    pending = "pending"
    trying = "trying"
    succeeded = "succeeded"
    exhausted = "exhausted"


@dataclass
class MarketFetchOutcome:
    """Progress of one market through the bookmaker fallback groups."""

    market: str
    group_count: int
    state: MarketFetchState = MarketFetchState.pending
    group_index: Optional[int] = None
    matches: list[Match] = field(default_factory=list)
    last_error: Optional[str] = None

    def start(self) -> None:
        if self.group_count <= 0:
            self.state = MarketFetchState.exhausted
            return
        self.state = MarketFetchState.trying
        self.group_index = 0

    def record_result(self, matches: list[Match]) -> None:
        if matches:
            self.matches = list(matches)
            self.state = MarketFetchState.succeeded
        else:
            self._advance()

    def record_error(self, error: Exception) -> None:
        self.last_error = f"{error.__class__.__name__}: {error}"
        self._advance()

    def _advance(self) -> None:
        assert self.group_index is not None
        if self.group_index + 1 < self.group_count:
            self.group_index += 1
        else:
            self.state = MarketFetchState.exhausted

    def report(self, groups: Sequence[Sequence[str]]) -> MarketFetchReport:
        succeeded = self.state is MarketFetchState.succeeded
        return MarketFetchReport(
            market=self.market,
            state=self.state.value,
            group_index=self.group_index if succeeded else None,
            bookmakers=list(groups[self.group_index]) if succeeded else [],
            matches=len(self.matches),
            error=self.last_error,
        )


@dataclass
class SportFetchResult:
    sport: str
    fetched_at: datetime
    matches: dict[str, Match]
    markets: list[MarketFetchOutcome]


class OddsFetchService:
    def __init__(
        self,
        provider: Optional[BaseOddsProvider] = None,
        *,
        bookmaker_groups: Sequence[Sequence[str]] = BOOKMAKER_GROUPS,
        default_markets: Sequence[str] = DEFAULT_MARKETS,
        pacing_seconds: Optional[float] = None,
    ) -> None:
        if provider is None:
            from oddsbook.providers.odds_api import odds_provider
            provider = odds_provider
        self._provider = provider
        self._groups = tuple(tuple(g) for g in bookmaker_groups)
        self._default_markets = tuple(default_markets)
        self._pacing = settings.ODDS_FETCH_PACING_SECONDS if pacing_seconds is None else pacing_seconds

    @property
    def bookmaker_groups(self) -> tuple[tuple[str, ...], ...]:
        return self._groups

    async def fetch_all_odds(self, sport_key: str, api_key: Optional[str] = None) -> dict[str, Match]:
        """Fetch every market of a sport and return the merged match collection."""
        result = await self.fetch_sport(sport_key, api_key=api_key)
        return result.matches

    async def fetch_sport(self, sport_key: str, api_key: Optional[str] = None) -> SportFetchResult:
        markets = await self._resolve_markets(sport_key, api_key)
        logger.info("Fetching %s: %d markets (%s)", sport_key, len(markets), ", ".join(markets))

        raw: list[Match] = []
        outcomes: list[MarketFetchOutcome] = []
        for market in markets:
            outcome = await self._fetch_market(sport_key, market, api_key)
            outcomes.append(outcome)
            raw.extend(outcome.matches)

        merged = merge_matches(raw)
        succeeded = sum(1 for o in outcomes if o.state is MarketFetchState.succeeded)
        logger.info(
            "Fetched %s: %d/%d markets with data, %d raw payloads merged into %d matches",
            sport_key, succeeded, len(outcomes), len(raw), len(merged),
        )
        return SportFetchResult(sport=sport_key, fetched_at=utcnow(), matches=merged, markets=outcomes)

    async def _resolve_markets(self, sport_key: str, api_key: Optional[str]) -> list[str]:
        descriptors = await self._provider.list_markets(sport_key, api_key=api_key)
        keys = [d.key for d in descriptors] or list(self._default_markets)
        if not descriptors:
            logger.info("No markets metadata for %s, using defaults", sport_key)
        return list(dict.fromkeys(keys))

    async def _fetch_market(self, sport_key: str, market: str, api_key: Optional[str]) -> MarketFetchOutcome:
        outcome = MarketFetchOutcome(market=market, group_count=len(self._groups))
        outcome.start()

        while outcome.state is MarketFetchState.trying:
            group = self._groups[outcome.group_index]
            # Every odds call follows another provider call (markets lookup first).
            await asyncio.sleep(self._pacing)
            try:
                matches = await self._provider.get_odds(
                    sport_key, market, bookmakers=group, api_key=api_key
                )
            except OddsProviderError as exc:
                logger.warning(
                    "Bookmaker group %d (%s) failed for %s/%s: %s",
                    outcome.group_index + 1, ",".join(group), sport_key, market, exc,
                )
                outcome.record_error(exc)
                continue
            outcome.record_result(matches)
            if outcome.state is MarketFetchState.succeeded:
                logger.info(
                    "Fetched %d matches for %s/%s from group %d (%s)",
                    len(matches), sport_key, market, outcome.group_index + 1, ",".join(group),
                )

        if outcome.state is MarketFetchState.exhausted:
            logger.warning(
                "%s: no data for %s/%s after %d bookmaker groups",
                PartialDataWarning.__name__, sport_key, market, len(self._groups),
            )
        return outcome

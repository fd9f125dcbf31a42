"""
backend/oddsbook/models/odds.py

Purpose:
    Typed odds model shared by the provider client, merge engine and API:
    Match -> BookmakerEntry -> Market -> Outcome, plus sport/market metadata
    and request bodies for the odds proxy endpoints.

    The parse_* helpers are the only way upstream JSON enters the system.
    They skip malformed entries level by level instead of failing the whole
    payload.

Dependencies:
    - pydantic
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger("oddsbook.models.odds")


class Outcome(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=1.0)          # decimal odds
    point: Optional[float] = None         # spread/total line
    description: Optional[str] = None     # player name on prop markets


class Market(BaseModel):
    key: str = Field(min_length=1)
    last_update: Optional[datetime] = None
    outcomes: list[Outcome] = Field(default_factory=list)


class BookmakerEntry(BaseModel):
    key: str = Field(min_length=1)
    title: str = ""
    last_update: Optional[datetime] = None
    markets: list[Market] = Field(default_factory=list)


class Match(BaseModel):
    id: str = Field(min_length=1)
    sport_key: str = ""
    sport_title: str = ""                 # league
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    commence_time: Optional[datetime] = None
    bookmakers: list[BookmakerEntry] = Field(default_factory=list)


class SportInfo(BaseModel):
    key: str = Field(min_length=1)
    group: str = ""
    title: str = ""
    description: str = ""
    active: bool = True
    has_outrights: bool = False


class MarketDescriptor(BaseModel):
    key: str = Field(min_length=1)
    last_update: Optional[datetime] = None


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class PrematchOddsRequest(BaseModel):
    sport: str = Field(min_length=1)
    regions: Optional[str] = None
    markets: Optional[str] = None
    api_key: Optional[str] = None
    bookmakers: Optional[str] = None


class ScoresRequest(BaseModel):
    sport: str = Field(min_length=1)
    days_from: int = Field(default=3, ge=1)
    api_key: Optional[str] = None


class MergedOddsRequest(BaseModel):
    sport: str = Field(min_length=1)
    api_key: Optional[str] = None


class MarketFetchReport(BaseModel):
    market: str
    state: str
    group_index: Optional[int] = None
    bookmakers: list[str] = Field(default_factory=list)
    matches: int = 0
    error: Optional[str] = None


class MergedOddsResponse(BaseModel):
    sport: str
    fetched_at: datetime
    matches: list[Match]
    markets: list[MarketFetchReport] = Field(default_factory=list)
    cached: bool = False


# ---------------------------------------------------------------------------
# Upstream parsing
# ---------------------------------------------------------------------------

def _parse_list(items: Any, parse_one, what: str) -> list:
    if not isinstance(items, list):
        return []
    parsed = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object %s entry: %r", what, item)
            continue
        value = parse_one(item)
        if value is not None:
            parsed.append(value)
    return parsed


def _parse_outcome(raw: dict) -> Outcome | None:
    try:
        return Outcome.model_validate(raw)
    except ValidationError as exc:
        logger.debug("Skipping malformed outcome %r: %s", raw.get("name"), exc.error_count())
        return None


def _parse_market(raw: dict) -> Market | None:
    try:
        return Market(
            key=raw.get("key"),
            last_update=raw.get("last_update"),
            outcomes=_parse_list(raw.get("outcomes"), _parse_outcome, "outcome"),
        )
    except ValidationError:
        logger.debug("Skipping malformed market %r", raw.get("key"))
        return None


def _parse_bookmaker(raw: dict) -> BookmakerEntry | None:
    try:
        return BookmakerEntry(
            key=raw.get("key"),
            title=raw.get("title") or "",
            last_update=raw.get("last_update"),
            markets=_parse_list(raw.get("markets"), _parse_market, "market"),
        )
    except ValidationError:
        logger.debug("Skipping malformed bookmaker %r", raw.get("key"))
        return None


def _parse_match(raw: dict) -> Match | None:
    try:
        return Match(
            id=raw.get("id"),
            sport_key=raw.get("sport_key") or "",
            sport_title=raw.get("sport_title") or "",
            home_team=raw.get("home_team"),
            away_team=raw.get("away_team"),
            commence_time=raw.get("commence_time"),
            bookmakers=_parse_list(raw.get("bookmakers"), _parse_bookmaker, "bookmaker"),
        )
    except ValidationError:
        logger.debug("Skipping malformed match %r", raw.get("id"))
        return None


def parse_matches(payload: Any) -> list[Match]:
    """Map an upstream odds response (list of events) into Match models."""
    return _parse_list(payload, _parse_match, "match")


def parse_sports(payload: Any) -> list[SportInfo]:
    def _one(raw: dict) -> SportInfo | None:
        try:
            return SportInfo.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed sport %r", raw.get("key"))
            return None

    return _parse_list(payload, _one, "sport")


def parse_market_descriptors(payload: Any) -> list[MarketDescriptor]:
    def _one(raw: dict) -> MarketDescriptor | None:
        try:
            return MarketDescriptor.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed market descriptor %r", raw.get("key"))
            return None

    # /markets responds with either a bare list or {"markets": [...]}.
    if isinstance(payload, dict):
        payload = payload.get("markets") or payload.get("data")
    return _parse_list(payload, _one, "market descriptor")

"""
backend/oddsbook/services/odds_merge_service.py

Purpose:
    Merge per-bookmaker odds payloads collected across many provider calls
    into one record per match: one entry per bookmaker key, one market per
    canonical market key, one outcome per outcome name.

    Price rule: an existing outcome is replaced only when the incoming price
    is strictly lower. Lower decimal odds are the less bettor-favourable
    side; the rule is kept as the product defined it (see DESIGN.md).

    Pure: no I/O, input models are never mutated.

Dependencies:
    - oddsbook.models.odds
    - oddsbook.services.market_keys
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from oddsbook.models.odds import BookmakerEntry, Market, Match, Outcome, parse_matches
from oddsbook.services.market_keys import normalize_market_key

logger = logging.getLogger("oddsbook.odds_merge")


def _merge_outcomes(target: Market, outcomes: Iterable[Outcome]) -> None:
    by_name = {o.name: o for o in target.outcomes}
    for outcome in outcomes:
        existing = by_name.get(outcome.name)
        if existing is None:
            added = outcome.model_copy()
            target.outcomes.append(added)
            by_name[added.name] = added
        elif outcome.price < existing.price:
            existing.price = outcome.price
            existing.point = outcome.point


def _normalize_markets(markets: Iterable[Market]) -> list[Market]:
    """Re-key markets canonically, folding markets that share a canonical key."""
    merged: dict[str, Market] = {}
    for market in markets:
        # A bare "lay" key normalizes to nothing; keep it under its own name.
        key = normalize_market_key(market.key) or market.key.lower()
        target = merged.get(key)
        if target is None:
            target = Market(key=key, last_update=market.last_update, outcomes=[])
            merged[key] = target
        _merge_outcomes(target, market.outcomes)
    return list(merged.values())


def _coerce(raw_matches: Iterable[Match | dict[str, Any]]) -> Iterable[Match]:
    for raw in raw_matches:
        if isinstance(raw, Match):
            yield raw
        elif isinstance(raw, dict):
            yield from parse_matches([raw])
        else:
            logger.debug("Skipping non-match payload of type %s", type(raw).__name__)


def merge_matches(raw_matches: Iterable[Match | dict[str, Any]]) -> dict[str, Match]:
    """Merge raw match payloads into ``{match_id: Match}`` in first-seen order."""
    merged: dict[str, Match] = {}
    # (match_id, bookmaker_key) -> {canonical_market_key: Market}
    market_index: dict[tuple[str, str], dict[str, Market]] = {}

    for raw in _coerce(raw_matches):
        if not raw.id:
            continue
        match = merged.get(raw.id)
        if match is None:
            match = raw.model_copy(update={"bookmakers": []})
            merged[raw.id] = match

        for bookmaker in raw.bookmakers:
            markets = _normalize_markets(bookmaker.markets)
            index_key = (match.id, bookmaker.key)
            existing_markets = market_index.get(index_key)

            if existing_markets is None:
                entry = BookmakerEntry(
                    key=bookmaker.key,
                    title=bookmaker.title,
                    last_update=bookmaker.last_update,
                    markets=markets,
                )
                match.bookmakers.append(entry)
                market_index[index_key] = {m.key: m for m in markets}
                continue

            entry = next(b for b in match.bookmakers if b.key == bookmaker.key)
            for market in markets:
                current = existing_markets.get(market.key)
                if current is None:
                    entry.markets.append(market)
                    existing_markets[market.key] = market
                else:
                    _merge_outcomes(current, market.outcomes)

    logger.debug("Merged %d distinct matches", len(merged))
    return merged

"""Canonical market keys for provider-specific market identifiers."""

import re

from oddsbook.config_odds import MARKET_SYNONYMS

_LAY_SUFFIX = re.compile(r"(?:_?lay)+$")

_SYNONYM_TO_CANONICAL: dict[str, str] = {
    alias: canonical
    for canonical, aliases in MARKET_SYNONYMS.items()
    for alias in aliases
}


def normalize_market_key(raw_key: str | None) -> str:
    """Map a provider market key onto the canonical vocabulary.

    ``moneyline_lay`` -> ``h2h``, ``Asian_Handicap`` -> ``spreads``,
    ``totalsLay`` -> ``totals``. Keys outside the synonym table pass through
    lower-cased with any lay suffix removed.
    """
    key = _LAY_SUFFIX.sub("", (raw_key or "").lower())
    return _SYNONYM_TO_CANONICAL.get(key, key)

import asyncio
import logging
from typing import Optional

from oddsbook.config import settings
from oddsbook.config_odds import EXCLUDED_SPORT_KEYS, EXCLUDED_SPORT_SUBSTRINGS
from oddsbook.models.odds import SportInfo
from oddsbook.providers.errors import OddsProviderError, RateLimited

logger = logging.getLogger("oddsbook.odds_poller")


def _is_pollable(sport: SportInfo) -> bool:
    if not sport.active or sport.key in EXCLUDED_SPORT_KEYS:
        return False
    return not any(part in sport.key for part in EXCLUDED_SPORT_SUBSTRINGS)


async def resolve_poll_sports(provider=None) -> list[str]:
    """Configured sport keys, or every active upstream sport minus exclusions."""
    configured = [s.strip() for s in settings.ODDS_POLLER_SPORTS.split(",") if s.strip()]
    if configured:
        return configured
    if provider is None:
        from oddsbook.providers.odds_api import odds_provider
        provider = odds_provider
    sports = await provider.list_sports()
    return [s.key for s in sports if _is_pollable(s)]


async def poll_all_sports(gateway=None, provider=None) -> dict:
    """Refresh merged odds for every pollable sport, one sport at a time."""
    if gateway is None:
        from oddsbook.routers.odds_proxy import get_odds_gateway
        gateway = get_odds_gateway()

    summary: dict[str, Optional[int]] = {}
    try:
        sport_keys = await resolve_poll_sports(provider)
    except OddsProviderError as exc:
        logger.error("Odds poller could not list sports: %s", exc)
        return summary

    logger.info("Odds poller: %d sports", len(sport_keys))
    for i, sport_key in enumerate(sport_keys):
        if i:
            await asyncio.sleep(settings.ODDS_POLLER_SPORT_PACING_SECONDS)
        try:
            result = await gateway.merged_odds(sport_key, use_cache=False)
        except RateLimited:
            logger.warning("Odds poller rate limited at %s, stopping this run", sport_key)
            summary[sport_key] = None
            break
        except OddsProviderError as exc:
            logger.error("Odds poller failed for %s: %s", sport_key, exc)
            summary[sport_key] = None
            continue
        summary[sport_key] = len(result.matches)

    logger.info(
        "Odds poller done: %d sports, %d matches",
        len(summary), sum(v for v in summary.values() if v),
    )
    return summary

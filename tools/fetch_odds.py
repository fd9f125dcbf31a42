"""Fetch merged odds for one or more sports from the command line.

Usage:
    python -m tools.fetch_odds --sport basketball_nba
    python -m tools.fetch_odds --sport soccer_epl --sport icehockey_nhl --output odds.json
    python -m tools.fetch_odds --all --dry-run
"""

import argparse
import asyncio
import json
import logging
import sys

sys.path.insert(0, "backend")

from oddsbook.config import settings
from oddsbook.database import close_db, connect_db
from oddsbook.middleware.logging import setup_logging
from oddsbook.providers.odds_api import odds_provider
from oddsbook.services.odds_fetch_service import OddsFetchService
from oddsbook.services.snapshot_repository import snapshot_repository
from oddsbook.workers.odds_poller import resolve_poll_sports

logger = logging.getLogger("oddsbook.tools.fetch_odds")


async def run(sports: list[str], fetch_all: bool, dry_run: bool, output: str | None) -> None:
    if not dry_run:
        await connect_db()
    service = OddsFetchService(odds_provider)
    dump: dict[str, list[dict]] = {}
    try:
        if fetch_all:
            sports = await resolve_poll_sports(odds_provider)
        for i, sport_key in enumerate(sports):
            if i:
                await asyncio.sleep(settings.ODDS_POLLER_SPORT_PACING_SECONDS)
            result = await service.fetch_sport(sport_key)
            matches = [m.model_dump(mode="json") for m in result.matches.values()]
            dump[sport_key] = matches
            for outcome in result.markets:
                print(f"  {sport_key}/{outcome.market}: {outcome.state.value} ({len(outcome.matches)} matches)")
            print(f"{sport_key}: {len(matches)} merged matches")
            if not dry_run and matches:
                await snapshot_repository.append(
                    "merged", sport_key, matches, selector=f"merged_{sport_key}", fetched_at=result.fetched_at,
                )
    finally:
        await odds_provider.aclose()
        if not dry_run:
            await close_db()

    usage = odds_provider.api_usage
    print(f"Quota: {usage['requests_used']} used, {usage['requests_remaining']} remaining")
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            json.dump(dump, fh, indent=2)
        print(f"Wrote {output}")


def main():
    parser = argparse.ArgumentParser(description="Fetch and merge odds for sports.")
    parser.add_argument("--sport", action="append", default=[], help="Sport key (repeatable)")
    parser.add_argument("--all", action="store_true", help="Every active upstream sport")
    parser.add_argument("--dry-run", action="store_true", help="Do not write snapshots")
    parser.add_argument("--output", type=str, default=None, help="Write merged matches to a JSON file")
    args = parser.parse_args()

    if not args.sport and not args.all:
        parser.error("pass --sport at least once, or --all")

    setup_logging()
    asyncio.run(run(args.sport, args.all, args.dry_run, args.output))


if __name__ == "__main__":
    main()

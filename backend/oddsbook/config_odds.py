"""
backend/oddsbook/config_odds.py

Purpose:
    Read-only lookup tables for odds fetching: market synonyms, bookmaker
    fallback groups, default market lists and per-sport default bookmakers.
    Loaded once at import; nothing mutates them at runtime.
"""

from types import MappingProxyType

# Canonical market key -> accepted provider spellings (after lower-casing and
# stripping a trailing lay suffix).
MARKET_SYNONYMS: MappingProxyType = MappingProxyType({
    "h2h": frozenset({"h2h", "moneyline"}),
    "spreads": frozenset({"spreads", "handicap", "asian_handicap", "point_spread"}),
    "totals": frozenset({"totals", "over_under", "points_total"}),
    "double_chance": frozenset({"double_chance"}),
    "draw_no_bet": frozenset({"draw_no_bet"}),
    "both_teams_to_score": frozenset({"both_teams_to_score", "btts"}),
})

CANONICAL_MARKETS: frozenset = frozenset(MARKET_SYNONYMS)

# Used when the provider publishes no markets metadata for a sport.
DEFAULT_MARKETS: tuple[str, ...] = (
    "h2h",
    "spreads",
    "totals",
    "outrights",
    "player_props",
    "game_props",
)

# Market list sent upstream when a proxy caller asks for markets="all".
ALL_MARKETS_PARAM = "h2h,spreads,totals,outrights"

ALL_REGIONS_PARAM = "us,us2,uk,eu,au"

# Tried in order per market until one group returns data. Keep the most
# liquid US books first.
BOOKMAKER_GROUPS: tuple[tuple[str, ...], ...] = (
    ("fanduel", "draftkings", "betmgm"),
    ("caesars", "pointsbetus", "unibet_us"),
    ("ballybet", "betrivers", "superbook"),
    ("foxbet", "williamhill_us", "twinspires"),
    ("betonlineag", "lowvig", "mybookieag"),
)

# Single-bookmaker default per sport for the odds proxy (fewer quota credits
# than a multi-region request).
SPORT_BOOKMAKERS: MappingProxyType = MappingProxyType({
    # American Football
    "americanfootball_cfl": "draftkings",
    "americanfootball_ncaaf": "draftkings",
    "americanfootball_ncaaf_championship_winner": "draftkings",
    "americanfootball_nfl": "draftkings",
    "americanfootball_nfl_super_bowl_winner": "draftkings",
    # Baseball
    "baseball_mlb": "draftkings",
    "baseball_mlb_world_series_winner": "draftkings",
    # Basketball
    "basketball_nba": "draftkings",
    "basketball_nba_championship_winner": "draftkings",
    "basketball_ncaab": "draftkings",
    "basketball_wnba": "draftkings",
    "basketball_euroleague": "pinnacle",
    # Ice hockey
    "icehockey_nhl": "draftkings",
    "icehockey_nhl_championship_winner": "draftkings",
    # Fighting
    "mma_mixed_martial_arts": "draftkings",
    "boxing_boxing": "draftkings",
    # Soccer
    "soccer_epl": "williamhill",
    "soccer_efl_champ": "williamhill",
    "soccer_fa_cup": "williamhill",
    "soccer_spain_la_liga": "pinnacle",
    "soccer_italy_serie_a": "pinnacle",
    "soccer_germany_bundesliga": "pinnacle",
    "soccer_france_ligue_one": "pinnacle",
    "soccer_uefa_champs_league": "pinnacle",
    "soccer_uefa_europa_league": "pinnacle",
    "soccer_usa_mls": "draftkings",
    # Tennis / golf / cricket / rugby
    "tennis_atp_us_open": "pinnacle",
    "tennis_wta_us_open": "pinnacle",
    "golf_masters_tournament_winner": "draftkings",
    "cricket_ipl": "betfair_ex_uk",
    "rugbyleague_nrl": "sportsbet",
    "aussierules_afl": "sportsbet",
})

# Upstream sports the poller never fetches.
EXCLUDED_SPORT_SUBSTRINGS: tuple[str, ...] = ("politics", "entertainment")
EXCLUDED_SPORT_KEYS: frozenset = frozenset({"golf_the_open_championship_winner"})

"""
backend/tests/test_odds_merge_service.py

Purpose:
    Merge engine behavior: one record per match, one entry per bookmaker,
    one market per canonical key, strictly-lower price replacement,
    determinism and skipping of malformed payloads.
"""

from __future__ import annotations

import copy

from oddsbook.models.odds import parse_matches
from oddsbook.services.market_keys import normalize_market_key
from oddsbook.services.odds_merge_service import merge_matches


def _raw(match_id: str, bookmaker: str, market: str, outcomes: list[dict], **extra) -> dict:
    doc = {
        "id": match_id,
        "sport_key": "soccer_epl",
        "sport_title": "EPL",
        "home_team": "TeamA",
        "away_team": "TeamB",
        "commence_time": "2026-10-20T18:00:00Z",
        "bookmakers": [
            {
                "key": bookmaker,
                "title": bookmaker.title(),
                "last_update": "2026-10-18T10:00:00Z",
                "markets": [{"key": market, "outcomes": outcomes}],
            }
        ],
    }
    doc.update(extra)
    return doc


def _outcome(match, bookmaker: str, market: str, name: str):
    entry = next(b for b in match.bookmakers if b.key == bookmaker)
    mkt = next(m for m in entry.markets if m.key == market)
    return next(o for o in mkt.outcomes if o.name == name)


def test_handicap_and_asian_handicap_merge_into_one_spreads_market():
    merged = merge_matches([
        _raw("abc123", "draftkings", "handicap", [{"name": "TeamA", "price": 1.80, "point": -1.5}]),
        _raw("abc123", "draftkings", "asian_handicap", [{"name": "TeamA", "price": 1.75, "point": -1.5}]),
    ])

    assert list(merged) == ["abc123"]
    match = merged["abc123"]
    assert [b.key for b in match.bookmakers] == ["draftkings"]
    markets = match.bookmakers[0].markets
    assert [m.key for m in markets] == ["spreads"]
    assert len(markets[0].outcomes) == 1
    assert markets[0].outcomes[0].price == 1.75
    assert markets[0].outcomes[0].point == -1.5


def test_lower_price_replaces_existing_outcome():
    merged = merge_matches([
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 2.10}]),
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 1.95}]),
    ])
    assert _outcome(merged["m1"], "fanduel", "h2h", "TeamA").price == 1.95


def test_higher_price_never_replaces_existing_outcome():
    merged = merge_matches([
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 2.10}]),
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 2.50}]),
    ])
    assert _outcome(merged["m1"], "fanduel", "h2h", "TeamA").price == 2.10


def test_equal_price_keeps_first_point():
    merged = merge_matches([
        _raw("m1", "fanduel", "totals", [{"name": "Over", "price": 1.90, "point": 2.5}]),
        _raw("m1", "fanduel", "over_under", [{"name": "Over", "price": 1.90, "point": 3.0}]),
    ])
    assert _outcome(merged["m1"], "fanduel", "totals", "Over").point == 2.5


def test_lower_price_carries_its_point():
    merged = merge_matches([
        _raw("m1", "fanduel", "totals", [{"name": "Over", "price": 1.90, "point": 2.5}]),
        _raw("m1", "fanduel", "totals", [{"name": "Over", "price": 1.70, "point": 3.5}]),
    ])
    outcome = _outcome(merged["m1"], "fanduel", "totals", "Over")
    assert (outcome.price, outcome.point) == (1.70, 3.5)


def test_new_outcomes_markets_and_bookmakers_are_appended():
    merged = merge_matches([
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}]),
        _raw("m1", "fanduel", "h2h", [{"name": "Draw", "price": 3.4}]),
        _raw("m1", "fanduel", "btts", [{"name": "Yes", "price": 1.8}]),
        _raw("m1", "betmgm", "h2h", [{"name": "TeamA", "price": 2.05}]),
    ])
    match = merged["m1"]
    assert [b.key for b in match.bookmakers] == ["fanduel", "betmgm"]
    fanduel = match.bookmakers[0]
    assert [m.key for m in fanduel.markets] == ["h2h", "both_teams_to_score"]
    assert [o.name for o in fanduel.markets[0].outcomes] == ["TeamA", "Draw"]


def test_duplicate_canonical_markets_within_one_bookmaker_are_folded():
    raw = _raw("m1", "betfair_ex_uk", "h2h", [{"name": "TeamA", "price": 2.2}])
    raw["bookmakers"][0]["markets"].append(
        {"key": "h2h_lay", "outcomes": [{"name": "TeamA", "price": 2.1}, {"name": "TeamB", "price": 3.0}]}
    )
    merged = merge_matches([raw])

    markets = merged["m1"].bookmakers[0].markets
    assert [m.key for m in markets] == ["h2h"]
    assert {o.name: o.price for o in markets[0].outcomes} == {"TeamA": 2.1, "TeamB": 3.0}


def test_match_order_follows_first_appearance():
    merged = merge_matches([
        _raw("z", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}]),
        _raw("a", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}]),
        _raw("z", "betmgm", "h2h", [{"name": "TeamA", "price": 2.0}]),
        _raw("m", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}]),
    ])
    assert list(merged) == ["z", "a", "m"]


def test_top_level_fields_come_from_first_payload():
    merged = merge_matches([
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}], sport_title="Premier League"),
        _raw("m1", "betmgm", "h2h", [{"name": "TeamA", "price": 2.0}], sport_title="Other"),
    ])
    match = merged["m1"]
    assert match.sport_title == "Premier League"
    assert match.home_team == "TeamA"
    assert match.commence_time.year == 2026


def test_merge_is_deterministic():
    payloads = [
        _raw("m1", "fanduel", "handicap", [{"name": "TeamA", "price": 1.9, "point": -0.5}]),
        _raw("m2", "betmgm", "h2h", [{"name": "TeamB", "price": 2.4}]),
        _raw("m1", "fanduel", "spreads", [{"name": "TeamA", "price": 1.8, "point": -1.0}]),
        _raw("m1", "caesars", "totals", [{"name": "Over", "price": 1.95, "point": 2.5}]),
    ]
    first = {k: v.model_dump() for k, v in merge_matches(payloads).items()}
    second = {k: v.model_dump() for k, v in merge_matches(payloads).items()}
    assert first == second


def test_no_tuple_is_lost_and_keys_stay_unique():
    payloads = [
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}, {"name": "TeamB", "price": 3.1}]),
        _raw("m1", "fanduel", "moneyline", [{"name": "Draw", "price": 3.3}]),
        _raw("m1", "draftkings", "point_spread", [{"name": "TeamA", "price": 1.9, "point": -1.5}]),
        _raw("m2", "draftkings", "btts", [{"name": "Yes", "price": 1.7}]),
        _raw("m2", "draftkings", "both_teams_to_score", [{"name": "No", "price": 2.1}]),
        _raw("m2", "fanduel", "team_totals", [{"name": "Over", "price": 1.85, "point": 1.5}]),
    ]
    expected = set()
    for p in payloads:
        for b in p["bookmakers"]:
            for m in b["markets"]:
                for o in m["outcomes"]:
                    expected.add((p["id"], b["key"], normalize_market_key(m["key"]), o["name"]))

    merged = merge_matches(payloads)

    actual = set()
    for match_id, match in merged.items():
        bookmaker_keys = [b.key for b in match.bookmakers]
        assert len(bookmaker_keys) == len(set(bookmaker_keys))
        for b in match.bookmakers:
            market_keys = [m.key for m in b.markets]
            assert len(market_keys) == len(set(market_keys))
            for m in b.markets:
                names = [o.name for o in m.outcomes]
                assert len(names) == len(set(names))
                for o in m.outcomes:
                    actual.add((match_id, b.key, m.key, o.name))
    assert expected <= actual


def test_malformed_payloads_are_skipped():
    good = _raw("ok", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}])
    missing_id = _raw("", "fanduel", "h2h", [{"name": "TeamA", "price": 2.0}])
    del missing_id["id"]
    bad_price = _raw("bad-price", "fanduel", "h2h", [{"name": "TeamA", "price": "n/a"}, {"name": "TeamB", "price": 2.2}])

    merged = merge_matches([missing_id, "not-a-match", None, good, bad_price])

    assert list(merged) == ["ok", "bad-price"]
    outcomes = merged["bad-price"].bookmakers[0].markets[0].outcomes
    assert [o.name for o in outcomes] == ["TeamB"]


def test_input_models_are_not_mutated():
    raws = parse_matches([
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 2.10}]),
        _raw("m1", "fanduel", "h2h", [{"name": "TeamA", "price": 1.95}]),
    ])
    before = copy.deepcopy([r.model_dump() for r in raws])

    merge_matches(raws)

    assert [r.model_dump() for r in raws] == before


def test_bare_lay_market_key_is_kept():
    merged = merge_matches([
        _raw("m1", "betfair_ex_uk", "LAY", [{"name": "TeamA", "price": 2.0}]),
    ])

    markets = merged["m1"].bookmakers[0].markets
    assert [m.key for m in markets] == ["lay"]
    assert [o.name for o in markets[0].outcomes] == ["TeamA"]

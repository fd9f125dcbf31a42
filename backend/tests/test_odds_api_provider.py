"""
backend/tests/test_odds_api_provider.py

Purpose:
    The Odds API client: request parameters, status classification
    (429/400/404/other), quota header tracking and tolerant parsing.
"""

from __future__ import annotations

import httpx
import pytest

from oddsbook.providers.errors import BadRequest, RateLimited, UpstreamError
from oddsbook.providers.http_client import CircuitBreaker
from oddsbook.providers.odds_api import TheOddsAPIProvider


class _FakeClient:
    def __init__(self, responses: list) -> None:
        self._responses = list(responses)
        self.calls: list[dict] = []
        self.circuit = CircuitBreaker()

    async def get(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def aclose(self) -> None:
        return None


def _provider(responses: list) -> tuple[TheOddsAPIProvider, _FakeClient]:
    client = _FakeClient(responses)
    return TheOddsAPIProvider(client=client, base_url="https://odds.test/v4"), client


_EVENT = {
    "id": "ev1",
    "sport_key": "basketball_nba",
    "sport_title": "NBA",
    "commence_time": "2026-10-21T00:00:00Z",
    "home_team": "Boston Celtics",
    "away_team": "New York Knicks",
    "bookmakers": [
        {
            "key": "draftkings",
            "title": "DraftKings",
            "last_update": "2026-10-18T09:00:00Z",
            "markets": [
                {"key": "h2h", "outcomes": [
                    {"name": "Boston Celtics", "price": 1.45},
                    {"name": "New York Knicks", "price": 2.8},
                ]},
            ],
        },
        {"title": "no key"},
    ],
}


@pytest.mark.asyncio
async def test_get_odds_sends_bookmakers_instead_of_regions():
    provider, client = _provider([httpx.Response(200, json=[_EVENT])])

    matches = await provider.get_odds(
        "basketball_nba", "h2h", bookmakers=("fanduel", "draftkings"), regions="us", api_key="k1",
    )

    params = client.calls[0]["params"]
    assert client.calls[0]["url"] == "https://odds.test/v4/sports/basketball_nba/odds"
    assert params["apiKey"] == "k1"
    assert params["bookmakers"] == "fanduel,draftkings"
    assert "regions" not in params
    assert params["oddsFormat"] == "decimal"
    assert params["dateFormat"] == "iso"
    assert [m.id for m in matches] == ["ev1"]
    assert [b.key for b in matches[0].bookmakers] == ["draftkings"]


@pytest.mark.asyncio
async def test_get_odds_defaults_to_all_regions_without_bookmakers():
    provider, client = _provider([httpx.Response(200, json=[])])

    await provider.get_odds("soccer_epl", ["h2h", "totals"], api_key="k1")

    params = client.calls[0]["params"]
    assert params["regions"] == "us,us2,uk,eu,au"
    assert params["markets"] == "h2h,totals"
    assert "bookmakers" not in params


@pytest.mark.asyncio
async def test_429_raises_rate_limited_after_single_call():
    provider, client = _provider([httpx.Response(429, json={"message": "quota"})])

    with pytest.raises(RateLimited):
        await provider.get_odds("soccer_epl", "h2h", bookmakers=["fanduel"], api_key="k1")
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_400_raises_bad_request_with_body():
    provider, _ = _provider([httpx.Response(400, json={"message": "Invalid market"})])

    with pytest.raises(BadRequest) as info:
        await provider.get_odds("soccer_epl", "nope", api_key="k1")
    assert info.value.body == {"message": "Invalid market"}


@pytest.mark.asyncio
async def test_other_status_raises_upstream_error_with_status_and_body():
    provider, _ = _provider([httpx.Response(401, text="unauthorized")])

    with pytest.raises(UpstreamError) as info:
        await provider.list_sports(api_key="bad")
    assert info.value.status_code == 401
    assert info.value.body == "unauthorized"


@pytest.mark.asyncio
async def test_list_markets_404_returns_empty_list():
    provider, _ = _provider([httpx.Response(404, json={"message": "not found"})])

    assert await provider.list_markets("golf_pga", api_key="k1") == []


@pytest.mark.asyncio
async def test_list_markets_parses_descriptors():
    provider, client = _provider([
        httpx.Response(200, json=[{"key": "h2h"}, {"key": "spreads", "last_update": "2026-10-18T09:00:00Z"}, {}]),
    ])

    markets = await provider.list_markets("basketball_nba", api_key="k1")

    assert [m.key for m in markets] == ["h2h", "spreads"]
    assert client.calls[0]["url"].endswith("/sports/basketball_nba/markets")


@pytest.mark.asyncio
async def test_missing_api_key_is_bad_request(monkeypatch):
    from oddsbook.providers import odds_api as odds_module

    monkeypatch.setattr(odds_module.settings, "ODDS_API_KEY", "", raising=False)
    provider, client = _provider([])

    with pytest.raises(BadRequest):
        await provider.list_sports()
    assert client.calls == []


@pytest.mark.asyncio
async def test_timeout_is_classified_as_upstream_error():
    provider, _ = _provider([httpx.ReadTimeout("slow")])

    with pytest.raises(UpstreamError) as info:
        await provider.get_scores_raw("soccer_epl", 3, api_key="k1")
    assert info.value.status_code == 504


@pytest.mark.asyncio
async def test_open_circuit_short_circuits_calls():
    provider, client = _provider([])
    for _ in range(client.circuit.failure_threshold):
        client.circuit.record_failure()

    with pytest.raises(UpstreamError) as info:
        await provider.list_sports(api_key="k1")
    assert info.value.status_code == 503
    assert client.calls == []


@pytest.mark.asyncio
async def test_quota_headers_are_tracked():
    provider, _ = _provider([
        httpx.Response(
            200,
            json=[{"key": "soccer_epl", "group": "Soccer", "title": "EPL", "active": True}],
            headers={"x-requests-used": "12", "x-requests-remaining": "488"},
        )
    ])

    sports = await provider.list_sports(api_key="k1")

    assert [s.key for s in sports] == ["soccer_epl"]
    assert provider.api_usage == {"requests_used": 12, "requests_remaining": 488}


@pytest.mark.asyncio
async def test_scores_raw_passes_days_from():
    payload = [{"id": "ev1", "completed": False, "scores": None}]
    provider, client = _provider([httpx.Response(200, json=payload)])

    data = await provider.get_scores_raw("soccer_epl", 2, api_key="k1")

    assert data == payload
    assert client.calls[0]["params"]["daysFrom"] == 2


@pytest.mark.asyncio
async def test_non_json_success_body_is_upstream_error():
    provider, _ = _provider([httpx.Response(200, text="<html>maintenance</html>")])

    with pytest.raises(UpstreamError) as info:
        await provider.get_odds("soccer_epl", "h2h", bookmakers=["fanduel"], api_key="k1")
    assert info.value.status_code == 502
    assert info.value.body == "<html>maintenance</html>"

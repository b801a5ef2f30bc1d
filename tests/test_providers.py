"""Tests for the Sportmonks fixture parser and the Odds API client."""

import pytest
from unittest.mock import MagicMock, patch

import requests

from backend.services.fixtures import SportmonksClient, parse_fixture_result
from backend.services.odds import LEAGUE_MAP, OddsAPIClient, sport_keys_for_leagues


# ---------------------------------------------------------------------------
# parse_fixture_result
# ---------------------------------------------------------------------------

def _fixture(state="FT", home=2, away=1, extra_scores=()):
    scores = [
        {"description": "1ST_HALF", "score": {"goals": 0, "participant": "home"}},
        {"description": "CURRENT", "score": {"goals": home, "participant": "home"}},
        {"description": "CURRENT", "score": {"goals": away, "participant": "away"}},
        *extra_scores,
    ]
    return {"data": {"id": 1, "state": {"short_name": state}, "scores": scores}}


@pytest.mark.parametrize("state", ["FT", "AET", "AP", "ft"])
def test_finished_states(state):
    result = parse_fixture_result(_fixture(state=state))
    assert result.finished
    assert (result.home_goals, result.away_goals) == (2, 1)
    assert result.resolvable


@pytest.mark.parametrize("state", ["NS", "INPLAY_1ST_HALF", "HT", "POSTP", ""])
def test_unfinished_states(state):
    result = parse_fixture_result(_fixture(state=state))
    assert not result.finished
    assert not result.resolvable


@pytest.mark.parametrize("payload", [
    None,
    {},
    {"data": None},
    {"data": []},
    {"data": {"state": None, "scores": None}},
])
def test_malformed_payload_not_resolvable(payload):
    assert not parse_fixture_result(payload).resolvable


def test_missing_current_score_not_resolvable():
    payload = {"data": {"state": {"short_name": "FT"}, "scores": [
        {"description": "CURRENT", "score": {"goals": 1, "participant": "home"}},
    ]}}
    result = parse_fixture_result(payload)
    assert result.finished
    assert result.away_goals is None
    assert not result.resolvable


def test_non_numeric_goals_not_resolvable():
    result = parse_fixture_result(_fixture(home="two"))
    assert result.home_goals is None
    assert not result.resolvable


def test_client_requires_key(monkeypatch):
    monkeypatch.setattr("backend.services.fixtures.API_KEY", None)
    with pytest.raises(ValueError):
        SportmonksClient()


def test_client_fetch_fixture_result():
    response = MagicMock()
    response.json.return_value = _fixture(home=0, away=3)
    with patch("backend.services.fixtures.requests.get", return_value=response) as get:
        result = SportmonksClient(api_key="k").fetch_fixture_result("19134457")

    assert (result.home_goals, result.away_goals) == (0, 3)
    url = get.call_args[0][0]
    params = get.call_args[1]["params"]
    assert url.endswith("/fixtures/19134457")
    assert params["api_token"] == "k"
    assert params["include"] == "scores;state"


# ---------------------------------------------------------------------------
# Odds
# ---------------------------------------------------------------------------

def test_league_map_size():
    assert len(LEAGUE_MAP) == 19


def test_sport_keys_dedupe_and_case():
    keys = sport_keys_for_leagues(["Premier League", "Scottish Premiership", "premiership", "Unknown"])
    assert keys == ["soccer_epl", "soccer_scotland_premiership"]


def _odds_response(data):
    response = MagicMock()
    response.json.return_value = data
    response.headers = {"x-requests-remaining": "480", "x-requests-used": "20"}
    return response


def test_odds_cached_within_ttl():
    clock = MagicMock(side_effect=[0.0, 100.0, 700.0])
    client = OddsAPIClient(api_key="k", cache_ttl=600, clock=clock)

    with patch("backend.services.odds.requests.get", return_value=_odds_response([{"id": "a"}])) as get:
        assert client.get_odds_for_sport("soccer_epl") == [{"id": "a"}]
        assert client.get_odds_for_sport("soccer_epl") == [{"id": "a"}]
        assert get.call_count == 1
        client.get_odds_for_sport("soccer_epl")   # cache expired
        assert get.call_count == 2


def test_odds_error_returns_empty_and_is_not_cached():
    client = OddsAPIClient(api_key="k")
    with patch("backend.services.odds.requests.get", side_effect=requests.ConnectionError("down")):
        assert client.get_odds_for_sport("soccer_epl") == []

    with patch("backend.services.odds.requests.get", return_value=_odds_response([{"id": "b"}])):
        assert client.get_odds_for_sport("soccer_epl") == [{"id": "b"}]


def test_odds_for_leagues_flattens():
    client = OddsAPIClient(api_key="k")
    responses = {
        "soccer_epl": [{"id": 1}, {"id": 2}],
        "soccer_italy_serie_a": [{"id": 3}],
    }
    with patch.object(client, "get_odds_for_sport", side_effect=lambda key: responses[key]):
        matches = client.get_odds_for_leagues(["Premier League", "Serie A", "Premier League"])
    assert [m["id"] for m in matches] == [1, 2, 3]


def test_list_soccer_sports_filters():
    sports = [{"key": "soccer_epl"}, {"key": "basketball_nba"}, {"title": "no key"}]
    client = OddsAPIClient(api_key="k")
    with patch("backend.services.odds.requests.get", return_value=_odds_response(sports)):
        assert client.list_soccer_sports() == [{"key": "soccer_epl"}]

"""Tests for resolution.py: settlement, calibration upkeep and auto-resolve."""

import pytest
from unittest.mock import MagicMock, patch

import requests

from backend.services import prediction_store as store
from backend.services.fixtures import FixtureResult
from backend.services.resolution import (
    auto_resolve_pending,
    rebuild_calibration,
    resolve_prediction,
)


# ---------------------------------------------------------------------------
# resolve_prediction
# ---------------------------------------------------------------------------

def test_resolve_unknown_fixture_returns_none(db):
    assert resolve_prediction(db, "missing", 1, 0) is None
    assert store.load_calibration(db) is None


def test_resolve_sets_result_fields(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Over 2.5"))
    resolved = resolve_prediction(db, "1", 2, 1)

    assert resolved["result"] == "win"
    assert resolved["homeGoals"] == 2
    assert resolved["awayGoals"] == 1
    assert resolved["resolvedAt"] is not None


@pytest.mark.parametrize("tip, hg, ag, expected", [
    ("Over 2.5", 2, 1, "win"),
    ("Under 2.5", 2, 1, "loss"),
    ("Both teams to score", 1, 0, "loss"),
    ("No BTTS", 1, 0, "win"),
    ("Liverpool Draw No Bet", 1, 1, "push"),
    ("", 1, 1, "push"),
])
def test_resolve_uses_stored_tip(db, make_prediction, tip, hg, ag, expected):
    store.save_prediction(db, make_prediction(fixtureId="2", tip=tip))
    assert resolve_prediction(db, "2", hg, ag)["result"] == expected


def test_resolve_rebuilds_calibration(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Over 2.5", conf=65))
    store.save_prediction(db, make_prediction(fixtureId="2", tip="Over 2.5", conf=68))
    store.save_prediction(db, make_prediction(fixtureId="3", tip="Over 2.5", conf=82))

    resolve_prediction(db, "1", 3, 0)
    resolve_prediction(db, "2", 1, 0)

    calib = store.load_calibration(db)
    assert calib["overall"] == {"wins": 1, "total": 2, "rate": 50}
    assert calib["buckets"]["60"]["total"] == 2
    assert "80" not in calib["buckets"]   # still pending


def test_resolve_twice_is_idempotent(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Over 2.5"))
    first = resolve_prediction(db, "1", 2, 1)
    second = resolve_prediction(db, "1", 2, 1)

    assert second == first
    assert store.load_calibration(db)["overall"]["total"] == 1


def test_resolved_prediction_is_never_overwritten(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Over 2.5"))
    resolve_prediction(db, "1", 2, 1)
    again = resolve_prediction(db, "1", 0, 0)

    assert again["result"] == "win"
    assert (again["homeGoals"], again["awayGoals"]) == (2, 1)


def test_push_excluded_from_calibration(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Mystery market"))
    resolve_prediction(db, "1", 1, 1)

    calib = store.load_calibration(db)
    assert calib["overall"] == {"wins": 0, "total": 0, "rate": None}
    assert calib["buckets"] == {}


def test_calibration_failure_keeps_resolution(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Over 2.5"))
    with patch("backend.services.resolution.save_calibration", side_effect=RuntimeError("disk full")):
        resolved = resolve_prediction(db, "1", 3, 1)

    assert resolved["result"] == "win"
    assert store.get_prediction(db, "1").result == "win"
    assert store.load_calibration(db) is None

    # Derived data can be regenerated afterwards
    snapshot = rebuild_calibration(db)
    assert snapshot["overall"]["total"] == 1
    assert store.load_calibration(db)["overall"]["wins"] == 1


# ---------------------------------------------------------------------------
# auto_resolve_pending
# ---------------------------------------------------------------------------

def _client(results):
    """Fake Sportmonks client; ``results`` maps fixture id → FixtureResult or Exception."""
    client = MagicMock()

    def _fetch(fixture_id):
        value = results[fixture_id]
        if isinstance(value, Exception):
            raise value
        return value

    client.fetch_fixture_result.side_effect = _fetch
    return client


def test_auto_resolve_settles_finished_only(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Over 2.5"))
    store.save_prediction(db, make_prediction(fixtureId="2", tip="Under 2.5"))
    client = _client({
        "1": FixtureResult(finished=True, home_goals=2, away_goals=2),
        "2": FixtureResult(finished=False),
    })

    summary = auto_resolve_pending(db, client=client)

    assert summary["checked"] == 2
    assert summary["resolved"] == 1
    assert summary["skipped"] == 1
    assert summary["errors"] == []
    assert store.get_prediction(db, "1").result == "win"
    assert store.get_prediction(db, "2").result is None


def test_auto_resolve_skips_finished_without_score(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1"))
    client = _client({"1": FixtureResult(finished=True, home_goals=1, away_goals=None)})

    summary = auto_resolve_pending(db, client=client)
    assert summary["resolved"] == 0
    assert summary["skipped"] == 1
    assert store.get_prediction(db, "1").result is None


def test_auto_resolve_tolerates_provider_failures(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1", tip="Over 2.5"))
    store.save_prediction(db, make_prediction(fixtureId="2", tip="Over 2.5"))
    client = _client({
        "1": requests.ConnectionError("timeout"),
        "2": FixtureResult(finished=True, home_goals=3, away_goals=1),
    })

    summary = auto_resolve_pending(db, client=client)

    assert summary["resolved"] == 1
    assert len(summary["errors"]) == 1
    assert summary["errors"][0].startswith("1:")
    assert store.get_prediction(db, "1").result is None
    assert store.get_prediction(db, "2").result == "win"


def test_auto_resolve_ignores_already_resolved(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="1"))
    resolve_prediction(db, "1", 1, 0)
    client = _client({})

    summary = auto_resolve_pending(db, client=client)
    assert summary["checked"] == 0
    client.fetch_fixture_result.assert_not_called()


def test_auto_resolve_without_api_key(db, make_prediction, monkeypatch):
    monkeypatch.setattr("backend.services.fixtures.API_KEY", None)
    store.save_prediction(db, make_prediction(fixtureId="1"))

    summary = auto_resolve_pending(db)
    assert summary["resolved"] == 0
    assert "SPORTMONKS_KEY" in summary["errors"][0]


# ---------------------------------------------------------------------------
# Edits to settled predictions
# ---------------------------------------------------------------------------

def test_merge_into_settled_prediction_rebuilds_calibration(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="60", conf=65, tipType="over_under"))
    resolve_prediction(db, "60", 3, 0)

    store.save_prediction(db, {"fixtureId": "60", "conf": 85, "tipType": "btts"})

    calib = store.load_calibration(db)
    assert list(calib["buckets"]) == ["80"]
    assert calib["buckets"]["80"]["tipTypes"] == {"btts": {"wins": 1, "total": 1}}
    assert list(calib["byType"]) == ["btts"]
    # Settlement itself is untouched
    assert store.get_prediction(db, "60").result == "win"


def test_merge_into_pending_prediction_leaves_calibration_alone(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="61"))
    store.save_prediction(db, {"fixtureId": "61", "conf": 85})
    assert store.load_calibration(db) is None


def test_merge_without_calibration_inputs_skips_rebuild(db, make_prediction):
    store.save_prediction(db, make_prediction(fixtureId="62"))
    resolve_prediction(db, "62", 2, 1)

    with patch("backend.services.prediction_store.build_calibration") as build:
        store.save_prediction(db, {"fixtureId": "62", "safeTip": "Over 1.5", "conf": 65})

    build.assert_not_called()

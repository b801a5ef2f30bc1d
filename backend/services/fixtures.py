"""
Sportmonks football API integration.
https://docs.sportmonks.com/football/

Two uses:
  - fixture status lookups for the auto-resolver (is it finished, what was
    the final score)
  - a thin GET pass-through so the frontend can reach any Sportmonks
    endpoint without holding the API token
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

API_KEY = os.getenv("SPORTMONKS_KEY")
BASE_URL = "https://api.sportmonks.com/v3/football"

# Full time, after extra time, after penalties
FINISHED_STATES = frozenset({"FT", "AET", "AP"})


@dataclass
class FixtureResult:
    finished: bool
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    @property
    def resolvable(self) -> bool:
        return self.finished and self.home_goals is not None and self.away_goals is not None


def _current_goals(scores, participant: str) -> Optional[int]:
    for entry in scores or []:
        if not isinstance(entry, dict) or entry.get("description") != "CURRENT":
            continue
        score = entry.get("score") or {}
        if score.get("participant") != participant:
            continue
        try:
            return int(score.get("goals"))
        except (TypeError, ValueError):
            return None
    return None


def parse_fixture_result(payload: Dict) -> FixtureResult:
    """
    Extract status and final score from a ``/fixtures/{id}?include=scores;state``
    response.  Anything malformed reads as "not finished".
    """
    fixture = (payload or {}).get("data")
    if not isinstance(fixture, dict):
        return FixtureResult(finished=False)

    state = ((fixture.get("state") or {}).get("short_name") or "").upper()
    if state not in FINISHED_STATES:
        return FixtureResult(finished=False)

    scores = fixture.get("scores")
    return FixtureResult(
        finished=True,
        home_goals=_current_goals(scores, "home"),
        away_goals=_current_goals(scores, "away"),
    )


class SportmonksClient:
    """Client for the Sportmonks v3 football API"""

    def __init__(self, api_key: Optional[str] = None, timeout: int = 15):
        self.api_key = api_key or API_KEY
        if not self.api_key:
            raise ValueError("SPORTMONKS_KEY not set in environment")
        self.timeout = timeout

    def _request(self, endpoint: str, params: Optional[Dict]) -> requests.Response:
        url = f"{BASE_URL}/{endpoint.lstrip('/')}"
        query = {**(params or {}), "api_token": self.api_key}
        logger.info("[SM] %s", endpoint)
        return requests.get(url, params=query, timeout=self.timeout)

    def get(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """GET ``endpoint`` (e.g. "/fixtures/123") and return the JSON body."""
        resp = self._request(endpoint, params)
        resp.raise_for_status()
        return resp.json()

    def proxy(self, endpoint: str, params: Optional[Dict] = None) -> Tuple[int, Any]:
        """Forward a GET and hand back the upstream status and body unchanged."""
        resp = self._request(endpoint, params)
        return resp.status_code, resp.json()

    def fetch_fixture_result(self, fixture_id: str) -> FixtureResult:
        payload = self.get(f"/fixtures/{fixture_id}", {"include": "scores;state"})
        return parse_fixture_result(payload)

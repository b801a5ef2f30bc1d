"""
The Odds API integration for football odds.
https://the-odds-api.com/

Frontend requests name leagues the way Sportmonks does ("Premier League",
"Serie A"); LEAGUE_MAP translates those into Odds API sport keys.  Each
sport's odds are cached in memory for ODDS_CACHE_TTL_SECONDS to keep quota
use down.  API failures are logged and yield an empty list.
"""

import requests
import os
import logging
import threading
import time
from typing import Dict, Iterable, List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

API_KEY = os.getenv("THE_ODDS_API_KEY")
BASE_URL = "https://api.the-odds-api.com/v4"

ODDS_REGIONS = os.getenv("ODDS_API_REGIONS", "uk,eu")
CACHE_TTL_SECONDS = int(os.getenv("ODDS_CACHE_TTL_SECONDS", "600"))
MARKETS = "h2h,totals,btts,asian_handicap,draw_no_bet,double_chance"

# Sportmonks league name (lower-case) → Odds API sport key
LEAGUE_MAP: Dict[str, str] = {
    "premier league":           "soccer_epl",
    "la liga":                  "soccer_spain_la_liga",
    "bundesliga":               "soccer_germany_bundesliga",
    "serie a":                  "soccer_italy_serie_a",
    "ligue 1":                  "soccer_france_ligue_one",
    "champions league":         "soccer_uefa_champs_league",
    "europa league":            "soccer_uefa_europa_league",
    "championship":             "soccer_efl_champ",
    "eredivisie":               "soccer_netherlands_eredivisie",
    "primeira liga":            "soccer_portugal_primeira_liga",
    "scottish premiership":     "soccer_scotland_premiership",
    "premiership":              "soccer_scotland_premiership",
    "super lig":                "soccer_turkey_super_league",
    "pro league":               "soccer_belgium_first_div",
    "mls":                      "soccer_usa_mls",
    "brasileirao":              "soccer_brazil_campeonato",
    "russian premier league":   "soccer_russia_premier_league",
    "ukrainian premier league": "soccer_ukraine_premier_league",
    "ekstraklasa":              "soccer_poland_ekstraklasa",
}


def sport_keys_for_leagues(leagues: Iterable[str]) -> List[str]:
    """Map league names to unique sport keys, keeping first-seen order."""
    keys: List[str] = []
    for league in leagues:
        key = LEAGUE_MAP.get(league.strip().lower())
        if key and key not in keys:
            keys.append(key)
    return keys


class OddsAPIClient:
    """Client for The Odds API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache_ttl: int = CACHE_TTL_SECONDS,
        clock=time.monotonic,
    ):
        self.api_key = api_key or API_KEY
        if not self.api_key:
            raise ValueError("THE_ODDS_API_KEY not set in environment")
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Dict[str, Tuple[float, List[Dict]]] = {}
        self._lock = threading.Lock()

    def get_odds_for_sport(self, sport_key: str) -> List[Dict]:
        """
        Fetch current odds for one sport key across all supported markets.

        Served from cache when the last successful fetch is younger than
        ``cache_ttl`` seconds.  Failed fetches are not cached.
        """
        now = self._clock()
        with self._lock:
            cached = self._cache.get(sport_key)
            if cached and now - cached[0] < self.cache_ttl:
                return cached[1]

        url = f"{BASE_URL}/sports/{sport_key}/odds"
        params = {
            "apiKey": self.api_key,
            "regions": ODDS_REGIONS,
            "markets": MARKETS,
            "oddsFormat": "decimal",
            "dateFormat": "iso",
        }

        try:
            logger.info("[ODDS] Fetching %s", sport_key)
            response = requests.get(url, params=params, timeout=10)

            remaining = response.headers.get("x-requests-remaining")
            used = response.headers.get("x-requests-used")
            logger.info("[ODDS] Quota: %s used, %s remaining", used, remaining)

            response.raise_for_status()
            data = response.json()

        except requests.exceptions.RequestException as e:
            logger.error("[ODDS] %s error: %s", sport_key, e)
            return []

        with self._lock:
            self._cache[sport_key] = (now, data)
        return data

    def get_odds_for_leagues(self, leagues: Iterable[str]) -> List[Dict]:
        """Odds for every mapped league, flattened into one list."""
        matches: List[Dict] = []
        for sport_key in sport_keys_for_leagues(leagues):
            matches.extend(self.get_odds_for_sport(sport_key))
        return matches

    def list_soccer_sports(self) -> List[Dict]:
        """Soccer competitions currently listed by the Odds API."""
        try:
            response = requests.get(
                f"{BASE_URL}/sports", params={"apiKey": self.api_key}, timeout=10,
            )
            response.raise_for_status()
            sports = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Odds API sports list error: %s", e)
            return []
        return [s for s in sports if "soccer" in (s.get("key") or "")]


_odds_client: Optional[OddsAPIClient] = None


def get_odds_client() -> OddsAPIClient:
    global _odds_client
    if _odds_client is None:
        _odds_client = OddsAPIClient()
    return _odds_client

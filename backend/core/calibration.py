"""
Confidence calibration reducer.

``build_calibration`` folds the full prediction set into a snapshot:

    buckets   {"60": {predicted, wins, total, tipTypes, actualRate, error}, ...}
    overall   {wins, total, rate}
    byType    {tip_type: {wins, total, rate}}
    lastBuilt ISO timestamp

Only decisive results (win / loss) count; pushes and pending predictions are
ignored.  The snapshot is rebuilt from scratch every time, so it carries no
state between calls.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional

BAND_WIDTH: int = 10
TOP_BAND: int = 90          # "90+" absorbs a confidence of 100
UNKNOWN_TIP_TYPE: str = "unknown"

_DECISIVE = ("win", "loss")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rate_pct(wins: int, total: int) -> Optional[int]:
    """Win rate as a whole percent, or None when there is nothing to rate."""
    if total <= 0:
        return None
    return round_half_up(wins / total * 100)


def confidence_band(conf: float) -> int:
    """Lower bound of the 10-point band ``conf`` falls in (0 ... 90)."""
    band = int(math.floor(conf / BAND_WIDTH)) * BAND_WIDTH
    return max(0, min(TOP_BAND, band))


def decisive(predictions: Iterable[Mapping]) -> List[Mapping]:
    return [p for p in predictions if p.get("result") in _DECISIVE]


def _tally() -> Dict[str, int]:
    return {"wins": 0, "total": 0}


def build_calibration(
    predictions: Iterable[Mapping],
    now: Optional[datetime] = None,
) -> Dict:
    """
    Rebuild the calibration snapshot from every prediction.

    ``predictions`` are wire-shaped dicts (``result``, ``conf``,
    ``tipType``).  ``now`` only feeds ``lastBuilt``.
    """
    resolved = decisive(predictions)
    buckets: Dict[int, Dict] = {}
    by_type: Dict[str, Dict[str, int]] = {}

    for p in resolved:
        won = p["result"] == "win"
        tip_type = p.get("tipType") or UNKNOWN_TIP_TYPE
        band = confidence_band(float(p.get("conf") or 0))

        bucket = buckets.setdefault(
            band,
            {"predicted": band + 5, "wins": 0, "total": 0, "tipTypes": {}},
        )
        bucket["total"] += 1
        bucket["wins"] += won
        per_type = bucket["tipTypes"].setdefault(tip_type, _tally())
        per_type["total"] += 1
        per_type["wins"] += won

        overall_type = by_type.setdefault(tip_type, _tally())
        overall_type["total"] += 1
        overall_type["wins"] += won

    for bucket in buckets.values():
        bucket["actualRate"] = rate_pct(bucket["wins"], bucket["total"])
        bucket["error"] = (
            bucket["actualRate"] - bucket["predicted"]
            if bucket["actualRate"] is not None
            else 0
        )

    overall_wins = sum(1 for p in resolved if p["result"] == "win")
    overall_total = len(resolved)
    stamp = (now or datetime.now(timezone.utc)).isoformat()

    return {
        "buckets": {str(band): buckets[band] for band in sorted(buckets)},
        "overall": {
            "wins": overall_wins,
            "total": overall_total,
            "rate": rate_pct(overall_wins, overall_total),
        },
        "byType": {
            t: {"wins": v["wins"], "total": v["total"], "rate": rate_pct(v["wins"], v["total"])}
            for t, v in sorted(by_type.items())
        },
        "lastBuilt": stamp,
    }

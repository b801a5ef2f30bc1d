"""
Prediction settlement and calibration upkeep.

  resolve_prediction()    - settle one prediction from a final score, then
                            rebuild calibration
  rebuild_calibration()   - regenerate the calibration snapshot from scratch
  auto_resolve_pending()  - scheduled batch: look up pending fixtures with
                            Sportmonks and settle the finished ones

Calibration is derived data.  A resolution is committed before calibration
is rebuilt; if the rebuild fails the prediction stays settled and the
snapshot can be regenerated later with rebuild_calibration().
"""

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from backend.core.calibration import build_calibration
from backend.core.tip_rules import evaluate_tip
from backend.models import utcnow
from backend.services.fixtures import SportmonksClient
from backend.services.prediction_store import (
    get_prediction,
    get_predictions,
    load_predictions,
    save_calibration,
    store_lock,
)

logger = logging.getLogger(__name__)

AUTO_RESOLVE_BATCH_SIZE = int(os.getenv("AUTO_RESOLVE_BATCH_SIZE", "200"))


def rebuild_calibration(db: Session) -> Dict:
    """Rebuild the snapshot from every stored prediction and persist it."""
    with store_lock:
        snapshot = build_calibration(load_predictions(db))
        save_calibration(db, snapshot)
    logger.info(
        "Calibration rebuilt: %d resolved, overall rate %s",
        snapshot["overall"]["total"], snapshot["overall"]["rate"],
    )
    return snapshot


def resolve_prediction(
    db: Session,
    fixture_id: str,
    home_goals: int,
    away_goals: int,
) -> Optional[Dict]:
    """
    Settle the prediction for ``fixture_id`` against a final score.

    Returns the updated prediction dict, or None if the fixture is not
    tracked.  A prediction is settled once; repeat calls return the stored
    record unchanged and do not touch calibration.
    """
    with store_lock:
        pred = get_prediction(db, fixture_id)
        if pred is None:
            return None

        if pred.is_resolved:
            if (pred.home_goals, pred.away_goals) != (home_goals, away_goals):
                logger.warning(
                    "Prediction %s already resolved at %s-%s; ignoring %s-%s",
                    fixture_id, pred.home_goals, pred.away_goals, home_goals, away_goals,
                )
            return pred.to_dict()

        pred.result = evaluate_tip(
            pred.tip, pred.tip_type, home_goals, away_goals, pred.home_team, pred.away_team,
        )
        pred.home_goals = home_goals
        pred.away_goals = away_goals
        pred.resolved_at = utcnow()
        db.commit()
        db.refresh(pred)
        resolved = pred.to_dict()

        logger.info(
            "%s: %s vs %s %d-%d | %s",
            resolved["result"].upper(), pred.home_team, pred.away_team,
            home_goals, away_goals, pred.tip,
        )

        try:
            rebuild_calibration(db)
        except Exception as exc:
            logger.error(
                "Calibration rebuild failed after resolving %s: %s",
                fixture_id, exc, exc_info=True,
            )
            db.rollback()

    return resolved


def auto_resolve_pending(
    db: Session,
    client: Optional[SportmonksClient] = None,
    limit: Optional[int] = None,
) -> Dict:
    """
    Check pending predictions against Sportmonks and settle finished fixtures.

    Entries are processed one at a time.  A failed lookup is logged and
    counted; it never aborts the batch and the prediction stays pending
    until the next run.
    """
    logger.info("Starting auto_resolve_pending")
    recent = get_predictions(db, limit=limit or AUTO_RESOLVE_BATCH_SIZE)
    pending = [p for p in recent if not p.get("result") and p.get("fixtureId")]

    resolved = 0
    skipped = 0
    errors: List[str] = []

    if pending and client is None:
        try:
            client = SportmonksClient()
        except ValueError as exc:
            logger.error("Auto-resolve unavailable: %s", exc)
            return _job_summary(len(pending), 0, len(pending), [str(exc)])

    for pred in pending:
        fixture_id = pred["fixtureId"]
        try:
            status = client.fetch_fixture_result(fixture_id)
            if not status.resolvable:
                skipped += 1
                continue

            if resolve_prediction(db, fixture_id, status.home_goals, status.away_goals):
                resolved += 1
                logger.info(
                    "[RESOLVE] %s vs %s: %d-%d",
                    pred.get("homeTeam"), pred.get("awayTeam"),
                    status.home_goals, status.away_goals,
                )
        except Exception as exc:
            errors.append(f"{fixture_id}: {exc}")
            logger.error("[RESOLVE FAIL] %s: %s", fixture_id, exc)
            db.rollback()

    summary = _job_summary(len(pending), resolved, skipped, errors)
    logger.info("auto_resolve_pending done: %s", summary)
    return summary


def _job_summary(checked: int, resolved: int, skipped: int, errors: List[str]) -> Dict:
    return {
        "checked": checked,
        "resolved": resolved,
        "skipped": skipped,
        "errors": errors,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

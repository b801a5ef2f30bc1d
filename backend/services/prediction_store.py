"""
Prediction and calibration persistence.

Public API:
  save_prediction(db, fields)            → dict   (upsert keyed by fixtureId)
  get_prediction(db, fixture_id)         → Prediction | None
  load_predictions(db)                   → List[dict]
  get_predictions(db, limit)             → List[dict]  newest savedAt first
  get_recent_results(db, limit)          → List[dict]  newest resolvedAt first
  load_calibration(db)                   → dict | None
  save_calibration(db, snapshot)         → None  (replaces the stored snapshot)

``save_prediction`` holds ``store_lock`` itself.  Callers that compose a
read, modify and write out of several calls hold it for the whole sequence.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from backend.core.calibration import build_calibration
from backend.models import CalibrationSnapshot, Prediction, utcnow

logger = logging.getLogger(__name__)

# Serialises read-modify-write sequences on the store within this process.
store_lock = threading.RLock()

_SNAPSHOT_ID = 1

# Wire name → column for the fields a save may set.
_SAVE_FIELDS: Dict[str, str] = {
    "date": "date",
    "homeTeam": "home_team",
    "awayTeam": "away_team",
    "tip": "tip",
    "tipType": "tip_type",
    "conf": "conf",
    "hLambda": "h_lambda",
    "aLambda": "a_lambda",
}

# Owned by the store or the resolver; never taken from a save payload.
_RESERVED = frozenset({
    "id", "fixtureId", "savedAt", "updatedAt",
    "result", "homeGoals", "awayGoals", "resolvedAt",
})

_REQUIRED_ON_CREATE = ("tip", "conf")

# Columns the calibration snapshot is built from.
_CALIBRATION_INPUTS = ("conf", "tip_type")


def get_prediction(db: Session, fixture_id: str) -> Optional[Prediction]:
    return db.query(Prediction).filter(Prediction.fixture_id == str(fixture_id)).first()


def save_prediction(db: Session, fields: Dict) -> Dict:
    """
    Insert or merge one prediction.

    ``fields`` is wire-shaped (fixtureId, homeTeam, tip, conf, ...).  For an
    existing fixture, supplied fields overwrite and everything else is kept;
    settlement fields are never touched.  Changing the confidence or tip type
    of an already-settled prediction rebuilds the calibration snapshot.

    Raises ValueError when a new fixture is missing ``tip`` or ``conf``.
    """
    fixture_id = str(fields["fixtureId"])
    columns = {
        col: fields[key] for key, col in _SAVE_FIELDS.items()
        if key in fields and fields[key] is not None
    }
    extra = {k: v for k, v in fields.items() if k not in _SAVE_FIELDS and k not in _RESERVED}

    with store_lock:
        pred = get_prediction(db, fixture_id)
        recalibrate = False

        if pred is None:
            missing = [k for k in _REQUIRED_ON_CREATE if fields.get(k) is None]
            if missing:
                raise ValueError(f"new prediction requires: {', '.join(missing)}")
            pred = Prediction(fixture_id=fixture_id, saved_at=utcnow(), extra=extra, **columns)
            db.add(pred)
            logger.info("Prediction saved: %s (%s)", fixture_id, pred.tip)
        else:
            recalibrate = pred.is_resolved and any(
                getattr(pred, col) != columns[col]
                for col in _CALIBRATION_INPUTS if col in columns
            )
            for col, value in columns.items():
                setattr(pred, col, value)
            if extra:
                # Reassign so the JSON column registers the change.
                pred.extra = {**(pred.extra or {}), **extra}
            pred.updated_at = utcnow()
            logger.info("Prediction merged: %s", fixture_id)

        db.commit()
        db.refresh(pred)
        saved = pred.to_dict()

        if recalibrate:
            try:
                save_calibration(db, build_calibration(load_predictions(db)))
                logger.info("Calibration rebuilt after editing settled prediction %s", fixture_id)
            except Exception as exc:
                logger.error(
                    "Calibration rebuild failed after editing %s: %s",
                    fixture_id, exc, exc_info=True,
                )
                db.rollback()

        return saved


def load_predictions(db: Session) -> List[Dict]:
    return [p.to_dict() for p in db.query(Prediction).all()]


def get_predictions(db: Session, limit: int = 50) -> List[Dict]:
    rows = (
        db.query(Prediction)
        .order_by(Prediction.saved_at.desc(), Prediction.id.desc())
        .limit(limit)
        .all()
    )
    return [p.to_dict() for p in rows]


def get_recent_results(db: Session, limit: int = 20) -> List[Dict]:
    rows = (
        db.query(Prediction)
        .filter(Prediction.result.isnot(None))
        .order_by(Prediction.resolved_at.desc(), Prediction.id.desc())
        .limit(limit)
        .all()
    )
    return [p.to_dict() for p in rows]


def count_predictions(db: Session) -> Dict[str, int]:
    total = db.query(Prediction).count()
    resolved = db.query(Prediction).filter(Prediction.result.isnot(None)).count()
    return {"predictions": total, "resolved": resolved}


# ---------------------------------------------------------------------------
# Calibration snapshot
# ---------------------------------------------------------------------------

def load_calibration(db: Session) -> Optional[Dict]:
    row = db.get(CalibrationSnapshot, _SNAPSHOT_ID)
    return dict(row.payload) if row else None


def save_calibration(db: Session, snapshot: Dict) -> None:
    """Replace the stored snapshot with ``snapshot`` as a whole."""
    built = snapshot.get("lastBuilt")
    last_built = datetime.fromisoformat(built) if built else utcnow()

    row = db.get(CalibrationSnapshot, _SNAPSHOT_ID)
    if row is None:
        db.add(CalibrationSnapshot(id=_SNAPSHOT_ID, payload=snapshot, last_built=last_built))
    else:
        row.payload = snapshot
        row.last_built = last_built
    db.commit()

"""Per-team stats memory: one record per team, overwritten on each observation."""

import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from backend.models import TeamRecord, utcnow
from backend.services.prediction_store import store_lock

logger = logging.getLogger(__name__)


def save_team(db: Session, team_id: str, stats: Dict) -> Dict:
    """Replace the team's stats payload and bump its observation count."""
    team_id = str(team_id)
    with store_lock:
        record = db.query(TeamRecord).filter(TeamRecord.team_id == team_id).first()
        if record is None:
            record = TeamRecord(team_id=team_id, observation_count=0)
            db.add(record)

        record.stats = dict(stats)
        record.last_updated = utcnow()
        record.observation_count = (record.observation_count or 0) + 1
        db.commit()
        db.refresh(record)

    logger.debug("Team %s observed (%d)", team_id, record.observation_count)
    return record.to_dict()


def get_team(db: Session, team_id: str) -> Optional[Dict]:
    record = db.query(TeamRecord).filter(TeamRecord.team_id == str(team_id)).first()
    return record.to_dict() if record else None


def get_all_teams(db: Session) -> Dict[str, Dict]:
    return {r.team_id: r.to_dict() for r in db.query(TeamRecord).all()}


def count_teams(db: Session) -> int:
    return db.query(TeamRecord).count()

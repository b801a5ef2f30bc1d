"""
Database models for PROPRED
SQLAlchemy ORM; SQLite by default, any SQLAlchemy URL via DATABASE_URL
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    DateTime,
    JSON,
    Text,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.engine import make_url
from datetime import datetime, timezone
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/propred.db")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value else None


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Prediction(Base):
    """One tracked tip for one fixture"""

    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, index=True)
    fixture_id = Column(String, unique=True, nullable=False, index=True)
    date = Column(String)  # scheduled date as sent by the client

    home_team = Column(String)
    away_team = Column(String)

    # Tip
    tip = Column(Text)  # "Over 2.5", "Liverpool win & BTTS", ...
    tip_type = Column(String, index=True)  # over_under | btts | draw | handicap | moneyline | dnb | score
    conf = Column(Float)  # 0-100
    h_lambda = Column(Float)  # model expected goals, home
    a_lambda = Column(Float)  # model expected goals, away

    saved_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True))

    # Settlement, written once by the resolver
    result = Column(String, index=True)  # win | loss | push | NULL while pending
    home_goals = Column(Integer)
    away_goals = Column(Integer)
    resolved_at = Column(DateTime(timezone=True), index=True)

    # Client fields without a column of their own (safeTip, odds, ...)
    extra = Column(JSON, default=dict)

    @property
    def is_resolved(self) -> bool:
        return self.result is not None

    def to_dict(self) -> dict:
        data = dict(self.extra or {})
        data.update({
            "fixtureId": self.fixture_id,
            "date": self.date,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "tip": self.tip,
            "tipType": self.tip_type,
            "conf": self.conf,
            "hLambda": self.h_lambda,
            "aLambda": self.a_lambda,
            "savedAt": isoformat(self.saved_at),
            "updatedAt": isoformat(self.updated_at),
            "result": self.result,
            "homeGoals": self.home_goals,
            "awayGoals": self.away_goals,
            "resolvedAt": isoformat(self.resolved_at),
        })
        return data


class TeamRecord(Base):
    """Rolling stats memory for one team"""

    __tablename__ = "team_records"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(String, unique=True, nullable=False, index=True)
    stats = Column(JSON, default=dict)
    last_updated = Column(DateTime(timezone=True), default=utcnow)
    observation_count = Column(Integer, default=0, nullable=False)

    def to_dict(self) -> dict:
        data = dict(self.stats or {})
        data.update({
            "teamId": self.team_id,
            "lastUpdated": isoformat(self.last_updated),
            "observationCount": self.observation_count,
        })
        return data


class CalibrationSnapshot(Base):
    """Single-row document holding the latest calibration snapshot"""

    __tablename__ = "calibration_snapshots"

    id = Column(Integer, primary_key=True)
    payload = Column(JSON, nullable=False)
    last_built = Column(DateTime(timezone=True), default=utcnow)


def _ensure_sqlite_dir() -> None:
    url = make_url(DATABASE_URL)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        directory = os.path.dirname(os.path.abspath(url.database))
        os.makedirs(directory, exist_ok=True)


def init_db():
    """Initialize database tables"""
    _ensure_sqlite_dir()
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
    print("✅ Database tables created")

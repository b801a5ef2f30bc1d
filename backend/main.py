"""
FastAPI application for PROPRED
Prediction tracking, settlement, calibration, and provider proxies
"""

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
import logging
import os
import time

from backend.models import get_db, init_db, SessionLocal
from backend.schemas import (
    AutoResolveResponse,
    PredictionSave,
    ResolveRequest,
    ResolveResponse,
    SaveResponse,
    TeamSave,
    TeamSaveResponse,
)
from backend.services import prediction_store, team_memory
from backend.services.fixtures import SportmonksClient
from backend.services.odds import LEAGUE_MAP, get_odds_client, sport_keys_for_leagues
from backend.services.resolution import (
    auto_resolve_pending,
    rebuild_calibration,
    resolve_prediction,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_VERSION = "4.0"
_STARTED = time.monotonic()

# Scheduler instance
scheduler = BackgroundScheduler()


def _auto_resolve_job():
    """Settle finished fixtures; runs every AUTO_RESOLVE_INTERVAL_MIN."""
    db = SessionLocal()
    try:
        results = auto_resolve_pending(db)
        logger.info("Auto-resolve: %s", results)
    except Exception as exc:
        logger.error("Auto-resolve job failed: %s", exc, exc_info=True)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting PROPRED v%s", APP_VERSION)
    init_db()

    interval = int(os.getenv("AUTO_RESOLVE_INTERVAL_MIN", "60"))
    scheduler.add_job(
        _auto_resolve_job,
        IntervalTrigger(minutes=interval),
        id="auto_resolve",
        name="Auto-resolve Finished Fixtures",
        replace_existing=True,
    )

    if os.getenv("AUTO_RESOLVE_ON_STARTUP", "true").lower() == "true":
        scheduler.add_job(
            _auto_resolve_job,
            DateTrigger(run_date=datetime.now(timezone.utc) + timedelta(seconds=2)),
            id="auto_resolve_startup",
            name="Startup Auto-resolve",
            replace_existing=True,
        )

    scheduler.start()
    logger.info("Scheduler started: auto-resolve every %dmin", interval)

    yield

    logger.info("Shutting down PROPRED")
    scheduler.shutdown()


app = FastAPI(
    title="PROPRED",
    description="Football tip tracking, settlement and confidence calibration",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type"],
)


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/")
async def root():
    return {
        "app": "PROPRED",
        "version": APP_VERSION,
        "status": "operational",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    counts = prediction_store.count_predictions(db)
    calib = prediction_store.load_calibration(db)
    return {
        "status": "ok",
        "teams": team_memory.count_teams(db),
        "predictions": counts["predictions"],
        "resolved": counts["resolved"],
        "overallRate": (calib or {}).get("overall", {}).get("rate"),
        "oddsLeagues": len(LEAGUE_MAP),
        "uptime": round(time.monotonic() - _STARTED, 1),
    }


# ============================================================================
# TEAM MEMORY
# ============================================================================

@app.post("/memory/team", response_model=TeamSaveResponse)
def save_team(payload: TeamSave, db: Session = Depends(get_db)):
    team_memory.save_team(db, payload.team_id, payload.stats)
    return TeamSaveResponse(team_id=payload.team_id)


@app.get("/memory/team/{team_id}")
async def get_team(team_id: str, db: Session = Depends(get_db)):
    team = team_memory.get_team(db, team_id)
    if not team:
        return {"found": False}
    return {"found": True, "team": team}


@app.get("/memory/teams")
async def get_all_teams(db: Session = Depends(get_db)):
    return team_memory.get_all_teams(db)


# ============================================================================
# PREDICTIONS
# ============================================================================

@app.post("/predictions/save", response_model=SaveResponse)
def save_prediction(payload: PredictionSave, db: Session = Depends(get_db)):
    """Track a prediction, or merge new fields into the one already tracked."""
    try:
        saved = prediction_store.save_prediction(
            db, payload.model_dump(by_alias=True, exclude_unset=True)
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return SaveResponse(saved=saved)


@app.post("/predictions/resolve", response_model=ResolveResponse)
def resolve(payload: ResolveRequest, db: Session = Depends(get_db)):
    """Settle a prediction against the final score and refresh calibration."""
    resolved = resolve_prediction(db, payload.fixture_id, payload.home_goals, payload.away_goals)
    if not resolved:
        raise HTTPException(status_code=404, detail="Prediction not found")
    return ResolveResponse(resolved=resolved)


@app.post("/predictions/auto-resolve", response_model=AutoResolveResponse)
def trigger_auto_resolve(db: Session = Depends(get_db)):
    """Check every pending prediction against Sportmonks and settle finished ones."""
    return AutoResolveResponse(**auto_resolve_pending(db))


@app.get("/predictions/recent")
async def recent_predictions(
    limit: int = Query(default=50, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return prediction_store.get_predictions(db, limit=limit)


@app.get("/predictions/results")
async def recent_results(
    limit: int = Query(default=20, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return prediction_store.get_recent_results(db, limit=limit)


# ============================================================================
# CALIBRATION
# ============================================================================

@app.get("/calibration")
async def get_calibration(db: Session = Depends(get_db)):
    calib = prediction_store.load_calibration(db)
    return calib or {"message": "No calibration data yet."}


@app.post("/calibration/rebuild")
def force_rebuild_calibration(db: Session = Depends(get_db)):
    """Regenerate the calibration snapshot from every stored prediction."""
    return rebuild_calibration(db)


# ============================================================================
# ODDS
# ============================================================================

def _odds_client():
    """Shared Odds API client, or None when THE_ODDS_API_KEY is not configured."""
    try:
        return get_odds_client()
    except ValueError as exc:
        logger.error("Odds unavailable: %s", exc)
        return None


@app.get("/odds/today")
def odds_today(leagues: str = Query(default="")):
    """Odds for a comma-separated list of Sportmonks league names."""
    names = [l for l in leagues.split(",") if l.strip()]
    if not names:
        return {"matches": []}
    if not sport_keys_for_leagues(names):
        return {"matches": [], "note": "No matching leagues in Odds API"}

    client = _odds_client()
    matches = client.get_odds_for_leagues(names) if client else []
    return {"matches": matches, "count": len(matches)}


@app.get("/odds/sport/{sport_key}")
def odds_for_sport(sport_key: str):
    client = _odds_client()
    matches = client.get_odds_for_sport(sport_key) if client else []
    return {"matches": matches, "count": len(matches)}


@app.get("/odds/sports")
def odds_sports():
    client = _odds_client()
    return client.list_soccer_sports() if client else []


# ============================================================================
# SPORTMONKS PROXY
# ============================================================================

@app.get("/api/{endpoint:path}")
def sportmonks_proxy(endpoint: str, request: Request):
    """Pass-through GET to Sportmonks; the API token is added server-side."""
    params = dict(request.query_params)
    params.pop("api_token", None)
    try:
        client = SportmonksClient()
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    status_code, body = client.proxy(endpoint, params)
    return JSONResponse(status_code=status_code, content=body)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))

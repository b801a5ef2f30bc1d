"""
Pydantic request/response schemas for the PROPRED API.

Wire names are camelCase (fixtureId, homeGoals, ...) to stay compatible
with stored prediction documents; Python attributes are snake_case.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------

class PredictionSave(BaseModel):
    """
    Payload for POST /predictions/save.

    Only ``fixtureId`` is required; a save for a fixture that is already
    tracked merges the supplied fields into the stored record.  Unknown
    fields are kept and returned as-is.  Settlement fields (result, goals,
    resolvedAt) are owned by the resolver and ignored here.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "fixtureId": 19134457,
                "date": "2026-10-18",
                "homeTeam": "Liverpool",
                "awayTeam": "Everton",
                "tip": "Over 2.5",
                "tipType": "over_under",
                "conf": 64,
                "hLambda": 1.9,
                "aLambda": 0.9,
            }
        },
    )

    fixture_id: Union[int, str] = Field(..., alias="fixtureId")
    date: Optional[str] = None
    home_team: Optional[str] = Field(None, alias="homeTeam", max_length=120)
    away_team: Optional[str] = Field(None, alias="awayTeam", max_length=120)
    tip: Optional[str] = Field(None, max_length=300, description='e.g. "Over 2.5"')
    tip_type: Optional[str] = Field(None, alias="tipType", max_length=40)
    conf: Optional[float] = Field(None, ge=0, le=100, description="Confidence 0-100")
    h_lambda: Optional[float] = Field(None, alias="hLambda", ge=0)
    a_lambda: Optional[float] = Field(None, alias="aLambda", ge=0)

    @field_validator("fixture_id")
    @classmethod
    def validate_fixture_id(cls, v: Union[int, str]) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("fixtureId required")
        return v


class ResolveRequest(BaseModel):
    """Payload for POST /predictions/resolve."""

    model_config = ConfigDict(populate_by_name=True)

    fixture_id: Union[int, str] = Field(..., alias="fixtureId")
    home_goals: int = Field(..., alias="homeGoals", ge=0)
    away_goals: int = Field(..., alias="awayGoals", ge=0)

    @field_validator("fixture_id")
    @classmethod
    def validate_fixture_id(cls, v: Union[int, str]) -> str:
        return str(v).strip()


class SaveResponse(BaseModel):
    ok: bool = True
    saved: Dict[str, Any]


class ResolveResponse(BaseModel):
    ok: bool = True
    resolved: Dict[str, Any]


class AutoResolveResponse(BaseModel):
    """Response from POST /predictions/auto-resolve."""
    ok: bool = True
    checked: int
    resolved: int
    skipped: int
    errors: list[str]
    timestamp: str


# ---------------------------------------------------------------------------
# Team memory
# ---------------------------------------------------------------------------

class TeamSave(BaseModel):
    """Payload for POST /memory/team."""

    model_config = ConfigDict(populate_by_name=True)

    team_id: Union[int, str] = Field(..., alias="teamId")
    stats: Dict[str, Any] = Field(..., description="Arbitrary per-team stats payload")

    @field_validator("team_id")
    @classmethod
    def validate_team_id(cls, v: Union[int, str]) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("teamId required")
        return v

    @field_validator("stats")
    @classmethod
    def validate_stats(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("stats required")
        return v


class TeamSaveResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    team_id: str = Field(..., alias="teamId")

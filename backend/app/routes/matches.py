"""
Match lifecycle + effective rules.

Completing a match freezes its rules. When a winner is given and the
tournament has a category, the result is credited to the category ranking
in the same transaction.
"""
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from app.database import get_session
from app.models.match import Match
from app.services import match_service
from app.services.ranking_service import DEFAULT_MATCH_POINTS, leaderboard

router = APIRouter()


class MatchCompleteRequest(BaseModel):
    score: Optional[Dict[str, Any]] = None
    winner_side: Optional[Literal[1, 2]] = None
    points_awarded: float = DEFAULT_MATCH_POINTS

    @field_validator("points_awarded")
    @classmethod
    def validate_points(cls, v):
        if v < 0:
            raise ValueError("points_awarded must be >= 0")
        return v


class RuleOverridesUpdate(BaseModel):
    overrides: Optional[Dict[str, Any]] = None


def _match_state(m: Match) -> Dict[str, Any]:
    return {
        "id": m.id,
        "tournamentId": m.tournament_id,
        "matchNumber": m.match_number,
        "status": m.status,
        "ruleOverrides": m.rule_overrides,
        "completedWithRules": m.completed_with_rules,
        "score": m.result_json,
        "startedAt": m.started_at.isoformat() if m.started_at else None,
        "completedAt": m.completed_at.isoformat() if m.completed_at else None,
    }


@router.get("/matches/{match_id}")
def get_match(match_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    return _match_state(match_service.get_match(session, match_id))


@router.get("/matches/{match_id}/effective-rules")
def get_effective_rules(match_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Live cascade (source=CASCADED) or frozen snapshot (source=SNAPSHOT)."""
    return match_service.get_effective_rules_for_match(session, match_id).as_dict()


@router.post("/matches/{match_id}/start")
def start_match(match_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    return _match_state(match_service.start_match(session, match_id))


@router.post("/matches/{match_id}/cancel")
def cancel_match(match_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    return _match_state(match_service.cancel_match(session, match_id))


@router.post("/matches/{match_id}/complete")
def complete_match(
    match_id: int,
    payload: Optional[MatchCompleteRequest] = None,
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    payload = payload or MatchCompleteRequest()
    match = match_service.complete_match(
        session,
        match_id,
        result=payload.score,
        winner_side=payload.winner_side,
        points_awarded=payload.points_awarded,
    )

    ranked_count = 0
    category_id = match.tournament.category_id
    if payload.winner_side is not None and match_service.match_sides(match) is not None and category_id is not None:
        ranked_count = len(leaderboard(session, category_id))

    return {"match": _match_state(match), "rankedEntries": ranked_count}


@router.put("/matches/{match_id}/rule-overrides")
def update_match_overrides(
    match_id: int,
    payload: RuleOverridesUpdate,
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    return _match_state(match_service.set_match_overrides(session, match_id, payload.overrides))

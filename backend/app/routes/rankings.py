from datetime import datetime
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from app.database import get_session
from app.models.category import Category
from app.models.tournament import Tournament
from app.services.ranking_service import (
    ENTITY_PAIR,
    ENTITY_PLAYER,
    EntityRef,
    leaderboard,
    recalculate_category_rankings,
    record_tournament_result,
)

router = APIRouter()


class TournamentResultCreate(BaseModel):
    entity_type: Literal["PLAYER", "PAIR"] = ENTITY_PLAYER
    entity_id: int
    placement: Optional[int] = None
    final_round_reached: Optional[str] = None
    is_consolation: bool = False
    participant_count: Optional[int] = None
    # When omitted, points come from the tournament's point config
    points_awarded: Optional[float] = None
    award_date: Optional[datetime] = None

    @field_validator("points_awarded")
    @classmethod
    def validate_points(cls, v):
        if v is not None and v < 0:
            raise ValueError("points_awarded must be >= 0")
        return v


@router.get("/categories/{category_id}/rankings")
def get_category_rankings(category_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Leaderboard for a category, ordered by rank."""
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"categoryId": category_id, "rankings": leaderboard(session, category_id)}


@router.post("/categories/{category_id}/rankings/recalculate")
def recalculate_rankings(category_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Re-rank every entry in the category (single transaction)."""
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    ranked = recalculate_category_rankings(session, category_id)
    return {"categoryId": category_id, "recalculated": len(ranked), "rankings": leaderboard(session, category_id)}


@router.post("/tournaments/{tournament_id}/results")
def create_tournament_result(
    tournament_id: int,
    payload: TournamentResultCreate,
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Record a final result in the tournament's category and re-rank it."""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    if tournament.category_id is None:
        raise HTTPException(status_code=400, detail="Tournament has no category")

    category = session.get(Category, tournament.category_id)
    entity = EntityRef(ENTITY_PAIR if payload.entity_type == ENTITY_PAIR else ENTITY_PLAYER, payload.entity_id)
    entry = record_tournament_result(
        session,
        category,
        entity,
        tournament_id,
        payload.points_awarded,
        placement=payload.placement,
        final_round_reached=payload.final_round_reached,
        award_date=payload.award_date,
        is_consolation=payload.is_consolation,
        participant_count=payload.participant_count,
    )
    return {
        "entryId": entry.id,
        "entityName": entry.entity_name,
        "rank": entry.rank,
        "points": entry.total_points,
        "seedingScore": entry.seeding_score,
        "tournamentCount": entry.tournament_count,
    }

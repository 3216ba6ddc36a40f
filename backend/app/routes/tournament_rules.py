"""
Tournament default rules, group / bracket / round override layers, and the
tournament's format, draw size and point config.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from app.database import get_session
from app.models.bracket import Bracket
from app.models.group import Group
from app.models.round import Round
from app.models.tournament import Tournament
from app.routes.brackets import get_template_cache
from app.services import match_service, tournament_service
from app.services.bracket_templates import TemplateCache
from app.services.tournament_service import TournamentFormat

router = APIRouter()


class DefaultRulesUpdate(BaseModel):
    rules: Dict[str, Any]


class ScopeOverridesUpdate(BaseModel):
    overrides: Optional[Dict[str, Any]] = None


class EarlyTiebreakUpdate(BaseModel):
    enabled: bool


class FormatUpdate(BaseModel):
    format_type: TournamentFormat
    player_count: Optional[int] = None


class PointConfigUpdate(BaseModel):
    config: Optional[Dict[str, Any]] = None


def _scope_response(owner) -> Dict[str, Any]:
    return {"id": owner.id, "tournamentId": owner.tournament_id, "ruleOverrides": owner.rule_overrides}


def _format_response(tournament: Tournament) -> Dict[str, Any]:
    return {"tournamentId": tournament.id, "formatType": tournament.format_type, "playerCount": tournament.player_count}


def _get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.get("/tournaments/{tournament_id}/default-rules")
def get_default_rules(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return {"tournamentId": tournament.id, "rules": tournament.default_scoring_rules}


@router.put("/tournaments/{tournament_id}/default-rules")
def update_default_rules(
    tournament_id: int,
    payload: DefaultRulesUpdate,
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Replace tournament defaults. Completed matches keep their snapshots."""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    tournament = match_service.set_tournament_default_rules(session, tournament, payload.rules)
    return {"tournamentId": tournament.id, "rules": tournament.default_scoring_rules}


@router.get("/tournaments/{tournament_id}/rule-complexity")
def get_rule_complexity(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return {"tournamentId": tournament_id, "complexity": match_service.get_rule_complexity(session, tournament_id)}


@router.put("/groups/{group_id}/rule-overrides")
def update_group_overrides(
    group_id: int, payload: ScopeOverridesUpdate, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    group = session.get(Group, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return _scope_response(match_service.set_scope_overrides(session, group, payload.overrides))


@router.put("/brackets/{bracket_id}/rule-overrides")
def update_bracket_overrides(
    bracket_id: int, payload: ScopeOverridesUpdate, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    bracket = session.get(Bracket, bracket_id)
    if not bracket:
        raise HTTPException(status_code=404, detail="Bracket not found")
    return _scope_response(match_service.set_scope_overrides(session, bracket, payload.overrides))


@router.put("/rounds/{round_id}/rule-overrides")
def update_round_overrides(
    round_id: int, payload: ScopeOverridesUpdate, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    round_ = session.get(Round, round_id)
    if not round_:
        raise HTTPException(status_code=404, detail="Round not found")
    return _scope_response(match_service.set_scope_overrides(session, round_, payload.overrides))


@router.put("/rounds/{round_id}/early-tiebreak")
def update_round_early_tiebreak(
    round_id: int, payload: EarlyTiebreakUpdate, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    """Consolation and placement bracket rounds only."""
    round_ = session.get(Round, round_id)
    if not round_:
        raise HTTPException(status_code=404, detail="Round not found")
    round_ = match_service.set_round_early_tiebreak(session, round_, payload.enabled)
    return {**_scope_response(round_), "earlyTiebreakEnabled": payload.enabled}


# ----------------------------------------------------------------------------
# Format, draw size and points
# ----------------------------------------------------------------------------


@router.put("/tournaments/{tournament_id}/format")
def update_format(
    tournament_id: int, payload: FormatUpdate, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    """Rejected with 409 once any match has started or completed."""
    tournament = _get_tournament(session, tournament_id)
    tournament = tournament_service.set_tournament_format(
        session, tournament, payload.format_type.value, payload.player_count
    )
    return _format_response(tournament)


@router.get("/tournaments/{tournament_id}/rule-change-impact")
def get_rule_change_impact(
    tournament_id: int, change_type: str, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    _get_tournament(session, tournament_id)
    return tournament_service.rule_change_impact(session, tournament_id, change_type)


@router.put("/tournaments/{tournament_id}/point-config")
def update_point_config(
    tournament_id: int, payload: PointConfigUpdate, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    tournament = tournament_service.set_point_config(session, _get_tournament(session, tournament_id), payload.config)
    return {"tournamentId": tournament.id, "pointConfig": tournament.point_config}


@router.get("/tournaments/{tournament_id}/bracket")
def get_tournament_bracket(
    tournament_id: int,
    session: Session = Depends(get_session),
    cache: TemplateCache = Depends(get_template_cache),
) -> Dict[str, Any]:
    """Bracket structure for the tournament's player count."""
    return tournament_service.tournament_bracket(cache, _get_tournament(session, tournament_id)).as_dict()


@router.get("/tournaments/{tournament_id}/seeding")
def get_tournament_seeding(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    return tournament_service.tournament_seeding(_get_tournament(session, tournament_id)).as_dict()

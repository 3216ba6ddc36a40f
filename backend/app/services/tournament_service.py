"""
Tournament format, draw size and point config, plus the impact report for
rule changes on a tournament that may already be under way.

Once any match is IN_PROGRESS or COMPLETED the format is locked; default
rules and overrides can still change because completed matches keep their
rule snapshots.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from app.errors import FormatChangeNotAllowed, InvalidRuleChangeType
from app.models.match import Match
from app.models.tournament import Tournament
from app.services.bracket_templates import TemplateCache, get_bracket_structure, validate_player_count
from app.services.points import PointConfig
from app.services.rule_cascade import MatchStatus
from app.services.seeding_tiers import get_seeding_config

logger = logging.getLogger(__name__)


class TournamentFormat(str, Enum):
    KNOCKOUT = "KNOCKOUT"
    GROUP = "GROUP"
    SWISS = "SWISS"
    COMBINED = "COMBINED"


class RuleChangeType(str, Enum):
    FORMAT = "format"
    DEFAULT_RULES = "default-rules"
    OVERRIDE = "override"


FORMAT_LOCKED_REASON = "Format changes not allowed after matches have started or completed"


def count_matches_by_status(session: Session, tournament_id: int) -> Dict[str, int]:
    rows = session.exec(
        select(Match.status, func.count(Match.id)).where(Match.tournament_id == tournament_id).group_by(Match.status)
    ).all()
    counts = {status.value: 0 for status in MatchStatus}
    for status, count in rows:
        counts[status] = count
    return counts


def set_tournament_format(
    session: Session,
    tournament: Tournament,
    format_type: str,
    player_count: Optional[int] = None,
) -> Tournament:
    """
    Change the format (and optionally the draw size) of a tournament.

    Raises:
        ValueError: unknown format type
        InvalidPlayerCount: player_count outside the bracket table
        FormatChangeNotAllowed: a match has started or completed
    """
    new_format = TournamentFormat(format_type)
    if player_count is not None:
        validate_player_count(player_count)

    counts = count_matches_by_status(session, tournament.id)
    started = counts[MatchStatus.IN_PROGRESS.value] + counts[MatchStatus.COMPLETED.value]
    if started > 0:
        logger.warning(f"Rejected format change for tournament {tournament.id}: {started} matches started")
        raise FormatChangeNotAllowed(tournament.id, started)

    tournament.format_type = new_format.value
    if player_count is not None:
        tournament.player_count = player_count
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    logger.info(f"Tournament {tournament.id} format set to {tournament.format_type}")
    return tournament


def set_point_config(session: Session, tournament: Tournament, config: Optional[Dict[str, Any]]) -> Tournament:
    """Set (or clear with None) the point config. Raises pydantic.ValidationError."""
    tournament.point_config = PointConfig.model_validate(config).model_dump() if config is not None else None
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


def rule_change_impact(session: Session, tournament_id: int, change_type: str) -> Dict[str, Any]:
    """Whether a rule change of this type is allowed now, and which matches it reaches."""
    try:
        kind = RuleChangeType(change_type)
    except ValueError:
        raise InvalidRuleChangeType(change_type) from None

    counts = count_matches_by_status(session, tournament_id)
    completed = counts[MatchStatus.COMPLETED.value]
    in_progress = counts[MatchStatus.IN_PROGRESS.value]
    scheduled = counts[MatchStatus.SCHEDULED.value]
    impact: Dict[str, Any] = {
        "completedMatches": completed,
        "inProgressMatches": in_progress,
        "scheduledMatches": scheduled,
        "totalMatches": sum(counts.values()),
    }

    allowed = True
    reason = None
    if kind == RuleChangeType.FORMAT:
        allowed = completed == 0 and in_progress == 0
        if not allowed:
            reason = FORMAT_LOCKED_REASON
    elif kind == RuleChangeType.DEFAULT_RULES:
        # completed matches keep their snapshots
        impact["affectedMatches"] = scheduled

    return {"tournamentId": tournament_id, "changeType": kind.value, "allowed": allowed, "reason": reason, "impact": impact}


def tournament_bracket(cache: TemplateCache, tournament: Tournament):
    """Bracket structure for the tournament's draw size."""
    return get_bracket_structure(cache, tournament.player_count)


def tournament_seeding(tournament: Tournament):
    return get_seeding_config(tournament.player_count)

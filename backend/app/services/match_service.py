"""
Match lifecycle and rule resolution against the database.

Builds the plain-data MatchRuleContext from the ORM graph, runs the rule
cascade, and owns the writes:
- status transitions (SCHEDULED -> IN_PROGRESS -> COMPLETED | CANCELLED)
- the IN_PROGRESS -> COMPLETED transition, which writes status, snapshot and
  completed_at in ONE conditional UPDATE (WHERE status = 'IN_PROGRESS').
  Two concurrent completions race on that WHERE clause: exactly one row update
  succeeds, the loser sees rowcount 0 and gets AlreadyCompleted.
  When a winner is given, the category ranking is credited in that same
  transaction, so a match is never COMPLETED without its result counted.
- rule override writes (never on a completed match)
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from sqlalchemy import update
from sqlmodel import Session, select

from app.errors import (
    AlreadyCompleted,
    InvalidBracketTypeForEarlyTiebreak,
    InvalidTransition,
    MatchNotFound,
    RuleChangeOnCompletedMatch,
)
from app.models.bracket import Bracket
from app.models.group import Group
from app.models.match import Match
from app.models.round import Round
from app.models.tournament import Tournament
from app.services.ranking_service import (
    DEFAULT_MATCH_POINTS,
    ENTITY_PAIR,
    ENTITY_PLAYER,
    EntityRef,
    apply_match_result,
)
from app.services.rule_cascade import (
    MatchRuleContext,
    MatchStatus,
    OverrideScope,
    ResolvedRules,
    RuleSnapshot,
    calculate_complexity,
    check_transition,
    resolve_effective_rules,
    snapshot_on_completion,
)
from app.services.scoring_rules import validate_rule_overrides, validate_scoring_rules

logger = logging.getLogger(__name__)

OverrideOwner = Union[Group, Bracket, Round]

EARLY_TIEBREAK_BRACKET_TYPES = ("CONSOLATION", "PLACEMENT")


# =============================================================================
# Read path
# =============================================================================


def get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise MatchNotFound(match_id)
    return match


def build_rule_context(match: Match) -> MatchRuleContext:
    """Plain-data view of a match and its parents' override mappings."""
    group = None
    if match.group is not None:
        group = OverrideScope(ref={"groupNumber": match.group.group_number}, overrides=match.group.rule_overrides)

    bracket = None
    if match.bracket is not None:
        bracket = OverrideScope(ref={"bracketType": match.bracket.bracket_type}, overrides=match.bracket.rule_overrides)

    round_scope = None
    round_bracket = None
    if match.round is not None:
        round_scope = OverrideScope(ref={"roundNumber": match.round.round_number}, overrides=match.round.rule_overrides)
        if match.round.bracket is not None:
            round_bracket = OverrideScope(
                ref={"bracketType": match.round.bracket.bracket_type},
                overrides=match.round.bracket.rule_overrides,
            )

    snapshot = None
    if match.completed_with_rules is not None:
        snapshot = RuleSnapshot.capture(match.completed_with_rules, match.completed_at)

    return MatchRuleContext(
        match_id=match.id,
        status=match.status,
        tournament_rules=match.tournament.default_scoring_rules or {},
        group=group,
        bracket=bracket,
        round_bracket=round_bracket,
        round=round_scope,
        match_overrides=match.rule_overrides,
        match_ref={"matchNumber": match.match_number},
        snapshot=snapshot,
    )


def match_sides(match: Match) -> Optional[Tuple[EntityRef, EntityRef]]:
    """(side 1, side 2) as ranking entities; pairs for doubles, players for singles."""
    if match.pair1_id is not None and match.pair2_id is not None:
        return EntityRef(ENTITY_PAIR, match.pair1_id), EntityRef(ENTITY_PAIR, match.pair2_id)
    if match.player1_id is not None and match.player2_id is not None:
        return EntityRef(ENTITY_PLAYER, match.player1_id), EntityRef(ENTITY_PLAYER, match.player2_id)
    return None


def load_match_context(session: Session, match_id: int) -> MatchRuleContext:
    return build_rule_context(get_match(session, match_id))


def get_effective_rules_for_match(session: Session, match_id: int) -> ResolvedRules:
    """Live cascade for open matches, frozen snapshot for completed ones. Read-only."""
    return resolve_effective_rules(load_match_context(session, match_id))


# =============================================================================
# Status transitions
# =============================================================================


def _raise_for_lost_race(session: Session, match: Match, requested: str) -> None:
    session.refresh(match)
    check_transition(match.status, requested, match.id)
    # Status still allows the move but the guarded UPDATE missed: treat as a conflict
    raise InvalidTransition(match.status, requested, match.id)


def _transition(session: Session, match_id: int, new_status: MatchStatus) -> Match:
    match = get_match(session, match_id)
    current = match.status
    try:
        check_transition(current, new_status, match_id)
    except (AlreadyCompleted, InvalidTransition):
        logger.warning(f"Rejected match {match_id} transition {current} -> {new_status.value}")
        raise

    values: Dict[str, Any] = {"status": new_status.value}
    if new_status == MatchStatus.IN_PROGRESS and match.started_at is None:
        values["started_at"] = datetime.utcnow()

    try:
        res = session.execute(
            update(Match).where(Match.id == match_id, Match.status == current).values(**values)
        )
        if res.rowcount != 1:
            session.rollback()
            _raise_for_lost_race(session, match, new_status.value)
        session.commit()
    except (AlreadyCompleted, InvalidTransition):
        raise
    except Exception:
        session.rollback()
        logger.exception(f"Failed to move match {match_id} to {new_status.value}")
        raise

    session.refresh(match)
    logger.info(f"Match {match_id}: {current} -> {match.status}")
    return match


def start_match(session: Session, match_id: int) -> Match:
    return _transition(session, match_id, MatchStatus.IN_PROGRESS)


def cancel_match(session: Session, match_id: int) -> Match:
    return _transition(session, match_id, MatchStatus.CANCELLED)


def _credit_result(session: Session, match: Match, winner_side: int, points_awarded: float) -> bool:
    """Stage the ranking credit for a completed match. Does not commit."""
    if winner_side not in (1, 2):
        raise ValueError(f"winner_side must be 1 or 2, got {winner_side!r}")
    sides = match_sides(match)
    category_id = match.tournament.category_id
    if sides is None or category_id is None:
        logger.info(f"Match {match.id} has no ranked sides or category, result not credited")
        return False
    winner, loser = sides if winner_side == 1 else (sides[1], sides[0])
    apply_match_result(session, category_id, winner, loser, points_awarded)
    return True


def complete_match(
    session: Session,
    match_id: int,
    result: Optional[Dict[str, Any]] = None,
    completed_at: Optional[datetime] = None,
    winner_side: Optional[int] = None,
    points_awarded: float = DEFAULT_MATCH_POINTS,
) -> Match:
    """
    Complete an IN_PROGRESS match and freeze its effective rules.

    Status, snapshot, completed_at and result are written by one conditional
    UPDATE in one transaction: either all of them land or none do. With a
    winner_side (1 or 2), a match between two known sides in a tournament with
    a category also credits the category ranking inside that transaction.

    Raises:
        MatchNotFound
        AlreadyCompleted: match is (or concurrently became) COMPLETED
        InvalidTransition: match is not IN_PROGRESS
    """
    match = get_match(session, match_id)
    context = build_rule_context(match)

    try:
        check_transition(context.status, MatchStatus.COMPLETED, match_id)
    except (AlreadyCompleted, InvalidTransition):
        logger.warning(f"Rejected completion of match {match_id} in status {context.status}")
        raise

    try:
        live = resolve_effective_rules(context)
        snapshot = snapshot_on_completion(context, live.rules, completed_at)
        res = session.execute(
            update(Match)
            .where(Match.id == match_id, Match.status == MatchStatus.IN_PROGRESS.value)
            .values(
                status=MatchStatus.COMPLETED.value,
                completed_with_rules=snapshot.to_json(),
                completed_at=snapshot.captured_at,
                result_json=result,
            )
        )
        if res.rowcount != 1:
            session.rollback()
            _raise_for_lost_race(session, match, MatchStatus.COMPLETED.value)
        if winner_side is not None:
            _credit_result(session, match, winner_side, points_awarded)
        session.commit()
    except (AlreadyCompleted, InvalidTransition):
        raise
    except Exception:
        session.rollback()
        logger.exception(f"Completion of match {match_id} failed, transaction rolled back")
        raise

    session.refresh(match)
    logger.info(f"Match {match_id} completed with rule snapshot ({len(match.completed_with_rules or {})} rules)")
    return match


# =============================================================================
# Rule override writes
# =============================================================================


def set_tournament_default_rules(session: Session, tournament: Tournament, rules: Dict[str, Any]) -> Tournament:
    """Replace the base layer. Completed matches keep their snapshots."""
    tournament.default_scoring_rules = validate_scoring_rules(rules)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


def set_scope_overrides(
    session: Session,
    owner: OverrideOwner,
    overrides: Optional[Dict[str, Any]],
) -> OverrideOwner:
    """Set (or clear with None) a group / bracket / round override layer."""
    owner.rule_overrides = validate_rule_overrides(overrides) if overrides is not None else None
    session.add(owner)
    session.commit()
    session.refresh(owner)
    return owner


def set_round_early_tiebreak(session: Session, round_: Round, enabled: bool) -> Round:
    """
    Toggle the early tiebreak for a round, keeping its other overrides.

    Rounds of a MAIN bracket are rejected; a round with no bracket is allowed.
    """
    if round_.bracket is not None and round_.bracket.bracket_type not in EARLY_TIEBREAK_BRACKET_TYPES:
        raise InvalidBracketTypeForEarlyTiebreak(round_.bracket.bracket_type)
    merged = {**(round_.rule_overrides or {}), "earlyTiebreakEnabled": enabled}
    round_.rule_overrides = validate_rule_overrides(merged)
    session.add(round_)
    session.commit()
    session.refresh(round_)
    logger.info(f"Round {round_.id} early tiebreak {'enabled' if enabled else 'disabled'}")
    return round_


def set_match_overrides(session: Session, match_id: int, overrides: Optional[Dict[str, Any]]) -> Match:
    match = get_match(session, match_id)
    if match.status == MatchStatus.COMPLETED.value:
        raise RuleChangeOnCompletedMatch(match_id)
    match.rule_overrides = validate_rule_overrides(overrides) if overrides is not None else None
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


def get_rule_complexity(session: Session, tournament_id: int) -> str:
    groups = session.exec(select(Group).where(Group.tournament_id == tournament_id)).all()
    brackets = session.exec(select(Bracket).where(Bracket.tournament_id == tournament_id)).all()
    rounds = session.exec(select(Round).where(Round.tournament_id == tournament_id)).all()
    matches = session.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    return calculate_complexity(
        [g.rule_overrides for g in groups],
        [b.rule_overrides for b in brackets],
        [r.rule_overrides for r in rounds],
        [m.rule_overrides for m in matches],
    )

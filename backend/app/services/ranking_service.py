"""
Category rankings against the database.

The ranking engine is pure; this module feeds it the category's entries and
writes the new ranks back. Every public write runs in a single transaction so
a category's ranks are never observable half-updated.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from app.models.category import Category
from app.models.point_table_entry import PointTableEntry
from app.models.ranking_entry import RankingEntry
from app.models.tournament import Tournament
from app.models.tournament_result import TournamentResult
from app.services.points import (
    METHOD_FINAL_ROUND,
    METHOD_PLACEMENT,
    PointConfig,
    PointTable,
    build_point_table,
    calculate_result_points,
)
from app.services.ranking_engine import (
    DEFAULT_COUNTED_TOURNAMENTS,
    RankingRow,
    rank_entries,
    seeding_score,
    win_rate,
)

logger = logging.getLogger(__name__)

ENTITY_PLAYER = "PLAYER"
ENTITY_PAIR = "PAIR"

DEFAULT_MATCH_POINTS = 100


@dataclass(frozen=True)
class EntityRef:
    entity_type: str  # PLAYER | PAIR
    entity_id: int

    def __post_init__(self):
        if self.entity_type not in (ENTITY_PLAYER, ENTITY_PAIR):
            raise ValueError(f"entity_type must be {ENTITY_PLAYER} or {ENTITY_PAIR}, got {self.entity_type!r}")


def get_or_create_entry(session: Session, category_id: int, entity: EntityRef) -> RankingEntry:
    """Find the entity's entry in the category, adding (not committing) a new one if missing."""
    if entity.entity_type == ENTITY_PLAYER:
        condition = RankingEntry.player_id == entity.entity_id
    else:
        condition = RankingEntry.pair_id == entity.entity_id

    entry = session.exec(select(RankingEntry).where(RankingEntry.category_id == category_id, condition)).first()
    if entry is None:
        entry = RankingEntry(
            category_id=category_id,
            entity_type=entity.entity_type,
            player_id=entity.entity_id if entity.entity_type == ENTITY_PLAYER else None,
            pair_id=entity.entity_id if entity.entity_type == ENTITY_PAIR else None,
        )
        session.add(entry)
        session.flush()
    return entry


def refresh_entry_totals(entry: RankingEntry, counted_limit: int = DEFAULT_COUNTED_TOURNAMENTS) -> RankingEntry:
    """Recompute tournament count, last tournament date and seeding score from results."""
    results = list(entry.tournament_results)
    entry.tournament_count = len(results)
    entry.last_tournament_date = max((r.award_date for r in results), default=None)
    entry.seeding_score = seeding_score(results, counted_limit)
    return entry


def _to_row(entry: RankingEntry) -> RankingRow:
    return RankingRow(
        entity_id=entry.id,
        entity_name=entry.entity_name,
        total_points=entry.total_points,
        wins=entry.wins,
        losses=entry.losses,
        last_tournament_date=entry.last_tournament_date,
        tournament_count=entry.tournament_count,
    )


def _apply_ranks(session: Session, category_id: int) -> List[RankingEntry]:
    entries = session.exec(select(RankingEntry).where(RankingEntry.category_id == category_id)).all()
    by_id = {e.id: e for e in entries}
    for row in rank_entries(_to_row(e) for e in entries):
        entry = by_id[row.entity_id]
        entry.rank = row.rank
        session.add(entry)
    return sorted(entries, key=lambda e: e.rank)


def recalculate_category_rankings(session: Session, category_id: int) -> List[RankingEntry]:
    """Re-rank every entry of a category in one transaction. Returns entries best-first."""
    try:
        ranked = _apply_ranks(session, category_id)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"Rank recalculation for category {category_id} failed, rolled back")
        raise
    for entry in ranked:
        session.refresh(entry)
    logger.info(f"Recalculated {len(ranked)} ranking entries for category {category_id}")
    return ranked


def apply_match_result(
    session: Session,
    category_id: int,
    winner: EntityRef,
    loser: EntityRef,
    points_awarded: float = DEFAULT_MATCH_POINTS,
) -> List[RankingEntry]:
    """Stage a match credit and the new ranks in the caller's transaction. Does not commit."""
    winner_entry = get_or_create_entry(session, category_id, winner)
    loser_entry = get_or_create_entry(session, category_id, loser)
    winner_entry.total_points += points_awarded
    winner_entry.wins += 1
    loser_entry.losses += 1
    session.add(winner_entry)
    session.add(loser_entry)
    return _apply_ranks(session, category_id)


def record_match_result(
    session: Session,
    category_id: int,
    winner: EntityRef,
    loser: EntityRef,
    points_awarded: float = DEFAULT_MATCH_POINTS,
) -> List[RankingEntry]:
    """Credit a match: points + win to the winner, a loss to the loser, then re-rank."""
    try:
        ranked = apply_match_result(session, category_id, winner, loser, points_awarded)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"Recording match result in category {category_id} failed, rolled back")
        raise
    for entry in ranked:
        session.refresh(entry)
    return ranked


def load_point_table(session: Session) -> PointTable:
    return build_point_table(session.exec(select(PointTableEntry)).all())


def calculate_tournament_points(
    session: Session,
    tournament: Tournament,
    placement: Optional[int] = None,
    final_round_reached: Optional[str] = None,
    is_consolation: bool = False,
    participant_count: Optional[int] = None,
) -> float:
    """
    Points for a tournament result under the tournament's point config.

    participant_count defaults to the tournament's player_count; a tournament
    without a point config scores by placement with the default multiplier.
    """
    config = PointConfig.model_validate(tournament.point_config or {"calculationMethod": METHOD_PLACEMENT})
    count = participant_count if participant_count is not None else tournament.player_count
    table = load_point_table(session) if config.calculationMethod == METHOD_FINAL_ROUND else None
    return calculate_result_points(config, count, placement, final_round_reached, is_consolation, table)


def record_tournament_result(
    session: Session,
    category: Category,
    entity: EntityRef,
    tournament_id: int,
    points_awarded: Optional[float] = None,
    placement: Optional[int] = None,
    final_round_reached: Optional[str] = None,
    award_date: Optional[datetime] = None,
    is_consolation: bool = False,
    participant_count: Optional[int] = None,
) -> RankingEntry:
    """
    Store a tournament result, update the entry's totals and re-rank the category.

    Without points_awarded the points are calculated from the tournament's
    point config (see calculate_tournament_points).
    """
    if points_awarded is None:
        tournament = session.get(Tournament, tournament_id)
        if tournament is None:
            raise ValueError(f"Tournament {tournament_id} not found")
        points_awarded = calculate_tournament_points(
            session, tournament, placement, final_round_reached, is_consolation, participant_count
        )

    try:
        entry = get_or_create_entry(session, category.id, entity)
        result = TournamentResult(
            tournament_id=tournament_id,
            ranking_entry_id=entry.id,
            placement=placement,
            final_round_reached=final_round_reached,
            points_awarded=points_awarded,
            award_date=award_date or datetime.utcnow(),
        )
        session.add(result)
        session.flush()
        session.refresh(entry)
        entry.total_points += points_awarded
        refresh_entry_totals(entry, category.counted_tournaments_limit or DEFAULT_COUNTED_TOURNAMENTS)
        session.add(entry)
        _apply_ranks(session, category.id)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"Recording tournament result in category {category.id} failed, rolled back")
        raise
    session.refresh(entry)
    return entry


def leaderboard(session: Session, category_id: int) -> List[Dict[str, Any]]:
    entries = session.exec(
        select(RankingEntry).where(RankingEntry.category_id == category_id).order_by(RankingEntry.rank, RankingEntry.id)
    ).all()
    return [
        {
            "entryId": e.id,
            "entityType": e.entity_type,
            "entityName": e.entity_name,
            "rank": e.rank,
            "points": e.total_points,
            "wins": e.wins,
            "losses": e.losses,
            "winRate": win_rate(e.wins, e.losses),
            "tournamentCount": e.tournament_count,
            "lastTournamentDate": e.last_tournament_date.isoformat() if e.last_tournament_date else None,
            "seedingScore": e.seeding_score,
            "lastUpdated": e.updated_at.isoformat() if e.updated_at else None,
        }
        for e in entries
    ]

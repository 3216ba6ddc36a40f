"""
Ranking Tiebreak Engine

Orders a category's ranking entries (players or pairs) and assigns ranks.
No I/O; applying the new ranks is up to the caller (see ranking_service).

Tiebreak order, each level only breaks ties left by the previous one:
1. total points (desc)
2. most recent tournament date (desc, missing date = oldest)
3. tournaments counted (asc, fewer is better)
4. entity name (A-Z, locale-aware)
"""

import locale
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

DEFAULT_COUNTED_TOURNAMENTS = 7
PAIR_NAME_SEPARATOR = " / "


@dataclass(frozen=True)
class RankingRow:
    entity_id: Any
    entity_name: str
    total_points: float = 0
    wins: int = 0
    losses: int = 0
    last_tournament_date: Optional[Union[date, datetime]] = None
    tournament_count: int = 0
    rank: Optional[int] = None

    @property
    def win_rate(self) -> float:
        return win_rate(self.wins, self.losses)


def pair_display_name(player1_name: Optional[str], player2_name: Optional[str]) -> str:
    """Name used for a doubles pair, compared as one string."""
    return f"{player1_name or ''}{PAIR_NAME_SEPARATOR}{player2_name or ''}"


def _date_value(value: Optional[Union[date, datetime]]) -> float:
    if value is None:
        return float("-inf")
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    return value.timestamp()


def _name_key(name: str) -> tuple:
    # raw name last so equal collation keys still order deterministically
    return (locale.strxfrm(name.casefold()), name)


def ranking_sort_key(row: RankingRow) -> tuple:
    """Sort key for the four-level tiebreak. Lower sorts first (better rank)."""
    return (
        -row.total_points,
        -_date_value(row.last_tournament_date),
        row.tournament_count,
        _name_key(row.entity_name or ""),
    )


def rank_entries(entries: Iterable[RankingRow]) -> List[RankingRow]:
    """
    Return new rows sorted best-first with dense 1-based ranks.

    Complete ties keep their input order (sorted() is stable) and still get
    distinct consecutive ranks.
    """
    ordered = sorted(entries, key=ranking_sort_key)
    return [replace(row, rank=position) for position, row in enumerate(ordered, start=1)]


def win_rate(wins: int, losses: int) -> float:
    """wins / (wins + losses) rounded half-up to 3 decimals; 0 when no matches played."""
    played = wins + losses
    if played == 0:
        return 0.0
    # half-up, so 1/16 -> 0.063
    rate = (Decimal(wins) / Decimal(played)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    return float(rate)


def _points_of(result: Any) -> float:
    if isinstance(result, (int, float)):
        return result
    if isinstance(result, Mapping):
        if "points_awarded" in result:
            return result["points_awarded"]
        return result["pointsAwarded"]
    return result.points_awarded


def seeding_score(results: Sequence[Any], top_n: int = DEFAULT_COUNTED_TOURNAMENTS) -> float:
    """
    Sum of the top_n best tournament results.

    results may hold plain numbers, mappings with points_awarded/pointsAwarded,
    or objects with a points_awarded attribute. Fewer than top_n results are
    all counted.
    """
    if top_n < 0:
        raise ValueError(f"top_n must be >= 0, got {top_n}")
    points = sorted((_points_of(r) for r in results), reverse=True)
    return sum(points[:top_n])

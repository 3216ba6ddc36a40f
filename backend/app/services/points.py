"""
Tournament point calculation.

Two methods, chosen per tournament by its point config:
- PLACEMENT: (participants - placement + 1) * multiplier
- FINAL_ROUND: looked up in the point table for the draw's participant range,
  keyed by the last round won and main/consolation bracket

Either result is doubled when double points are enabled. The point table is
plain data here; loading it from the database lives in ranking_service.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.errors import InvalidParticipantCount, InvalidPlacement

logger = logging.getLogger(__name__)

METHOD_PLACEMENT = "PLACEMENT"
METHOD_FINAL_ROUND = "FINAL_ROUND"

DEFAULT_MULTIPLIER = 2


class PointConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    calculationMethod: Literal["PLACEMENT", "FINAL_ROUND"]
    multiplicativeValue: float = Field(default=DEFAULT_MULTIPLIER, ge=0.1, le=100)
    doublePointsEnabled: bool = False


def get_participant_range(participant_count: int) -> str:
    if not participant_count or participant_count < 2:
        raise InvalidParticipantCount(participant_count)
    if participant_count <= 4:
        return "2-4"
    if participant_count <= 8:
        return "5-8"
    if participant_count <= 16:
        return "9-16"
    # draws above 32 share the 17-32 table
    return "17-32"


@dataclass(frozen=True)
class PointTable:
    """participant range -> {"main": {round: points}, "consolation": {round: points}}"""

    ranges: Mapping[str, Mapping[str, Mapping[str, float]]] = field(default_factory=dict)

    def points_for_round(self, participant_range: str, round_name: str, is_consolation: bool = False) -> float:
        range_table = self.ranges.get(participant_range)
        if range_table is None:
            logger.warning(f"No point table found for range: {participant_range}")
            return 0
        bracket = "consolation" if is_consolation else "main"
        points = range_table.get(bracket, {}).get(round_name)
        if points is None:
            logger.warning(f"No points defined for {round_name} in {participant_range} {bracket} bracket")
            return 0
        return points


def calculate_placement_points(
    participant_count: int,
    placement: int,
    multiplier: float = DEFAULT_MULTIPLIER,
    double_points: bool = False,
) -> float:
    if not participant_count:
        raise InvalidParticipantCount(participant_count)
    if placement is None or placement < 1 or placement > participant_count:
        raise InvalidPlacement(placement, participant_count)
    points = (participant_count - placement + 1) * multiplier
    if double_points:
        points *= 2
    return points


def calculate_round_points(
    table: PointTable,
    final_round_reached: Optional[str],
    participant_count: int,
    is_consolation: bool = False,
    double_points: bool = False,
) -> float:
    """Points for the last round won; no round won scores 0."""
    if not final_round_reached:
        return 0
    points = table.points_for_round(get_participant_range(participant_count), final_round_reached, is_consolation)
    if double_points:
        points *= 2
    return points


def calculate_result_points(
    config: PointConfig,
    participant_count: int,
    placement: Optional[int] = None,
    final_round_reached: Optional[str] = None,
    is_consolation: bool = False,
    table: Optional[PointTable] = None,
) -> float:
    if config.calculationMethod == METHOD_PLACEMENT:
        return calculate_placement_points(
            participant_count, placement, config.multiplicativeValue, config.doublePointsEnabled
        )
    return calculate_round_points(
        table or PointTable(),
        final_round_reached,
        participant_count,
        is_consolation,
        config.doublePointsEnabled,
    )


def build_point_table(rows) -> PointTable:
    """Group (participant_range, round_name, is_consolation, points) rows into a PointTable."""
    ranges: Dict[str, Dict[str, Dict[str, float]]] = {}
    for row in rows:
        range_table = ranges.setdefault(row.participant_range, {"main": {}, "consolation": {}})
        range_table["consolation" if row.is_consolation else "main"][row.round_name] = row.points
    return PointTable(ranges=ranges)

"""
Seeding Tier Resolver

How many entrants are seeded for a given draw size. Where the seeds are placed
is decided manually by organizers; only the count lives here.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from app.errors import SeedingConfigNotFound
from app.services.bracket_templates import validate_player_count

SEEDING_NOTE = "Seeding positions within the bracket are determined manually by organizers"


@dataclass(frozen=True)
class SeedingRange:
    min: int
    max: int
    seeded_count: int

    def contains(self, player_count: int) -> bool:
        return self.min <= player_count <= self.max


# Contiguous, non-overlapping, covering [4, 128]
SEEDING_RANGES: Tuple[SeedingRange, ...] = (
    SeedingRange(min=4, max=9, seeded_count=2),
    SeedingRange(min=10, max=19, seeded_count=4),
    SeedingRange(min=20, max=39, seeded_count=8),
    SeedingRange(min=40, max=128, seeded_count=16),
)


@dataclass(frozen=True)
class SeedingConfig:
    player_count: int
    seeded_players: int
    range: SeedingRange

    def as_dict(self) -> Dict[str, Any]:
        return {
            "playerCount": self.player_count,
            "seededPlayers": self.seeded_players,
            "range": {"min": self.range.min, "max": self.range.max},
            "note": SEEDING_NOTE,
        }


def get_seeding_config(player_count: Any, ranges: Tuple[SeedingRange, ...] = SEEDING_RANGES) -> SeedingConfig:
    """
    Seeded-player count for a draw size.

    Raises InvalidPlayerCount for bad input, SeedingConfigNotFound if the
    range table has a gap (configuration bug).
    """
    player_count = validate_player_count(player_count)
    for seeding_range in ranges:
        if seeding_range.contains(player_count):
            return SeedingConfig(
                player_count=player_count,
                seeded_players=seeding_range.seeded_count,
                range=seeding_range,
            )
    raise SeedingConfigNotFound(player_count)

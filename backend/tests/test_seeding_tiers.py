import pytest

from app.errors import InvalidPlayerCount, SeedingConfigNotFound
from app.services.seeding_tiers import SEEDING_RANGES, SeedingRange, get_seeding_config


@pytest.mark.parametrize(
    "player_count,seeded",
    [
        (4, 2),
        (9, 2),
        (10, 4),
        (19, 4),
        (20, 8),
        (39, 8),
        (40, 16),
        (128, 16),
    ],
)
def test_tier_boundaries(player_count, seeded):
    assert get_seeding_config(player_count).seeded_players == seeded


def test_twenty_five_players():
    config = get_seeding_config(25)
    assert config.as_dict() == {
        "playerCount": 25,
        "seededPlayers": 8,
        "range": {"min": 20, "max": 39},
        "note": "Seeding positions within the bracket are determined manually by organizers",
    }


def test_ranges_cover_every_valid_count_exactly_once():
    for n in range(4, 129):
        assert sum(1 for r in SEEDING_RANGES if r.contains(n)) == 1


def test_ranges_are_contiguous():
    for lower, upper in zip(SEEDING_RANGES, SEEDING_RANGES[1:]):
        assert upper.min == lower.max + 1
    assert SEEDING_RANGES[0].min == 4
    assert SEEDING_RANGES[-1].max == 128


@pytest.mark.parametrize("bad", [3, 129, 12.5, "12", None, False])
def test_invalid_player_count(bad):
    with pytest.raises(InvalidPlayerCount):
        get_seeding_config(bad)


def test_gap_in_table_is_config_fault():
    ranges = (SeedingRange(min=4, max=9, seeded_count=2), SeedingRange(min=20, max=128, seeded_count=8))
    with pytest.raises(SeedingConfigNotFound) as exc_info:
        get_seeding_config(12, ranges)
    assert exc_info.value.status_code == 500
    assert exc_info.value.details() == {"playerCount": 12}

"""
Bracket Template Engine

Maps a player count (4..128) to its fixed first-round pattern. Each bit is one
first-round pair of bracket slots:
- "0": preliminary match (two entrants play)
- "1": bye (one entrant advances automatically)

Display strings group bits with single spaces ("1110 0101"). Grouping is
cosmetic: counting works on bits only, and render() gives back the exact
display string.

The template table is static data, loaded once into a TemplateCache owned by
the application (see app.main) and passed in by callers.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from app.errors import InvalidPlayerCount, TemplateLoadFailure, TemplateNotFound

logger = logging.getLogger(__name__)

MIN_PLAYERS = 4
MAX_PLAYERS = 128

DEFAULT_TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "data" / "bracket_templates.json"


# =============================================================================
# Player count validation
# =============================================================================


def validate_player_count(player_count: Any) -> int:
    """Return player_count if it is an int in [4, 128], else raise InvalidPlayerCount."""
    # bool is an int subclass; True/False are not player counts
    if isinstance(player_count, bool) or not isinstance(player_count, int):
        raise InvalidPlayerCount(player_count, "Player count must be an integer")
    if player_count < MIN_PLAYERS:
        raise InvalidPlayerCount(player_count, f"Player count must be at least {MIN_PLAYERS}")
    if player_count > MAX_PLAYERS:
        raise InvalidPlayerCount(player_count, f"Player count cannot exceed {MAX_PLAYERS}")
    return player_count


def calculate_bracket_size(player_count: int) -> int:
    """Next power of two >= player_count."""
    size = 1
    while size < player_count:
        size *= 2
    return size


# =============================================================================
# Pattern value type
# =============================================================================


@dataclass(frozen=True)
class BracketPattern:
    groups: Tuple[Tuple[int, ...], ...]

    @classmethod
    def parse(cls, display: str) -> "BracketPattern":
        """Parse a display string such as "1110 0101"."""
        groups: List[Tuple[int, ...]] = []
        for chunk in display.split():
            if any(c not in "01" for c in chunk):
                raise ValueError(f"Invalid bracket pattern {display!r}: only 0/1 allowed")
            groups.append(tuple(int(c) for c in chunk))
        if not groups:
            raise ValueError("Bracket pattern cannot be empty")
        return cls(groups=tuple(groups))

    def render(self) -> str:
        return " ".join("".join(str(b) for b in group) for group in self.groups)

    @property
    def bits(self) -> Tuple[int, ...]:
        return tuple(b for group in self.groups for b in group)

    @property
    def zeros(self) -> int:
        return sum(1 for b in self.bits if b == 0)

    @property
    def ones(self) -> int:
        return sum(1 for b in self.bits if b == 1)

    def __len__(self) -> int:
        return sum(len(group) for group in self.groups)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class BracketTemplate:
    player_count: int
    pattern: BracketPattern


@dataclass(frozen=True)
class BracketStructure:
    player_count: int
    pattern: str
    preliminary_matches: int
    byes: int
    bracket_size: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "playerCount": self.player_count,
            "structure": self.pattern,
            "preliminaryMatches": self.preliminary_matches,
            "byes": self.byes,
            "bracketSize": self.bracket_size,
        }


def check_template_invariants(template: BracketTemplate) -> Optional[str]:
    """
    Return None if the template is structurally sound, else an error message.

    Rules:
    - one bit per first-round pair: len(bits) == bracket_size / 2
    - entrants: byes + 2 * preliminary_matches == player_count
    """
    bracket_size = calculate_bracket_size(template.player_count)
    pattern = template.pattern
    if pattern.zeros + pattern.ones != len(pattern):
        return f"{template.player_count}: pattern has non-binary positions"
    if 2 * len(pattern) != bracket_size:
        return f"{template.player_count}: pattern has {len(pattern)} pairs, bracket of {bracket_size} needs {bracket_size // 2}"
    if pattern.ones + 2 * pattern.zeros != template.player_count:
        return (
            f"{template.player_count}: {pattern.ones} byes + 2*{pattern.zeros} matches "
            f"does not seat {template.player_count} players"
        )
    return None


# =============================================================================
# Template cache
# =============================================================================


class TemplateCache:
    """
    Read-only bracket template table, loaded at most once per instance.

    Concurrent first loads all parse the same file into equal tables, so the
    last writer winning is harmless; the lock just avoids duplicate I/O.
    """

    def __init__(self, source: Optional[Path] = None):
        env_path = os.getenv("BRACKET_TEMPLATES_PATH")
        self.source = Path(source or env_path or DEFAULT_TEMPLATES_PATH)
        self._templates: Optional[Dict[int, BracketTemplate]] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._templates is not None

    def load(self) -> Dict[int, BracketTemplate]:
        if self._templates is not None:
            return self._templates
        with self._lock:
            if self._templates is None:
                self._templates = _read_templates(self.source)
                logger.info(f"Loaded {len(self._templates)} bracket templates from {self.source}")
        return self._templates

    def get(self, player_count: int) -> BracketTemplate:
        templates = self.load()
        template = templates.get(player_count)
        if template is None:
            raise TemplateNotFound(player_count)
        return template

    def __len__(self) -> int:
        return len(self.load())


def _read_templates(source: Path) -> Dict[int, BracketTemplate]:
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise TemplateLoadFailure(str(source), str(e)) from e

    if not isinstance(raw, list):
        raise TemplateLoadFailure(str(source), "expected a JSON list of {key, value} entries")

    templates: Dict[int, BracketTemplate] = {}
    for item in raw:
        try:
            player_count = int(item["key"])
            pattern = BracketPattern.parse(item["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise TemplateLoadFailure(str(source), f"malformed entry {item!r}: {e}") from e

        template = BracketTemplate(player_count=player_count, pattern=pattern)
        problem = check_template_invariants(template)
        if problem:
            raise TemplateLoadFailure(str(source), problem)
        if player_count in templates:
            raise TemplateLoadFailure(str(source), f"duplicate entry for {player_count} players")
        templates[player_count] = template

    return templates


# =============================================================================
# Public contract
# =============================================================================


def get_bracket_structure(cache: TemplateCache, player_count: Any) -> BracketStructure:
    """
    Bracket structure for a player count.

    Raises:
        InvalidPlayerCount: not an int in [4, 128] (checked before any lookup)
        TemplateLoadFailure: template table could not be loaded
        TemplateNotFound: table has no entry for a valid count (data fault)
    """
    player_count = validate_player_count(player_count)
    template = cache.get(player_count)
    return BracketStructure(
        player_count=player_count,
        pattern=template.pattern.render(),
        preliminary_matches=template.pattern.zeros,
        byes=template.pattern.ones,
        bracket_size=calculate_bracket_size(player_count),
    )

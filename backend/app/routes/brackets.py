"""
Bracket structure and seeding tier lookups. Read-only; driven by player count.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from app.services.bracket_templates import TemplateCache, get_bracket_structure
from app.services.seeding_tiers import get_seeding_config

router = APIRouter()


def get_template_cache(request: Request) -> TemplateCache:
    """The process-wide template cache created at startup (see app.main)."""
    return request.app.state.bracket_templates


# Path params arrive as str so non-integers reach validate_player_count
# and surface as INVALID_PLAYER_COUNT instead of a generic 422.
def _parse_player_count(raw: str) -> Any:
    try:
        return int(raw)
    except ValueError:
        return raw


@router.get("/brackets/{player_count}")
def bracket_structure(player_count: str, cache: TemplateCache = Depends(get_template_cache)) -> Dict[str, Any]:
    """First-round structure (byes / preliminary matches) for a draw size."""
    return get_bracket_structure(cache, _parse_player_count(player_count)).as_dict()


@router.get("/seeding/{player_count}")
def seeding_config(player_count: str) -> Dict[str, Any]:
    """How many entrants are seeded for a draw size."""
    return get_seeding_config(_parse_player_count(player_count)).as_dict()

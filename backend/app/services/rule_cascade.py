"""
Rule Cascade Resolver

Effective scoring rules for a match are the tournament defaults with partial
overrides layered on top, lowest to highest priority:

    tournament default -> group OR bracket -> round -> match

Each layer is merged key-wise over the accumulated result (later key wins).
When a match completes, the resolved rules are frozen into a RuleSnapshot and
the cascade is never recomputed for that match again.

Everything here is plain data in, plain data out. Loading the ORM graph and
writing the snapshot atomically lives in match_service.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.errors import AlreadyCompleted, InvalidTransition, RuleSnapshotMissing

SOURCE_CASCADED = "CASCADED"
SOURCE_SNAPSHOT = "SNAPSHOT"

LEVEL_TOURNAMENT = "tournament"
LEVEL_GROUP = "group"
LEVEL_BRACKET = "bracket"
LEVEL_ROUND = "round"
LEVEL_MATCH = "match"

COMPLEXITY_DEFAULT = "DEFAULT"
COMPLEXITY_MODIFIED = "MODIFIED"
COMPLEXITY_SPECIFIC = "SPECIFIC"


# =============================================================================
# Match state machine
# =============================================================================


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({MatchStatus.COMPLETED, MatchStatus.CANCELLED})

ALLOWED_TRANSITIONS: Dict[MatchStatus, frozenset] = {
    MatchStatus.SCHEDULED: frozenset({MatchStatus.IN_PROGRESS, MatchStatus.CANCELLED}),
    MatchStatus.IN_PROGRESS: frozenset({MatchStatus.COMPLETED, MatchStatus.CANCELLED}),
    MatchStatus.COMPLETED: frozenset(),
    MatchStatus.CANCELLED: frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    try:
        return MatchStatus(new) in ALLOWED_TRANSITIONS[MatchStatus(current)]
    except ValueError:
        return False


def check_transition(current: str, new: str, match_id: Optional[int] = None) -> None:
    """
    Raise if current -> new is not allowed.

    Completing a completed match is AlreadyCompleted; every other illegal move
    (including SCHEDULED -> COMPLETED) is InvalidTransition.
    """
    if current == MatchStatus.COMPLETED and new == MatchStatus.COMPLETED:
        raise AlreadyCompleted(match_id)
    if not can_transition(current, new):
        raise InvalidTransition(str(_status_value(current)), str(_status_value(new)), match_id)


def _status_value(status: Any) -> Any:
    return status.value if isinstance(status, Enum) else status


# =============================================================================
# Layers and merge
# =============================================================================


@dataclass(frozen=True)
class RuleLayer:
    level: str
    overrides: Mapping[str, Any]
    ref: Mapping[str, Any] = field(default_factory=dict)

    def trace(self) -> Dict[str, Any]:
        return {"level": self.level, "overridesApplied": dict(self.overrides), **dict(self.ref)}


def merge_rule_layers(layers: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Left fold of partial mappings; a later layer's key wins. Inputs are not mutated."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            merged[key] = copy.deepcopy(value)
    return merged


@dataclass(frozen=True)
class OverrideScope:
    """A group, bracket or round the match belongs to. overrides=None means none set."""

    ref: Mapping[str, Any] = field(default_factory=dict)
    overrides: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class RuleSnapshot:
    rules: Mapping[str, Any]
    captured_at: datetime

    @classmethod
    def capture(cls, rules: Mapping[str, Any], captured_at: Optional[datetime] = None) -> "RuleSnapshot":
        frozen = MappingProxyType(copy.deepcopy(dict(rules)))
        return cls(rules=frozen, captured_at=captured_at or datetime.utcnow())

    def to_json(self) -> Dict[str, Any]:
        return copy.deepcopy(dict(self.rules))


@dataclass(frozen=True)
class MatchRuleContext:
    match_id: Optional[int]
    status: str
    tournament_rules: Mapping[str, Any]
    group: Optional[OverrideScope] = None
    bracket: Optional[OverrideScope] = None
    round_bracket: Optional[OverrideScope] = None
    round: Optional[OverrideScope] = None
    match_overrides: Optional[Mapping[str, Any]] = None
    match_ref: Mapping[str, Any] = field(default_factory=dict)
    snapshot: Optional[RuleSnapshot] = None


@dataclass(frozen=True)
class ResolvedRules:
    source: str
    rules: Dict[str, Any]
    cascade: Tuple[Dict[str, Any], ...] = ()
    snapshot_date: Optional[datetime] = None

    @property
    def is_snapshot(self) -> bool:
        return self.source == SOURCE_SNAPSHOT

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"source": self.source, "rules": copy.deepcopy(self.rules)}
        if self.is_snapshot:
            data["snapshotDate"] = self.snapshot_date.isoformat() if self.snapshot_date else None
        else:
            data["cascade"] = [dict(step) for step in self.cascade]
        return data


def cascade_layers(context: MatchRuleContext) -> List[RuleLayer]:
    """
    Ordered override layers for a live match.

    Only one of group / bracket contributes: the group if it carries
    overrides, else the match's own bracket, else the bracket its round
    belongs to.
    """
    layers = [RuleLayer(LEVEL_TOURNAMENT, context.tournament_rules, {"source": "default"})]

    if context.group is not None and context.group.overrides is not None:
        layers.append(RuleLayer(LEVEL_GROUP, context.group.overrides, context.group.ref))
    elif context.bracket is not None and context.bracket.overrides is not None:
        layers.append(RuleLayer(LEVEL_BRACKET, context.bracket.overrides, context.bracket.ref))
    elif context.round_bracket is not None and context.round_bracket.overrides is not None:
        layers.append(RuleLayer(LEVEL_BRACKET, context.round_bracket.overrides, context.round_bracket.ref))

    if context.round is not None and context.round.overrides is not None:
        layers.append(RuleLayer(LEVEL_ROUND, context.round.overrides, context.round.ref))

    if context.match_overrides is not None:
        layers.append(RuleLayer(LEVEL_MATCH, context.match_overrides, context.match_ref))

    return layers


def resolve_effective_rules(context: MatchRuleContext) -> ResolvedRules:
    """
    Effective rules for one match.

    Completed matches return their frozen snapshot (source=SNAPSHOT) without
    touching the cascade. Everything else is resolved live (source=CASCADED)
    with a trace of every contributing layer.
    """
    if context.status == MatchStatus.COMPLETED:
        if context.snapshot is None:
            raise RuleSnapshotMissing(context.match_id)
        return ResolvedRules(
            source=SOURCE_SNAPSHOT,
            rules=context.snapshot.to_json(),
            snapshot_date=context.snapshot.captured_at,
        )

    layers = cascade_layers(context)
    return ResolvedRules(
        source=SOURCE_CASCADED,
        rules=merge_rule_layers(layer.overrides for layer in layers),
        cascade=tuple(layer.trace() for layer in layers),
    )


def snapshot_on_completion(
    context: MatchRuleContext,
    rules: Mapping[str, Any],
    completed_at: Optional[datetime] = None,
) -> RuleSnapshot:
    """Freeze rules for the IN_PROGRESS -> COMPLETED transition. Raises before any write."""
    check_transition(context.status, MatchStatus.COMPLETED, context.match_id)
    return RuleSnapshot.capture(rules, completed_at)


# =============================================================================
# Rule complexity
# =============================================================================


def calculate_complexity(
    group_overrides: Sequence[Optional[Mapping[str, Any]]] = (),
    bracket_overrides: Sequence[Optional[Mapping[str, Any]]] = (),
    round_overrides: Sequence[Optional[Mapping[str, Any]]] = (),
    match_overrides: Sequence[Optional[Mapping[str, Any]]] = (),
) -> str:
    """
    DEFAULT: only tournament defaults
    MODIFIED: some group / bracket / round override exists
    SPECIFIC: some match-level override exists
    """
    if any(o is not None for o in match_overrides):
        return COMPLEXITY_SPECIFIC
    if any(o is not None for o in (*group_overrides, *bracket_overrides, *round_overrides)):
        return COMPLEXITY_MODIFIED
    return COMPLEXITY_DEFAULT

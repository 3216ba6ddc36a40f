"""
Scoring rule validation.

Tournament defaults must be a complete rule set for one format type; every
override layer (group / bracket / round / match) is a partial mapping whose
keys must be known rule names.
"""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ScoringFormatType(str, Enum):
    SETS = "SETS"
    STANDARD_TIEBREAK = "STANDARD_TIEBREAK"
    BIG_TIEBREAK = "BIG_TIEBREAK"
    MIXED = "MIXED"


class AdvantageRule(str, Enum):
    ADVANTAGE = "ADVANTAGE"
    NO_ADVANTAGE = "NO_ADVANTAGE"


class FinalSetTiebreak(str, Enum):
    STANDARD = "STANDARD"
    BIG = "BIG"


TiebreakTrigger = Literal["6-6", "5-5", "4-4", "3-3"]


class _RulesBase(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)


class SetsFormat(_RulesBase):
    formatType: Literal["SETS"]
    winningSets: Literal[1, 2]
    advantageRule: AdvantageRule
    tiebreakTrigger: TiebreakTrigger


class StandardTiebreakFormat(_RulesBase):
    formatType: Literal["STANDARD_TIEBREAK"]
    winningTiebreaks: Literal[1, 2, 3]


class BigTiebreakFormat(_RulesBase):
    formatType: Literal["BIG_TIEBREAK"]
    winningTiebreaks: Literal[1, 2]


class MixedFormat(_RulesBase):
    formatType: Literal["MIXED"]
    winningSets: Literal[1, 2]
    advantageRule: AdvantageRule
    tiebreakTrigger: TiebreakTrigger
    finalSetTiebreak: FinalSetTiebreak


ScoringRules = Annotated[
    Union[SetsFormat, StandardTiebreakFormat, BigTiebreakFormat, MixedFormat],
    Field(discriminator="formatType"),
]

_scoring_rules_adapter: TypeAdapter = TypeAdapter(ScoringRules)


class ScoringRulesOverride(_RulesBase):
    formatType: Optional[ScoringFormatType] = None
    winningSets: Optional[Literal[1, 2]] = None
    winningTiebreaks: Optional[Literal[1, 2, 3]] = None
    advantageRule: Optional[AdvantageRule] = None
    tiebreakTrigger: Optional[TiebreakTrigger] = None
    finalSetTiebreak: Optional[FinalSetTiebreak] = None
    # Round-level only, and only on consolation or placement brackets
    earlyTiebreakEnabled: Optional[bool] = None


DEFAULT_SCORING_RULES: Dict[str, Any] = {
    "formatType": "SETS",
    "winningSets": 2,
    "advantageRule": "ADVANTAGE",
    "tiebreakTrigger": "6-6",
}


def validate_scoring_rules(rules: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a full rule set. Raises pydantic.ValidationError."""
    model = _scoring_rules_adapter.validate_python(rules)
    return model.model_dump()


def validate_rule_overrides(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a partial override; only the keys that were sent are kept."""
    model = ScoringRulesOverride.model_validate(overrides)
    return model.model_dump(exclude_unset=True)

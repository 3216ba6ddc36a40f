from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.bracket import Bracket
    from app.models.match import Match
    from app.models.tournament import Tournament


class Round(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    bracket_id: Optional[int] = Field(default=None, foreign_key="bracket.id")
    round_number: int
    rule_overrides: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="rounds")
    bracket: Optional["Bracket"] = Relationship(back_populates="rounds")
    matches: List["Match"] = Relationship(back_populates="round")

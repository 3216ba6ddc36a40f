from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match
    from app.models.round import Round
    from app.models.tournament import Tournament


class Bracket(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    bracket_type: str = Field(default="MAIN")  # MAIN | CONSOLATION
    rule_overrides: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="brackets")
    rounds: List["Round"] = Relationship(back_populates="bracket")
    matches: List["Match"] = Relationship(back_populates="bracket")

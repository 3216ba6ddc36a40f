from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.bracket import Bracket
    from app.models.group import Group
    from app.models.round import Round
    from app.models.tournament import Tournament


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)

    # A match sits in a group OR a bracket/round structure, never both
    group_id: Optional[int] = Field(default=None, foreign_key="tournament_group.id")
    bracket_id: Optional[int] = Field(default=None, foreign_key="bracket.id")
    round_id: Optional[int] = Field(default=None, foreign_key="round.id")
    match_number: int = Field(default=1)

    # Singles uses player ids, doubles uses pair ids
    player1_id: Optional[int] = Field(default=None, foreign_key="player.id")
    player2_id: Optional[int] = Field(default=None, foreign_key="player.id")
    pair1_id: Optional[int] = Field(default=None, foreign_key="doublespair.id")
    pair2_id: Optional[int] = Field(default=None, foreign_key="doublespair.id")

    status: str = Field(default="SCHEDULED")  # SCHEDULED | IN_PROGRESS | COMPLETED | CANCELLED
    rule_overrides: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # Frozen effective rules, written in the same UPDATE that sets COMPLETED
    completed_with_rules: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    result_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
    group: Optional["Group"] = Relationship(back_populates="matches")
    bracket: Optional["Bracket"] = Relationship(back_populates="matches")
    round: Optional["Round"] = Relationship(back_populates="matches")

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match
    from app.models.tournament import Tournament


class Group(SQLModel, table=True):
    __tablename__ = "tournament_group"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    group_number: int
    rule_overrides: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="groups")
    matches: List["Match"] = Relationship(back_populates="group")

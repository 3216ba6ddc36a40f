from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

from app.services.scoring_rules import DEFAULT_SCORING_RULES

if TYPE_CHECKING:
    from app.models.bracket import Bracket
    from app.models.category import Category
    from app.models.group import Group
    from app.models.match import Match
    from app.models.round import Round


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    start_date: date
    end_date: Optional[date] = None
    format_type: str = Field(default="KNOCKOUT")  # KNOCKOUT | GROUP | SWISS | COMBINED
    player_count: Optional[int] = Field(default=None)
    status: str = Field(default="SCHEDULED")  # SCHEDULED | IN_PROGRESS | COMPLETED | CANCELLED

    # Base layer of the rule cascade (always present)
    default_scoring_rules: Dict[str, Any] = Field(
        default_factory=lambda: dict(DEFAULT_SCORING_RULES), sa_column=Column(JSON, nullable=False)
    )
    # {calculationMethod, multiplicativeValue, doublePointsEnabled}; None scores by placement
    point_config: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    category: Optional["Category"] = Relationship(back_populates="tournaments")
    groups: List["Group"] = Relationship(back_populates="tournament")
    brackets: List["Bracket"] = Relationship(back_populates="tournament")
    rounds: List["Round"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")

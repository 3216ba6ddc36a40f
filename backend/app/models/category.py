from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.doubles_pair import DoublesPair
    from app.models.ranking_entry import RankingEntry
    from app.models.tournament import Tournament


class CategoryType(str, Enum):
    SINGLES = "SINGLES"
    DOUBLES = "DOUBLES"


class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    type: CategoryType = Field(default=CategoryType.SINGLES, sa_column=Column(String, nullable=False))
    # Best-N tournaments summed into the seeding score
    counted_tournaments_limit: int = Field(default=7)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournaments: List["Tournament"] = Relationship(back_populates="category")
    pairs: List["DoublesPair"] = Relationship(back_populates="category")
    ranking_entries: List["RankingEntry"] = Relationship(back_populates="category")

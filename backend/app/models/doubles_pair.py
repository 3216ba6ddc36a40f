from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from app.models.player import Player
from app.services.ranking_engine import pair_display_name

if TYPE_CHECKING:
    from app.models.category import Category


class DoublesPair(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("category_id", "player1_id", "player2_id", name="uq_category_pair"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    player1_id: int = Field(foreign_key="player.id")
    player2_id: int = Field(foreign_key="player.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    category: "Category" = Relationship(back_populates="pairs")
    player1: Player = Relationship(sa_relationship_kwargs={"foreign_keys": "DoublesPair.player1_id"})
    player2: Player = Relationship(sa_relationship_kwargs={"foreign_keys": "DoublesPair.player2_id"})

    @property
    def display_name(self) -> str:
        return pair_display_name(
            self.player1.name if self.player1 else None,
            self.player2.name if self.player2 else None,
        )

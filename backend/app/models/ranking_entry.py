from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from app.models.doubles_pair import DoublesPair
from app.models.player import Player

if TYPE_CHECKING:
    from app.models.category import Category
    from app.models.tournament_result import TournamentResult


class RankingEntry(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("category_id", "player_id", name="uq_ranking_category_player"),
        SAUniqueConstraint("category_id", "pair_id", name="uq_ranking_category_pair"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    entity_type: str = Field(default="PLAYER")  # PLAYER | PAIR
    player_id: Optional[int] = Field(default=None, foreign_key="player.id")
    pair_id: Optional[int] = Field(default=None, foreign_key="doublespair.id")

    total_points: float = Field(default=0)
    wins: int = Field(default=0)
    losses: int = Field(default=0)
    last_tournament_date: Optional[datetime] = Field(default=None)
    tournament_count: int = Field(default=0)
    seeding_score: float = Field(default=0)
    rank: int = Field(default=0)  # 0 until the first recalculation
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    category: "Category" = Relationship(back_populates="ranking_entries")
    player: Optional[Player] = Relationship()
    pair: Optional[DoublesPair] = Relationship()
    tournament_results: List["TournamentResult"] = Relationship(back_populates="ranking_entry")

    @property
    def entity_name(self) -> str:
        if self.player is not None:
            return self.player.name
        if self.pair is not None:
            return self.pair.display_name
        return ""

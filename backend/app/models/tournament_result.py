from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.ranking_entry import RankingEntry


class TournamentResult(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    ranking_entry_id: int = Field(foreign_key="rankingentry.id", index=True)
    placement: Optional[int] = Field(default=None)
    final_round_reached: Optional[str] = Field(default=None)
    points_awarded: float = Field(default=0)
    award_date: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    ranking_entry: "RankingEntry" = Relationship(back_populates="tournament_results")

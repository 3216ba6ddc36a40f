from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class PointTableEntry(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("participant_range", "round_name", "is_consolation", name="uq_point_table_round"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    participant_range: str = Field(index=True)  # 2-4 | 5-8 | 9-16 | 17-32
    round_name: str  # e.g. FINAL, SEMIFINAL, QUARTERFINAL
    is_consolation: bool = Field(default=False)
    points: float = Field(default=0)

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    gender: Optional[str] = Field(default=None)  # MEN | WOMEN
    created_at: datetime = Field(default_factory=datetime.utcnow)

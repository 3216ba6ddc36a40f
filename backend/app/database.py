import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tournament.db")

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}
_echo = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

if _is_sqlite:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=_echo,
    connect_args=_connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from app.models.bracket import Bracket  # noqa: F401
    from app.models.category import Category  # noqa: F401
    from app.models.doubles_pair import DoublesPair  # noqa: F401
    from app.models.group import Group  # noqa: F401
    from app.models.match import Match  # noqa: F401
    from app.models.player import Player  # noqa: F401
    from app.models.point_table_entry import PointTableEntry  # noqa: F401
    from app.models.ranking_entry import RankingEntry  # noqa: F401
    from app.models.round import Round  # noqa: F401
    from app.models.tournament import Tournament  # noqa: F401
    from app.models.tournament_result import TournamentResult  # noqa: F401

    SQLModel.metadata.create_all(engine)

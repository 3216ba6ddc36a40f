# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
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

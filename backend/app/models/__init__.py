from app.models.bracket import Bracket
from app.models.category import Category, CategoryType
from app.models.doubles_pair import DoublesPair
from app.models.group import Group
from app.models.match import Match
from app.models.player import Player
from app.models.point_table_entry import PointTableEntry
from app.models.ranking_entry import RankingEntry
from app.models.round import Round
from app.models.tournament import Tournament
from app.models.tournament_result import TournamentResult

__all__ = [
    "Bracket",
    "Category",
    "CategoryType",
    "DoublesPair",
    "Group",
    "Match",
    "Player",
    "PointTableEntry",
    "RankingEntry",
    "Round",
    "Tournament",
    "TournamentResult",
]

"""Initial migration: categories, players, tournaments, rule layers, matches, rankings

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("counted_tournaments_limit", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_category_name", "category", ["name"], unique=True)

    op.create_table(
        "player",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_player_name", "player", ["name"])

    # Tournament defaults are the base layer of the rule cascade
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("format_type", sa.String(), nullable=False, server_default="KNOCKOUT"),
        sa.Column("player_count", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="SCHEDULED"),
        sa.Column("default_scoring_rules", sa.JSON(), nullable=False),
        sa.Column("point_config", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
    )
    op.create_index("ix_tournament_category_id", "tournament", ["category_id"])

    op.create_table(
        "doublespair",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("player1_id", sa.Integer(), nullable=False),
        sa.Column("player2_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.ForeignKeyConstraint(["player1_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["player2_id"], ["player.id"]),
        sa.UniqueConstraint("category_id", "player1_id", "player2_id", name="uq_category_pair"),
    )
    op.create_index("ix_doublespair_category_id", "doublespair", ["category_id"])

    # Override layers: group / bracket / round
    op.create_table(
        "tournament_group",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("group_number", sa.Integer(), nullable=False),
        sa.Column("rule_overrides", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
    )
    op.create_index("ix_tournament_group_tournament_id", "tournament_group", ["tournament_id"])

    op.create_table(
        "bracket",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("bracket_type", sa.String(), nullable=False, server_default="MAIN"),
        sa.Column("rule_overrides", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
    )
    op.create_index("ix_bracket_tournament_id", "bracket", ["tournament_id"])

    op.create_table(
        "round",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=True),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("rule_overrides", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["bracket_id"], ["bracket.id"]),
    )
    op.create_index("ix_round_tournament_id", "round", ["tournament_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("bracket_id", sa.Integer(), nullable=True),
        sa.Column("round_id", sa.Integer(), nullable=True),
        sa.Column("match_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("player1_id", sa.Integer(), nullable=True),
        sa.Column("player2_id", sa.Integer(), nullable=True),
        sa.Column("pair1_id", sa.Integer(), nullable=True),
        sa.Column("pair2_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="SCHEDULED"),
        sa.Column("rule_overrides", sa.JSON(), nullable=True),
        sa.Column("completed_with_rules", sa.JSON(), nullable=True),
        sa.Column("result_json", sa.JSON(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["group_id"], ["tournament_group.id"]),
        sa.ForeignKeyConstraint(["bracket_id"], ["bracket.id"]),
        sa.ForeignKeyConstraint(["round_id"], ["round.id"]),
        sa.ForeignKeyConstraint(["player1_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["player2_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["pair1_id"], ["doublespair.id"]),
        sa.ForeignKeyConstraint(["pair2_id"], ["doublespair.id"]),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])

    op.create_table(
        "rankingentry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False, server_default="PLAYER"),
        sa.Column("player_id", sa.Integer(), nullable=True),
        sa.Column("pair_id", sa.Integer(), nullable=True),
        sa.Column("total_points", sa.Float(), nullable=False, server_default="0"),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_tournament_date", sa.DateTime(), nullable=True),
        sa.Column("tournament_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("seeding_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rank", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["pair_id"], ["doublespair.id"]),
        sa.UniqueConstraint("category_id", "player_id", name="uq_ranking_category_player"),
        sa.UniqueConstraint("category_id", "pair_id", name="uq_ranking_category_pair"),
    )
    op.create_index("ix_rankingentry_category_id", "rankingentry", ["category_id"])

    op.create_table(
        "tournamentresult",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("ranking_entry_id", sa.Integer(), nullable=False),
        sa.Column("placement", sa.Integer(), nullable=True),
        sa.Column("final_round_reached", sa.String(), nullable=True),
        sa.Column("points_awarded", sa.Float(), nullable=False, server_default="0"),
        sa.Column("award_date", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["ranking_entry_id"], ["rankingentry.id"]),
    )
    op.create_index("ix_tournamentresult_tournament_id", "tournamentresult", ["tournament_id"])
    op.create_index("ix_tournamentresult_ranking_entry_id", "tournamentresult", ["ranking_entry_id"])

    # Round-based points per participant range, main and consolation
    op.create_table(
        "pointtableentry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("participant_range", sa.String(), nullable=False),
        sa.Column("round_name", sa.String(), nullable=False),
        sa.Column("is_consolation", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("points", sa.Float(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("participant_range", "round_name", "is_consolation", name="uq_point_table_round"),
    )
    op.create_index("ix_pointtableentry_participant_range", "pointtableentry", ["participant_range"])


def downgrade() -> None:
    op.drop_table("pointtableentry")
    op.drop_table("tournamentresult")
    op.drop_table("rankingentry")
    op.drop_table("match")
    op.drop_table("round")
    op.drop_table("bracket")
    op.drop_table("tournament_group")
    op.drop_table("doublespair")
    op.drop_table("tournament")
    op.drop_table("player")
    op.drop_table("category")

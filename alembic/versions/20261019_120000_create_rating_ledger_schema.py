"""Create users, rules, events, games and the rating ledger

Revision ID: 4e1b6d0c9a21
Revises:
Create Date: 2026-10-19 12:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "4e1b6d0c9a21"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "game_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("number_of_players", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("uma", sa.JSON(), nullable=False),
        sa.Column("starting_points", sa.Integer(), nullable=False),
        sa.Column("starting_rating", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minimum_games_for_rating", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("game_rules_id", sa.Integer(), nullable=False),
        sa.Column("date_from", sa.DateTime(), nullable=True),
        sa.Column("date_to", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["game_rules_id"], ["game_rules.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("modified_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_games_event_timestamp", "games", ["event_id", "timestamp"])

    op.create_table(
        "game_players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("game_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("start_place", sa.String(length=10), nullable=True),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("game_id", "user_id", name="uq_game_player"),
    )
    op.create_index("idx_game_players_user", "game_players", ["user_id"])

    op.create_table(
        "user_rating_changes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("game_id", sa.Integer(), nullable=False),
        sa.Column("rating_change", sa.BigInteger(), nullable=False),
        sa.Column("rating", sa.BigInteger(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "event_id", "game_id", name="uq_rating_change_user_event_game"),
    )
    op.create_index(
        "idx_rating_changes_user_event_ts",
        "user_rating_changes",
        ["user_id", "event_id", "timestamp"],
    )
    op.create_index("idx_rating_changes_game", "user_rating_changes", ["game_id"])


def downgrade() -> None:
    op.drop_index("idx_rating_changes_game", table_name="user_rating_changes")
    op.drop_index("idx_rating_changes_user_event_ts", table_name="user_rating_changes")
    op.drop_table("user_rating_changes")

    op.drop_index("idx_game_players_user", table_name="game_players")
    op.drop_table("game_players")

    op.drop_index("idx_games_event_timestamp", table_name="games")
    op.drop_table("games")

    op.drop_table("events")
    op.drop_table("game_rules")
    op.drop_table("users")

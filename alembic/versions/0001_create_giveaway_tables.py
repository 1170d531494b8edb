"""create giveaway tables

Revision ID: 0001_create_giveaway_tables
Revises:
Create Date: 2026-10-18 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_create_giveaway_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "giveaways",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("channel_id", sa.String(length=64), nullable=False),
        sa.Column("message_id", sa.String(length=64), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("base_amount", sa.Integer(), nullable=False),
        sa.Column("winner_count", sa.Integer(), nullable=False),
        sa.Column("closes_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("entry_count", sa.Integer(), nullable=False),
        sa.Column("server_seed_public", sa.String(length=255), nullable=False),
        sa.Column("client_seed", sa.String(length=255), nullable=True),
        sa.Column("winners", sa.JSON(none_as_null=True), nullable=True),
        sa.Column("roll_report", sa.JSON(none_as_null=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('open','closed','drawn')", name=op.f("ck_giveaways_status_enum")
        ),
        sa.CheckConstraint(
            "winner_count >= 1", name=op.f("ck_giveaways_winner_count_positive")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_giveaways")),
    )
    op.create_index(
        "ix_giveaways_status_closes_at", "giveaways", ["status", "closes_at"], unique=False
    )

    op.create_table(
        "giveaway_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("giveaway_id", sa.String(length=32), nullable=False),
        sa.Column("participant_id", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(
            ["giveaway_id"],
            ["giveaways.id"],
            name=op.f("fk_giveaway_entries_giveaway_id_giveaways"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_giveaway_entries")),
        sa.UniqueConstraint(
            "giveaway_id", "participant_id", name="uq_giveaway_entry_participant"
        ),
    )
    op.create_index(
        op.f("ix_giveaway_entries_giveaway_id"),
        "giveaway_entries",
        ["giveaway_id"],
        unique=False,
    )

    op.create_table(
        "giveaway_weight_rules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("giveaway_id", sa.String(length=32), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.String(length=64), nullable=False),
        sa.Column("bonus", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["giveaway_id"],
            ["giveaways.id"],
            name=op.f("fk_giveaway_weight_rules_giveaway_id_giveaways"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_giveaway_weight_rules")),
    )
    op.create_index(
        op.f("ix_giveaway_weight_rules_giveaway_id"),
        "giveaway_weight_rules",
        ["giveaway_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_giveaway_weight_rules_giveaway_id"), table_name="giveaway_weight_rules"
    )
    op.drop_table("giveaway_weight_rules")
    op.drop_index(op.f("ix_giveaway_entries_giveaway_id"), table_name="giveaway_entries")
    op.drop_table("giveaway_entries")
    op.drop_index("ix_giveaways_status_closes_at", table_name="giveaways")
    op.drop_table("giveaways")

"""Начальная схема промо-стенда

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "campaign",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("campaign_id", sa.String(), nullable=False),
        sa.Column("game_type", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("rut", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("comuna", sa.String(), nullable=True),
        sa.Column("model_preference", sa.String(), nullable=True),
        sa.Column("code", sa.String(4), nullable=True),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint("campaign_id", "game_type", "email", name="uq_registration_email"),
        sa.UniqueConstraint("campaign_id", "game_type", "code", name="uq_registration_code"),
    )
    op.create_index("idx_registrations_campaign_game", "registrations", ["campaign_id", "game_type"])

    op.create_table(
        "release_window",
        sa.Column("campaign_id", sa.String(), primary_key=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("remaining_spins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
        sa.CheckConstraint("remaining_spins >= 0", name="ck_release_window_remaining"),
    )

    op.create_table(
        "prize_weights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("campaign_id", sa.String(), nullable=False),
        sa.Column("game_type", sa.String(), nullable=False),
        sa.Column("prize_key", sa.String(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint("campaign_id", "game_type", "prize_key", name="uq_prize_weight"),
    )

    op.create_table(
        "plays",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("campaign_id", sa.String(), nullable=False),
        sa.Column("game_type", sa.String(), nullable=False),
        sa.Column("registration_id", sa.Integer(), sa.ForeignKey("registrations.id"), nullable=False),
        sa.Column("prize_key", sa.String(), nullable=False),
        sa.Column("forced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint("campaign_id", "game_type", "registration_id", name="uq_play_registration"),
    )
    op.create_index("idx_plays_campaign_created_at", "plays", ["campaign_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_plays_campaign_created_at", table_name="plays")
    op.drop_table("plays")
    op.drop_table("prize_weights")
    op.drop_table("release_window")
    op.drop_index("idx_registrations_campaign_game", table_name="registrations")
    op.drop_table("registrations")
    op.drop_table("campaign")

"""Initial schema: server configs, user levels, command usage, bot stats, global config

Revision ID: 3c9e7a1f4b20
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3c9e7a1f4b20"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "server_configs",
        sa.Column("server_id", sa.String(32), primary_key=True),
        sa.Column("server_name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("leveling_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "user_levels",
        sa.Column("id", sa.String(40), primary_key=True),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("server_id", sa.String(32), nullable=False),
        sa.Column("xp", sa.Integer, nullable=False),
        sa.Column("level", sa.Integer, nullable=False),
        sa.Column("messages_sent", sa.Integer, nullable=False),
        sa.Column("last_xp_gain", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "server_id", name="uq_user_levels_user_server"),
    )
    op.create_index("ix_user_levels_server_xp", "user_levels", ["server_id", "xp"])

    op.create_table(
        "command_usage",
        sa.Column("id", sa.String(40), primary_key=True),
        sa.Column("command_name", sa.String(100), nullable=False),
        sa.Column("server_id", sa.String(32), nullable=True),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("success", sa.Boolean, nullable=False),
        sa.Column("execution_time", sa.Integer, nullable=False),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_command_usage_name_time", "command_usage", ["command_name", "used_at"])
    op.create_index("ix_command_usage_server", "command_usage", ["server_id"])

    op.create_table(
        "bot_stats",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("total_servers", sa.Integer, nullable=False),
        sa.Column("total_users", sa.Integer, nullable=False),
        sa.Column("last_restart", sa.DateTime(timezone=True), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "global_config",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("global_config")
    op.drop_table("bot_stats")
    op.drop_index("ix_command_usage_server", table_name="command_usage")
    op.drop_index("ix_command_usage_name_time", table_name="command_usage")
    op.drop_table("command_usage")
    op.drop_index("ix_user_levels_server_xp", table_name="user_levels")
    op.drop_table("user_levels")
    op.drop_table("server_configs")

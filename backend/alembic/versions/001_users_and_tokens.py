"""Create users and tokens tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("discord_id", sa.String(length=64), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_played", sa.BigInteger(), nullable=False),
        sa.Column("team", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_users_address", "users", ["address"], unique=True)
    op.create_index("ix_users_discord_id", "users", ["discord_id"], unique=True)

    op.create_table(
        "tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("discord_id", sa.String(length=64), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_tokens_token", "tokens", ["token"], unique=True)
    op.create_index("ix_tokens_discord_id", "tokens", ["discord_id"])
    op.create_index("idx_tokens_token_discord", "tokens", ["token", "discord_id"])


def downgrade() -> None:
    op.drop_index("idx_tokens_token_discord", table_name="tokens")
    op.drop_index("ix_tokens_discord_id", table_name="tokens")
    op.drop_index("ix_tokens_token", table_name="tokens")
    op.drop_table("tokens")
    op.drop_index("ix_users_discord_id", table_name="users")
    op.drop_index("ix_users_address", table_name="users")
    op.drop_table("users")

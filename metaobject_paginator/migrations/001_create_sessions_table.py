"""Create the ``sessions`` table holding one OAuth session per shop."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "001_create_sessions_table"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create ``sessions`` with a unique index on ``shop``."""

    op.create_table(
        "sessions",
        sa.Column("id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("shop", sa.Text(), nullable=False),
        sa.Column("state", sa.Text(), nullable=True),
        sa.Column(
            "isOnline", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("scope", sa.Text(), nullable=True),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accessToken", sa.Text(), nullable=False),
        sa.Column("userId", sa.BigInteger(), nullable=True),
        sa.Column("firstName", sa.String(length=255), nullable=True),
        sa.Column("lastName", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column(
            "accountOwner", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("locale", sa.String(length=32), nullable=True),
        sa.Column(
            "collaborator", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "emailVerified", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "createdAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("updatedAt", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("sessions_shop_key", "sessions", ["shop"], unique=True)


def downgrade() -> None:
    """Drop ``sessions`` and its index."""

    op.drop_index("sessions_shop_key", table_name="sessions")
    op.drop_table("sessions")

"""Create carts table.

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
    """Create carts table."""
    op.create_table(
        "carts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("actor_key", sa.String(255), nullable=False),
        # Serialized cart lines
        sa.Column("items", sa.JSON, nullable=False),
        # Timestamps
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_index("ix_carts_actor_key", "carts", ["actor_key"], unique=True)


def downgrade() -> None:
    """Drop carts table."""
    op.drop_index("ix_carts_actor_key", table_name="carts")
    op.drop_table("carts")

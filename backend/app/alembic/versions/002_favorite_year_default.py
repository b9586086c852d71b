"""Favorites year is never null, 0 when unknown

Revision ID: 002
Revises: 001
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("UPDATE favorites SET year = 0 WHERE year IS NULL")
    op.alter_column(
        "favorites", "year",
        existing_type=sa.Integer(),
        nullable=False,
        server_default="0",
    )


def downgrade() -> None:
    op.alter_column(
        "favorites", "year",
        existing_type=sa.Integer(),
        nullable=True,
        server_default=None,
    )

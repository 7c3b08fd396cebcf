"""Initial finance schema.

Revision ID: 7a3c9e1f2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
from sqlalchemy import inspect

import finsuite  # noqa: F401
from finsuite.database import Base


# revision identifiers, used by Alembic.
revision = "7a3c9e1f2b40"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    return bool(inspect(op.get_bind()).has_table(table_name))


def upgrade() -> None:
    # Baseline: every table known to the models. Tables that already exist
    # (databases created by create_all) are left alone.
    bind = op.get_bind()
    missing = [table for table in Base.metadata.sorted_tables if not _table_exists(table.name)]
    Base.metadata.create_all(bind=bind, tables=missing)


def downgrade() -> None:
    bind = op.get_bind()
    present = [table for table in Base.metadata.sorted_tables if _table_exists(table.name)]
    Base.metadata.drop_all(bind=bind, tables=present)

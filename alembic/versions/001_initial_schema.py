"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

Tags: schema, initial
"""
from typing import Sequence, Union
import logging

from alembic import op
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

logger = logging.getLogger(__name__)


def upgrade() -> None:
    """
    Create users, coupons, medicines, orders, order_items and
    order_status_history from the registered models.
    Tables that already exist are left untouched.
    """
    # env.py imports every model, so Base.metadata is complete here
    from database import Base

    connection = op.get_bind()
    existing_tables_before = set(inspect(connection).get_table_names())

    Base.metadata.create_all(bind=connection, checkfirst=True)

    existing_tables_after = set(inspect(connection).get_table_names())
    created_tables = existing_tables_after - existing_tables_before
    if created_tables:
        logger.info(f"Created {len(created_tables)} base tables: {', '.join(sorted(created_tables))}")
    else:
        logger.info(f"All base tables already exist ({len(existing_tables_before)} tables found).")


def downgrade() -> None:
    from database import Base

    Base.metadata.drop_all(bind=op.get_bind())

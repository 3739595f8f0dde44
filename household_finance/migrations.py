"""
Lightweight database migrations.

SQLAlchemy's create_all() only creates missing tables, not missing columns.
This module adds any new columns that don't exist yet, so databases created
before the import pipeline existed keep working without a rebuild.
"""

import logging
from sqlalchemy import text, inspect
from sqlalchemy.exc import SQLAlchemyError

from .database import engine

logger = logging.getLogger(__name__)

NEW_COLUMNS = {
    "transactions": [
        ("subcategory_id", "VARCHAR(36)"),
        ("bank_category", "VARCHAR(200)"),
        ("bank_subcategory", "VARCHAR(200)"),
    ],
}


def run_migrations(bind=None):
    """Check for and apply any pending column additions."""
    bind = bind or engine
    inspector = inspect(bind)
    tables = inspector.get_table_names()

    for table, columns in NEW_COLUMNS.items():
        if table not in tables:
            continue
        existing_cols = {col["name"] for col in inspector.get_columns(table)}

        with bind.begin() as conn:
            for col_name, col_type in columns:
                if col_name in existing_cols:
                    continue
                try:
                    conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_name} {col_type}"))
                    logger.info(f"Migration: added {table}.{col_name}")
                except SQLAlchemyError as e:
                    logger.warning(f"Migration skip: {table}.{col_name} — {e}")

    logger.debug("Migrations complete")

"""
Database migration utilities.
"""
import os

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..logging_config import logger

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "scripts")
DIMENSION_PLACEHOLDER = "{{EMBEDDING_DIMENSION}}"


def list_migrations(migrations_dir: str = MIGRATIONS_DIR):
    if not os.path.exists(migrations_dir):
        logger.warning("Migrations directory not found", path=migrations_dir)
        return []
    return sorted(f for f in os.listdir(migrations_dir) if f.endswith(".sql"))


def render_migration(sql: str, embedding_dimension: int) -> str:
    """Fill in the vector column size configured for this deployment."""
    return sql.replace(DIMENSION_PLACEHOLDER, str(int(embedding_dimension)))


def run_sql_migrations(engine: Engine, embedding_dimension: int = 1536, migrations_dir: str = MIGRATIONS_DIR) -> int:
    """
    Run all SQL migration files in the migrations directory.

    Migration files should:
    - Be named with a sortable prefix (e.g., 001_init.sql, 002_add_columns.sql)
    - End with .sql extension
    - Be idempotent (safe to run multiple times)

    Returns:
        Number of files executed

    Raises:
        Exception: If any migration fails; the whole run is rolled back
    """
    migration_files = list_migrations(migrations_dir)
    if not migration_files:
        logger.info("No migration files found", path=migrations_dir)
        return 0

    with engine.begin() as conn:
        for filename in migration_files:
            with open(os.path.join(migrations_dir, filename), "r", encoding="utf-8") as f:
                sql = render_migration(f.read(), embedding_dimension)

            logger.info("Running migration", file=filename)
            conn.execute(text(sql))

    logger.info("Database migrations completed", count=len(migration_files))
    return len(migration_files)

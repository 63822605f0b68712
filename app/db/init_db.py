import logging
from typing import Optional, Set

from alembic.config import Config
from alembic import command
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

from app.db.base import Base
from app.db.session import engine as default_engine

logger = logging.getLogger(__name__)

def init_db() -> None:
    """
    Initialize the database by running Alembic migrations.
    """
    try:
        # Create Alembic configuration
        alembic_cfg = Config("alembic.ini")

        # Run migrations
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations applied successfully")
    except Exception as e:
        logger.error(f"Error applying database migrations: {e}")
        raise


def _table_names(connection) -> Set[str]:
    return set(inspect(connection).get_table_names())


async def create_all_tables(engine: Optional[AsyncEngine] = None) -> Set[str]:
    """Create missing tables from the models; returns the names created"""
    engine = engine or default_engine
    async with engine.begin() as conn:
        existing_tables = await conn.run_sync(_table_names)
        await conn.run_sync(Base.metadata.create_all)
        new_tables = await conn.run_sync(_table_names) - existing_tables

    if new_tables:
        logger.info(f"Created new tables: {new_tables}")
    return new_tables


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Applying database migrations")
    init_db()
    logger.info("Database migrations applied")

"""
Alembic migration runner for application startup.
"""
import logging
from pathlib import Path

from sqlalchemy.exc import OperationalError
from alembic import command
from alembic.config import Config

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent


def _alembic_config(database_url: str) -> Config:
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return alembic_cfg


def run_migrations(database_url: str) -> None:
    """
    Upgrade the database at database_url to the latest revision.
    """
    try:
        logger.info("Running Alembic migrations...")
        command.upgrade(_alembic_config(database_url), "head")
        logger.info("Alembic migrations completed successfully")
    except OperationalError as e:
        logger.error(f"Failed to connect to database during migrations: {e}")
        raise

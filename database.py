import os
from pathlib import Path
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent

# Connection pooling configuration (used for non-SQLite databases)
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", 3600))  # Recycle connections after 1 hour

Base = declarative_base()


def resolve_database_url(database_url: str) -> str:
    """
    Normalize the configured database URL.
    Falls back to a local SQLite file when nothing is configured.
    """
    url = (database_url or "").strip()

    # Some hosting environments accidentally prepend "DATABASE_URL=" to the value
    prefix = "DATABASE_URL="
    if url.startswith(prefix):
        url = url[len(prefix):].strip()

    if not url:
        default_sqlite_path = PROJECT_ROOT / "medstore.db"
        url = f"sqlite:///{default_sqlite_path.as_posix()}"
        logger.warning("DATABASE_URL not found. Falling back to SQLite at %s", default_sqlite_path)

    return url


def build_engine(database_url: str, **overrides) -> Engine:
    """Create the SQLAlchemy engine for the given URL."""
    url = resolve_database_url(database_url)

    engine_kwargs = {
        "echo": False,
        "future": True,
        "pool_pre_ping": True,
    }

    # SQLite has different pooling requirements
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs.update(
            {
                "poolclass": QueuePool,
                "pool_size": POOL_SIZE,
                "max_overflow": MAX_OVERFLOW,
                "pool_timeout": POOL_TIMEOUT,
                "pool_recycle": POOL_RECYCLE,
            }
        )
    engine_kwargs.update(overrides)

    engine = create_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        logger.info("Database configured with SQLite at %s", url)
    else:
        logger.info("Database connection pool configured: size=%s, max_overflow=%s", POOL_SIZE, MAX_OVERFLOW)

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

"""
Database connection and session management.

Supports SQLite (local development and tests), PostgreSQL and MySQL.
The dialect name of the engine also decides which full-text search
strategy the repository uses (see repositories/search.py).

Queries are not retried: a failing query surfaces to the
service, which reports an opaque 500 to the client.
"""
import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger("vacancy_api.database")

ALEMBIC_INI = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "alembic.ini")

# Last revision whose schema equals Base.metadata.create_all
METADATA_SCHEMA_REVISION = "002"

Base = declarative_base()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def create_app_engine(database_url: str = None):
    """
    Create a SQLAlchemy engine appropriate for the database backend.

    SQLite: WAL mode, busy_timeout, check_same_thread=False
    PostgreSQL/MySQL: connection pooling with pre-ping
    """
    url = database_url or settings.database_url

    if _is_sqlite(url):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

        logger.info("Created SQLite engine with WAL mode")
    else:
        engine = create_engine(
            url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=True,
            pool_recycle=settings.db_pool_recycle,
        )
        logger.info("Created %s engine with connection pooling", engine.dialect.name)

    return engine


engine = create_app_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency that yields a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_resilient_session():
    """
    Context manager for database sessions outside of FastAPI endpoints.

    Commits on success, rolls back on any error.

    Usage:
        with get_resilient_session() as db:
            db.query(...)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def run_migrations(bind=None):
    """
    Bring the schema up to date with Alembic (`alembic upgrade head`).

    A schema created straight from model metadata (tables present, no
    alembic_version table) matches revision 002, so it is stamped there
    first; the full-text migration then runs on top of it.

    Args:
        bind: Engine to migrate. Defaults to the application engine.
    """
    from alembic import command
    from alembic.config import Config
    from sqlalchemy import inspect as sa_inspect

    bind = bind or engine
    alembic_cfg = Config(ALEMBIC_INI)

    with bind.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        tables = sa_inspect(connection).get_table_names()

        if "vacancy" in tables and "alembic_version" not in tables:
            logger.info(f"Unversioned schema found - stamping revision {METADATA_SCHEMA_REVISION}...")
            command.stamp(alembic_cfg, METADATA_SCHEMA_REVISION)

        logger.info("Running migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete.")

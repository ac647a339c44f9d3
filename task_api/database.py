# task_api/database.py
"""Database engine, session factory, and table creation using SQLModel."""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from task_api import config

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across FastAPI's threadpool workers.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    echo=False,
    connect_args=_connect_args(config.DATABASE_URL),
)


def create_db_and_tables() -> None:
    """Create all tables from SQLModel metadata."""
    # Registers the table models on SQLModel.metadata.
    from task_api import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))


def database_connected(session: Session) -> bool:
    """Return True when a trivial query succeeds on *session*."""
    try:
        session.connection().execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True


def get_session():
    """Yield a database session for FastAPI dependency injection."""
    with Session(engine) as session:
        yield session

import logging
import sqlite3

from fastapi import Request
from sqlalchemy import create_engine, event, pool
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from movie_poll.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Turn on foreign keys for SQLite so vote/appeal cascades apply"""
    if isinstance(dbapi_conn, sqlite3.Connection):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    logger.debug("Database connection established")


def create_db_engine(settings: Settings) -> Engine:
    """
    Build the engine for the configured database.

    SQLite gets a single shared connection when in-memory (StaticPool) and
    check_same_thread disabled; every other backend uses a QueuePool sized
    from settings.
    """
    url = settings.database_url
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}, "echo": settings.db_echo}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = pool.StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        poolclass=pool.QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        echo=settings.db_echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency for FastAPI routes
def get_db(request: Request):
    """
    Database session dependency for FastAPI.
    Opens a session from the app's session factory and closes it afterwards.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

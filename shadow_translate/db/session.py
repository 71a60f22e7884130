# File: shadow_translate/db/session.py
"""
Database session management for shadow-translate.

The library never opens connections on import; callers either pass their own
Session to the repositories or use the helpers below.

Usage:
    from shadow_translate.db.session import db_session

    with db_session() as session:
        repo = RepositoryFactory(session, metadata).create_repository("articles")
        ...
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from shadow_translate.core.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None

SessionLocal = sessionmaker(autocommit=False, autoflush=False)

# Key in Session.info tracking how many transaction scopes are open
_SCOPE_DEPTH_KEY = "shadow_translate.scope_depth"


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create an engine for the given URL.

    In-memory SQLite databases share a single connection so that every
    session sees the same data.

    Args:
        url: Database URL; defaults to DATABASE_URL
        echo: Log emitted SQL; defaults to DB_ECHO

    Returns:
        SQLAlchemy engine
    """
    url = url or settings.DATABASE_URL
    echo = settings.DB_ECHO if echo is None else echo

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        logger.info(f"Using SQLite database: {url}")
        return create_engine(url, echo=echo, **kwargs)

    logger.info(f"Using database: {url}")
    return create_engine(url, echo=echo, pool_pre_ping=True)


def get_engine() -> Engine:
    """
    Get the shared engine, creating it on first use.

    Returns:
        SQLAlchemy engine
    """
    global _engine
    if _engine is None:
        _engine = create_db_engine()
        SessionLocal.configure(bind=_engine)
    return _engine


def get_db() -> Generator[Session, None, None]:
    """
    Get a database session.

    Suitable as a request-scoped dependency.

    Yields:
        SQLAlchemy session
    """
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    This can be used in scripts or background tasks.

    Yields:
        SQLAlchemy session
    """
    get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction_scope(session: Session) -> Generator[Session, None, None]:
    """
    Group writes into one unit of work.

    Only the outermost scope commits or rolls back; nested scopes join it,
    so a primary delete and its dependent deletes succeed or fail together.

    Args:
        session: Session the writes are issued on

    Yields:
        The same session
    """
    depth = session.info.get(_SCOPE_DEPTH_KEY, 0)
    session.info[_SCOPE_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except Exception:
        if depth == 0:
            logger.debug("Rolling back transaction scope")
            session.rollback()
        raise
    finally:
        session.info[_SCOPE_DEPTH_KEY] = depth

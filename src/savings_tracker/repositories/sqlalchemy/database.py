"""Database connection and session management."""

from typing import Generator, Optional

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from savings_tracker.config.settings import get_settings

Base = declarative_base()

# Module-level database state (can be reconfigured at runtime)
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        database_url = get_settings().get_database_url()
        _engine = create_engine(
            database_url,
            connect_args=_connect_args(database_url),
            echo=False,
        )
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
        )
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables."""
    from savings_tracker.repositories.sqlalchemy import orm_models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def reset_database() -> None:
    """Reset database state (for reconfiguration)."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()

    _engine = None
    _SessionLocal = None

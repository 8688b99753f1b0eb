# File: dispatchwatch/core/database/connection.py

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from dispatchwatch.core.config.settings import settings


def _connect_args(url: str) -> dict:
    # check_same_thread=False is needed only for SQLite (worker threads share the pool)
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_scanner_engine(url: str = None) -> Engine:
    """
    Engine for the external scanner store.
    Separate from the application engine; it is only ever read from.
    """
    url = url or settings.SCANNER_DB_URL
    return create_engine(url, echo=False, pool_pre_ping=True, connect_args=_connect_args(url))


def get_db():
    """Dependency for obtaining a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

"""
Database setup and session management.
Defaults to a SQLite file at ~/HouseholdFinance/finance.db; set
HOUSEHOLD_FINANCE_DATABASE_URL to point somewhere else.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from . import config


def _database_url() -> str:
    if config.DATABASE_URL:
        return config.DATABASE_URL
    config.DATA_DIR.mkdir(exist_ok=True)
    return f"sqlite:///{config.DATA_DIR / 'finance.db'}"


DATABASE_URL = _database_url()

_is_sqlite = DATABASE_URL.startswith("sqlite")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},  # Required for SQLite + FastAPI
    echo=False,
)


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable WAL mode and foreign keys for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if _is_sqlite:
    event.listen(engine, "connect", set_sqlite_pragma)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables if they don't exist."""
    from . import models  # noqa: F401 — import to register models
    Base.metadata.create_all(bind=engine)

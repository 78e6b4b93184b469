"""
Database connection and setup
SQLAlchemy engine and session factory for the configured database URL
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from revmohelp.models import Base


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for a database URL

    SQLite needs check_same_thread=False because FastAPI serves sync
    endpoints from a thread pool. In-memory SQLite also needs a single
    shared connection, otherwise every connection sees an empty database.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine"""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    Base.metadata.create_all(bind=engine)

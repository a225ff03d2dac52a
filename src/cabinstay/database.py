"""SQLAlchemy engine and session setup."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from cabinstay.config import get_database_url


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Current time as naive UTC, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, **kwargs) -> Engine:
    """Create an engine, applying the SQLite connection settings when needed."""
    if url.startswith("sqlite"):
        # SQLite needs this for multi-thread; timeout is the busy wait for write locks
        connect_args = {"check_same_thread": False, "timeout": 30}
        connect_args.update(kwargs.pop("connect_args", {}))
        db_engine = create_engine(url, echo=False, connect_args=connect_args, **kwargs)
        event.listen(db_engine, "connect", _enable_sqlite_foreign_keys)
        return db_engine
    return create_engine(url, echo=False, **kwargs)


engine = create_db_engine(get_database_url())

SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def get_session() -> Session:
    """Create a new database session."""
    return SessionLocal()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables. Import models first so they register with Base."""
    # Import all models to ensure they are registered
    import cabinstay.models.booking  # noqa: F401
    import cabinstay.models.cabin  # noqa: F401
    import cabinstay.models.change_request  # noqa: F401
    import cabinstay.models.message  # noqa: F401
    import cabinstay.models.promo  # noqa: F401
    import cabinstay.models.visitor  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

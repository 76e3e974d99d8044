import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

DEFAULT_DATABASE_URL = "postgresql://localhost/staffloan"

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()

engine = None
_configured_database_url = None


def database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_engine(url: str):
    if make_url(url).get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    # Request handlers and the outbox worker run on threads other than the
    # one that opened the connection.
    sqlite_engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


def configure_database() -> None:
    """(Re)bind the session factory when DATABASE_URL changed since the last call."""
    global engine, _configured_database_url

    url = database_url()
    if engine is not None and _configured_database_url == url:
        return

    if engine is not None:
        engine.dispose()
    engine = _create_engine(url)
    SessionLocal.configure(bind=engine)
    _configured_database_url = url


configure_database()

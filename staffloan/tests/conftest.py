import os

os.environ.setdefault("ENV", "test")
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = "staffloan-test-secret-not-for-production-use"

import subprocess
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

REPO_ROOT = Path(__file__).resolve().parents[2]

# SQLite file by default; point DATABASE_URL at a PostgreSQL database to run
# the suite against the production backend.
TEST_DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{REPO_ROOT / 'staffloan_test.db'}")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from staffloan import database
from staffloan import models  # noqa: F401


def _start_from_empty_database(database_url: str) -> None:
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database:
            Path(url.database).unlink(missing_ok=True)
        return

    admin_engine = create_engine(url.set(database="postgres"), isolation_level="AUTOCOMMIT")
    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": url.database},
            ).scalar()
            if not exists:
                conn.execute(text('CREATE DATABASE "{}"'.format(url.database.replace('"', '""'))))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def _migrated_database():
    database.engine.dispose()
    _start_from_empty_database(TEST_DATABASE_URL)

    subprocess.run(
        ["alembic", "upgrade", "head"],
        check=True,
        cwd=REPO_ROOT,
        env={**os.environ, "DATABASE_URL": TEST_DATABASE_URL},
    )
    database.configure_database()
    yield
    database.engine.dispose()


def _empty_all_tables() -> None:
    tables = list(reversed(database.Base.metadata.sorted_tables))
    with database.engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            names = ", ".join(f'"{t.name}"' for t in tables)
            conn.execute(text(f"TRUNCATE TABLE {names} RESTART IDENTITY CASCADE"))
        else:
            for table in tables:
                conn.execute(table.delete())


@pytest.fixture(autouse=True)
def _clean_tables():
    _empty_all_tables()
    yield
    _empty_all_tables()

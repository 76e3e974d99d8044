from __future__ import annotations

import re
from typing import Any, Iterable, Optional, Type, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from staffloan.core.errors import ConflictError, NotFoundError

T = TypeVar("T")


def _label(model) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", " ", model.__name__).lower()


def get(db: Session, model: Type[T], record_id: str) -> T:
    row = db.get(model, str(record_id))
    if row is None:
        raise NotFoundError(f"{_label(model).capitalize()} not found")
    return row


def find(db: Session, model: Type[T], *criteria, order_by: Iterable[Any] = (), limit: Optional[int] = None, offset: int = 0) -> list[T]:
    q = select(model).where(*criteria)
    for column in order_by:
        q = q.order_by(column)
    if offset:
        q = q.offset(int(offset))
    if limit is not None:
        q = q.limit(int(limit))
    return list(db.execute(q).scalars().all())


def insert(db: Session, row: T) -> T:
    db.add(row)
    db.flush()
    db.refresh(row)
    return row


def _expected_clause(model, expected: dict) -> list:
    return [getattr(model, name) == value for name, value in expected.items()]


def conditional_update(db: Session, model: Type[T], record_id: str, expected: dict, values: dict) -> T:
    """UPDATE ... WHERE id = :id AND <expected>; zero rows is a conflict, never a no-op."""
    result = db.execute(
        update(model)
        .where(model.id == str(record_id), *_expected_clause(model, expected))
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        get(db, model, record_id)
        raise ConflictError(f"{_label(model).capitalize()} is no longer in the expected state")

    return db.get(model, str(record_id), populate_existing=True)


def conditional_delete(db: Session, model, record_id: str, expected: dict) -> None:
    result = db.execute(
        delete(model)
        .where(model.id == str(record_id), *_expected_clause(model, expected))
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        get(db, model, record_id)
        raise ConflictError(f"{_label(model).capitalize()} can no longer be deleted")

    stale = db.identity_map.get(db.identity_key(model, str(record_id)))
    if stale is not None:
        db.expunge(stale)


def insert_or_fetch(db: Session, model: Type[T], values: dict, key_columns: tuple[str, ...]) -> tuple[T, bool]:
    """Atomic get-or-create guarded by the unique constraint over ``key_columns``.

    Concurrent callers race on the INSERT; the loser's insert is a no-op and
    both read back the single surviving row.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(model)
    elif dialect == "sqlite":
        stmt = sqlite_insert(model)
    else:
        raise RuntimeError(f"insert_or_fetch not supported on {dialect}")

    result = db.execute(
        stmt.values(**values).on_conflict_do_nothing(index_elements=list(key_columns))
    )
    created = result.rowcount == 1

    row = db.execute(
        select(model)
        .filter_by(**{name: values[name] for name in key_columns})
        .execution_options(populate_existing=True)
    ).scalar_one()
    return row, created

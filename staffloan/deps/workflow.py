from contextlib import contextmanager
from typing import Iterator

from staffloan.core.roles import Actor
from staffloan.database import SessionLocal
from staffloan.services.context import WorkflowContext


@contextmanager
def workflow_session(actor: Actor) -> Iterator[WorkflowContext]:
    """One request, one transaction: commit on success, roll back on any error."""
    db = SessionLocal()
    try:
        yield WorkflowContext(actor=actor, db=db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

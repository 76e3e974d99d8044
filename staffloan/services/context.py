from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.orm import Session

from staffloan.core.roles import Actor, Role


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WorkflowContext:
    """Everything a workflow call needs: who is acting, and the store to act on.

    The session's transaction is owned by whoever built the context; workflow
    functions flush but never commit.
    """

    actor: Actor
    db: Session
    clock: Callable[[], datetime] = field(default=_utc_now)

    @property
    def actor_id(self) -> str:
        return self.actor.actor_id

    @property
    def role(self) -> Role:
        return self.actor.role

    def now(self) -> datetime:
        return self.clock()

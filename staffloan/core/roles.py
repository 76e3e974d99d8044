from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    STAFF = "staff"
    HOST = "host"
    LENDER = "lender"
    ACCOUNTING = "accounting"


@dataclass(frozen=True)
class Actor:
    """Acting user as resolved from the bearer token."""

    actor_id: str
    role: Role

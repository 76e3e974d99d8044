from enum import Enum


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProposalStatus(str, Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProposalEventKind(str, Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    REJECTED = "rejected"


class Allocation(str, Enum):
    LENDER = "lender"
    HOST = "host"
    MIXED = "mixed"


class ClosureStatus(str, Enum):
    AWAITING_STAFF = "awaiting_staff"
    AWAITING_HOST = "awaiting_host"
    AWAITING_LENDER = "awaiting_lender"
    CLOSED = "closed"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Side(str, Enum):
    HOST = "host"
    LENDER = "lender"


def closure_status(signature_staff: bool, signature_host: bool, signature_lender: bool) -> ClosureStatus:
    """Status of a monthly closure as a function of its three signature flags.

    Signatures are only ever collected in order, so the first missing flag
    decides what the closure is waiting for.
    """
    if not signature_staff:
        return ClosureStatus.AWAITING_STAFF
    if not signature_host:
        return ClosureStatus.AWAITING_HOST
    if not signature_lender:
        return ClosureStatus.AWAITING_LENDER
    return ClosureStatus.CLOSED


class SideAction(str, Enum):
    APPROVE_HOST = "approve_host"
    REJECT_HOST = "reject_host"
    APPROVE_LENDER = "approve_lender"
    REJECT_LENDER = "reject_lender"

    @property
    def side(self) -> Side:
        return Side(self.value.split("_", 1)[1])

    @property
    def decision(self) -> Decision:
        return Decision(self.value.split("_", 1)[0])

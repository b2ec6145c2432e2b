"""
Sale lifecycle -- status transitions as seen by the commission engine.

Responsibility:
    Pure transition table for affiliate sales and the predicates the ledger
    synchronizer uses to decide whether a sale may carry ledger entries.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Sales are created and moved through
    their lifecycle by the external sales collaborator; this module only
    answers "is this move legal" and "does it need a ledger retraction".

    PENDING ──> CONFIRMED ──> PAYOUT_SCHEDULED ──> PAID
       │            │  └──────────────────────────> PAID
       └────────────┴──> CANCELLED
"""

from enum import Enum

from commission_kernel.exceptions import InvalidTransitionError


class SaleStatus(str, Enum):
    """Lifecycle status of an affiliate sale."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PAYOUT_SCHEDULED = "PAYOUT_SCHEDULED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


_TRANSITIONS: dict[SaleStatus, frozenset[SaleStatus]] = {
    SaleStatus.PENDING: frozenset({SaleStatus.CONFIRMED, SaleStatus.CANCELLED}),
    SaleStatus.CONFIRMED: frozenset(
        {SaleStatus.PAID, SaleStatus.PAYOUT_SCHEDULED, SaleStatus.CANCELLED}
    ),
    SaleStatus.PAYOUT_SCHEDULED: frozenset({SaleStatus.PAID}),
    SaleStatus.PAID: frozenset(),
    SaleStatus.CANCELLED: frozenset(),
}

LEDGER_ELIGIBLE_STATUSES: frozenset[SaleStatus] = frozenset(
    {SaleStatus.CONFIRMED, SaleStatus.PAYOUT_SCHEDULED, SaleStatus.PAID}
)


def allowed_transitions(status: SaleStatus | str) -> frozenset[SaleStatus]:
    return _TRANSITIONS[SaleStatus(status)]


def can_transition(from_status: SaleStatus | str, to_status: SaleStatus | str) -> bool:
    return SaleStatus(to_status) in allowed_transitions(from_status)


def validate_transition(
    from_status: SaleStatus | str,
    to_status: SaleStatus | str,
) -> SaleStatus:
    """
    Check a status move and return the target status.

    Raises:
        InvalidTransitionError: If the move is not in the transition table.
    """
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(
            from_status=SaleStatus(from_status).value,
            to_status=SaleStatus(to_status).value,
        )
    return SaleStatus(to_status)


def is_ledger_eligible(status: SaleStatus | str) -> bool:
    """True for CONFIRMED and the non-cancelled states after it."""
    return SaleStatus(status) in LEDGER_ELIGIBLE_STATUSES


def requires_retraction(
    from_status: SaleStatus | str,
    to_status: SaleStatus | str,
) -> bool:
    """
    True when a sale that may already hold ledger entries is being cancelled.

    The caller must then run the synchronizer's retraction path so the old
    entries are replaced by an empty set instead of going stale.
    """
    return is_ledger_eligible(from_status) and SaleStatus(to_status) is SaleStatus.CANCELLED

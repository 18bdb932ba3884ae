# transactions/services/lifecycle.py

"""
TRANSACTION LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed status transitions for bookings,
tool rentals and produce orders.

DESIGN PRINCIPLES:
- No database writes
- No side effects
- One static table per kind; validation is lookup + set membership
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from backend.api_errors import DomainPermissionError, DomainStateError, DomainValidationError
from permissions.roles import ACTOR_COUNTERPARTY, ACTOR_OWNER
from transactions.models import (
    KIND_BOOKING,
    KIND_ORDER,
    KIND_RENTAL,
    Booking,
    Order,
    ToolRental,
)

# ============================================================
# DOMAIN ERRORS
# ============================================================


class UnknownStatusError(DomainValidationError):
    pass


class InvalidTransitionError(DomainStateError):
    def __init__(self, *, kind: str, current_status: str, requested_status: str):
        self.kind = kind
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot transition {kind} from {current_status} to {requested_status}"
        )


class ForbiddenTransitionError(DomainPermissionError):
    pass


# ============================================================
# TABLES
# ============================================================

EMPTY = frozenset()


@dataclass(frozen=True)
class TransitionTable:
    kind: str
    statuses: frozenset
    terminal: frozenset
    # status -> actor role -> reachable statuses
    transitions: Mapping[str, Mapping[str, frozenset]]
    # status -> timestamp field stamped when entering it
    timestamps: Mapping[str, str] = field(default_factory=dict)

    def allowed(self, current_status: str, actor_role: Optional[str]) -> frozenset:
        if current_status in self.terminal or actor_role is None:
            return EMPTY
        return self.transitions.get(current_status, {}).get(actor_role, EMPTY)


BOOKING_TABLE = TransitionTable(
    kind=KIND_BOOKING,
    statuses=frozenset(value for value, _ in Booking.STATUS_CHOICES),
    terminal=frozenset(
        {Booking.STATUS_COMPLETED, Booking.STATUS_CANCELLED, Booking.STATUS_REJECTED}
    ),
    transitions={
        Booking.STATUS_PENDING: {
            ACTOR_OWNER: frozenset(
                {Booking.STATUS_APPROVED, Booking.STATUS_REJECTED, Booking.STATUS_CANCELLED}
            ),
            ACTOR_COUNTERPARTY: frozenset({Booking.STATUS_CANCELLED}),
        },
        Booking.STATUS_APPROVED: {
            ACTOR_OWNER: frozenset({Booking.STATUS_ACTIVE, Booking.STATUS_CANCELLED}),
            ACTOR_COUNTERPARTY: EMPTY,
        },
        Booking.STATUS_ACTIVE: {
            ACTOR_OWNER: frozenset({Booking.STATUS_COMPLETED}),
            ACTOR_COUNTERPARTY: frozenset({Booking.STATUS_COMPLETED}),
        },
    },
    timestamps={
        Booking.STATUS_APPROVED: "approved_at",
        Booking.STATUS_ACTIVE: "activated_at",
        Booking.STATUS_REJECTED: "rejected_at",
        Booking.STATUS_COMPLETED: "completed_at",
        Booking.STATUS_CANCELLED: "cancelled_at",
    },
)

RENTAL_TABLE = TransitionTable(
    kind=KIND_RENTAL,
    statuses=frozenset(value for value, _ in ToolRental.STATUS_CHOICES),
    terminal=frozenset({ToolRental.STATUS_COMPLETED, ToolRental.STATUS_CANCELLED}),
    transitions={
        ToolRental.STATUS_PENDING: {
            ACTOR_OWNER: frozenset({ToolRental.STATUS_APPROVED, ToolRental.STATUS_CANCELLED}),
            ACTOR_COUNTERPARTY: frozenset({ToolRental.STATUS_CANCELLED}),
        },
        ToolRental.STATUS_APPROVED: {
            ACTOR_OWNER: frozenset({ToolRental.STATUS_ACTIVE, ToolRental.STATUS_CANCELLED}),
            ACTOR_COUNTERPARTY: frozenset({ToolRental.STATUS_CANCELLED}),
        },
        ToolRental.STATUS_ACTIVE: {
            ACTOR_OWNER: frozenset({ToolRental.STATUS_COMPLETED}),
            ACTOR_COUNTERPARTY: frozenset({ToolRental.STATUS_COMPLETED}),
        },
    },
    timestamps={
        ToolRental.STATUS_APPROVED: "approved_at",
        ToolRental.STATUS_ACTIVE: "picked_up_at",
        ToolRental.STATUS_COMPLETED: "returned_at",
        ToolRental.STATUS_CANCELLED: "cancelled_at",
    },
)

ORDER_TABLE = TransitionTable(
    kind=KIND_ORDER,
    statuses=frozenset(value for value, _ in Order.STATUS_CHOICES),
    terminal=frozenset({Order.STATUS_COMPLETED, Order.STATUS_CANCELLED}),
    transitions={
        Order.STATUS_PENDING: {
            ACTOR_OWNER: frozenset({Order.STATUS_CONFIRMED, Order.STATUS_CANCELLED}),
            ACTOR_COUNTERPARTY: frozenset({Order.STATUS_CANCELLED}),
        },
        Order.STATUS_CONFIRMED: {
            ACTOR_OWNER: frozenset({Order.STATUS_READY, Order.STATUS_CANCELLED}),
            ACTOR_COUNTERPARTY: EMPTY,
        },
        Order.STATUS_READY: {
            ACTOR_OWNER: frozenset({Order.STATUS_COMPLETED}),
            ACTOR_COUNTERPARTY: frozenset({Order.STATUS_COMPLETED}),
        },
    },
    timestamps={
        Order.STATUS_CONFIRMED: "confirmed_at",
        Order.STATUS_READY: "ready_at",
        Order.STATUS_COMPLETED: "completed_at",
        Order.STATUS_CANCELLED: "cancelled_at",
    },
)

TABLES: dict[str, TransitionTable] = {
    KIND_BOOKING: BOOKING_TABLE,
    KIND_RENTAL: RENTAL_TABLE,
    KIND_ORDER: ORDER_TABLE,
}

# Shared status names (identical label across all kinds).
STATUS_CANCELLED = "CANCELLED"
STATUS_COMPLETED = "COMPLETED"


# ============================================================
# DOMAIN RULES
# ============================================================


def get_table(kind: str) -> TransitionTable:
    try:
        return TABLES[kind]
    except KeyError:
        raise UnknownStatusError(f"Unknown transaction kind '{kind}'") from None


def allowed_transitions(*, kind: str, current_status: str, actor_role: Optional[str]) -> frozenset:
    return get_table(kind).allowed(current_status, actor_role)


def is_terminal(*, kind: str, status: str) -> bool:
    return status in get_table(kind).terminal


def can_transition(*, kind: str, from_status: str, to_status: str, actor_role: Optional[str]) -> bool:
    return to_status in allowed_transitions(
        kind=kind, current_status=from_status, actor_role=actor_role
    )


def validate_transition(
    *,
    kind: str,
    current_status: str,
    requested_status: str,
    actor_role: Optional[str],
) -> bool:
    """
    Returns True when the status must change, False for a same-status no-op.

    Raises:
        UnknownStatusError        requested status is not a status of this kind
        ForbiddenTransitionError  actor is not a party, or the move belongs to
                                  the other party
        InvalidTransitionError    move not allowed from the current status
    """
    table = get_table(kind)

    if requested_status not in table.statuses:
        raise UnknownStatusError(f"Unknown {kind} status '{requested_status}'")

    if actor_role is None:
        raise ForbiddenTransitionError("Only the parties to this transaction can change it")

    if requested_status == current_status:
        return False

    if requested_status in table.allowed(current_status, actor_role):
        return True

    other_role = ACTOR_COUNTERPARTY if actor_role == ACTOR_OWNER else ACTOR_OWNER
    if requested_status in table.allowed(current_status, other_role):
        raise ForbiddenTransitionError(
            f"Only the {other_role} can move this {kind} to {requested_status}"
        )

    raise InvalidTransitionError(
        kind=kind,
        current_status=current_status,
        requested_status=requested_status,
    )

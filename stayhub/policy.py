# Booking status vocabulary, the transition table, and the capability check.
# Pure data and pure functions: nothing here touches the database.
from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Optional


class BookingStatus(str, enum.Enum):
    """Booking lifecycle states. Also the vocabulary of booking events and notification types."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


# Generic notification type for notices that are not tied to a booking event
INFO_NOTIFICATION_TYPE = "info"
NOTIFICATION_TYPES = tuple(s.value for s in BookingStatus) + (INFO_NOTIFICATION_TYPE,)


TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.REJECTED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset(s for s, nxt in TRANSITIONS.items() if not nxt)


def can_transition(current: str, target: str) -> bool:
    """True if `target` is in the allowed-next set of `current`. Unknown values are never allowed."""
    try:
        current_status = BookingStatus(current)
        target_status = BookingStatus(target)
    except ValueError:
        return False
    return target_status in TRANSITIONS[current_status]


class Operation(str, enum.Enum):
    """Booking operations gated by the capability check."""

    TRANSITION = "transition"
    CANCEL = "cancel"
    DELETE = "delete"


def is_allowed(operation: Operation, booking, requester_id: int) -> bool:
    """
    Capability check for booking operations.

    - transition: only the booking's host
    - cancel / delete: the guest or the host
    """
    is_host = booking.host_id == requester_id
    is_guest = booking.guest_id == requester_id
    if operation is Operation.TRANSITION:
        return is_host
    if operation in (Operation.CANCEL, Operation.DELETE):
        return is_guest or is_host
    return False


def owns_listing(listing, requester_id: int) -> bool:
    return listing is not None and listing.owner_id == requester_id


def counterparty(booking, actor_id: Optional[int]) -> int:
    """The guest if the host acted, otherwise the host."""
    if actor_id is not None and actor_id == booking.guest_id:
        return booking.host_id
    return booking.guest_id

# Booking event -> notification records.
# Best-effort: each notification is committed on its own, and failures are logged and
# returned as failed deliveries instead of raised, so booking operations never depend on them.
# Multi-recipient events (a completed stay notifies both parties) write sequentially, one
# independent commit per recipient; callers must not rely on the order between them.
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from . import models
from .policy import BookingStatus, counterparty

logger = logging.getLogger("stayhub.notifications")


@dataclass(frozen=True)
class Delivery:
    """Outcome of one intended notification: the persisted row, or None plus the error text."""

    recipient_id: int
    notification: Optional[models.Notification] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.notification is not None


# (recipient_id, title, message)
Draft = Tuple[int, str, str]


def _fmt(d) -> str:
    return d.isoformat() if hasattr(d, "isoformat") else str(d)


def build_drafts(kind: BookingStatus, booking: models.Booking, listing: models.Listing, actor_id: Optional[int]) -> List[Draft]:
    """Recipients, titles and messages for a booking event. Unknown kinds yield nothing."""
    title = listing.title
    check_in, check_out = _fmt(booking.check_in), _fmt(booking.check_out)

    if kind is BookingStatus.PENDING:
        return [(
            booking.host_id,
            "New Booking Request",
            f"New booking request for {title} from {check_in} to {check_out}.",
        )]
    if kind is BookingStatus.CONFIRMED:
        return [(
            booking.guest_id,
            "Booking Confirmed",
            f"Your booking for {title} has been confirmed for {check_in} to {check_out}.",
        )]
    if kind is BookingStatus.REJECTED:
        return [(
            booking.guest_id,
            "Booking Declined",
            f"Your booking request for {title} has been declined.",
        )]
    if kind is BookingStatus.COMPLETED:
        return [
            (booking.guest_id, "Stay Completed", f"Your stay at {title} has been completed."),
            (booking.host_id, "Stay Completed", f"The stay at {title} has been completed."),
        ]
    if kind is BookingStatus.CANCELLED:
        return [(
            counterparty(booking, actor_id),
            "Booking Cancelled",
            f"A booking for {title} has been cancelled.",
        )]
    return []


def _persist(db: Session, notification: models.Notification) -> models.Notification:
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def emit_booking_event(
    db: Session,
    kind,
    booking: models.Booking,
    listing: models.Listing,
    actor_id: Optional[int],
) -> List[Delivery]:
    """
    Create the notifications for a booking event.

    - actor_id is the user who triggered the event; it only matters for 'cancelled',
      where the notification goes to the other party.
    - Every draft is attempted, even after a sibling fails. The returned list has one
      Delivery per draft, in draft order.
    - Never raises.
    """
    try:
        event_kind = BookingStatus(kind)
    except ValueError:
        logger.error("notifications.unknown_kind", extra={"kind": str(kind), "booking_id": booking.id})
        return []

    try:
        booking_id, listing_id = booking.id, listing.id
        drafts = build_drafts(event_kind, booking, listing, actor_id)
    except Exception:
        logger.exception("notifications.build_failed", extra={"kind": event_kind.value})
        return []

    deliveries: List[Delivery] = []
    for recipient_id, title, message in drafts:
        notification = models.Notification(
            recipient_id=recipient_id,
            type=event_kind.value,
            title=title,
            message=message,
            read=False,
            listing_id=listing_id,
            booking_id=booking_id,
        )
        try:
            saved = _persist(db, notification)
        except Exception as exc:
            db.rollback()
            logger.warning(
                "notifications.delivery_failed",
                extra={
                    "kind": event_kind.value,
                    "booking_id": booking_id,
                    "recipient_id": recipient_id,
                    "error": str(exc),
                },
            )
            deliveries.append(Delivery(recipient_id=recipient_id, error=str(exc)))
            continue
        deliveries.append(Delivery(recipient_id=recipient_id, notification=saved))

    logger.info(
        "notifications.emitted",
        extra={
            "kind": event_kind.value,
            "booking_id": booking_id,
            "delivered": sum(1 for d in deliveries if d.ok),
            "failed": sum(1 for d in deliveries if not d.ok),
        },
    )
    return deliveries

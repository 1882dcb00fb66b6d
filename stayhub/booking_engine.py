# Booking lifecycle: creation, host-driven status transitions, cancellation, hard deletion
# and the guest/host/listing projections.
#
# Every mutating operation commits the booking first and then emits notifications in
# separate commits. There is no transaction spanning both, and no locking: concurrent
# conflicting updates resolve last-write-wins.
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import Forbidden, InternalError, InvalidRange, InvalidTransition, NotFound
from .notifier import emit_booking_event
from .policy import BookingStatus, Operation, can_transition, is_allowed, owns_listing

logger = logging.getLogger("stayhub.bookings")


def _get_booking(db: Session, booking_id: int) -> models.Booking:
    obj = db.get(models.Booking, booking_id)
    if obj is None:
        raise NotFound("Booking not found")
    return obj


def _get_listing(db: Session, listing_id: int) -> models.Listing:
    listing = db.get(models.Listing, listing_id)
    if listing is None:
        raise NotFound("Listing not found")
    return listing


def _commit(db: Session, obj, action: str) -> None:
    try:
        db.commit()
        if obj is not None:
            db.refresh(obj)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("bookings.persist_failed", extra={"action": action})
        raise InternalError(f"Failed to {action}", detail=str(exc)) from exc


def _notify(db: Session, kind: BookingStatus, booking: models.Booking, listing: Optional[models.Listing], actor_id: int) -> None:
    if listing is None:
        # Listing rows cascade-delete their bookings, so this only happens mid-race
        logger.warning("bookings.notify_skipped", extra={"booking_id": booking.id, "kind": kind.value})
        return
    deliveries = emit_booking_event(db, kind, booking, listing, actor_id)
    failed = [d for d in deliveries if not d.ok]
    if failed:
        logger.warning(
            "bookings.notifications_failed",
            extra={"booking_id": booking.id, "kind": kind.value, "failed": len(failed), "total": len(deliveries)},
        )


def create_booking(
    db: Session,
    *,
    listing_id: int,
    guest_id: int,
    check_in: date,
    check_out: date,
    number_of_guests: Optional[int] = None,
    special_requests: Optional[str] = None,
    total_price: Optional[float] = None,
) -> models.Booking:
    """
    Create a 'pending' booking for a listing and notify its host.

    Defaults:
    - number_of_guests: 1
    - total_price: the listing's price_per_night

    No overlap check against other bookings and no capacity check against max_guests.
    """
    listing = _get_listing(db, listing_id)
    if check_in >= check_out:
        raise InvalidRange()

    obj = models.Booking(
        listing_id=listing.id,
        guest_id=guest_id,
        # Snapshot of the owner at booking time; never re-derived afterwards
        host_id=listing.owner_id,
        check_in=check_in,
        check_out=check_out,
        number_of_guests=number_of_guests or 1,
        special_requests=special_requests or "",
        total_price=total_price if total_price is not None else listing.price_per_night,
        status=BookingStatus.PENDING.value,
    )
    db.add(obj)
    _commit(db, obj, "create booking")

    logger.info(
        "bookings.created",
        extra={"booking_id": obj.id, "listing_id": listing.id, "guest_id": guest_id, "host_id": obj.host_id},
    )
    _notify(db, BookingStatus.PENDING, obj, listing, guest_id)
    return obj


def transition_status(db: Session, booking_id: int, requester_id: int, new_status) -> models.Booking:
    """
    Host-driven move along the transition table (confirm, reject, complete, cancel a confirmed stay).

    Raises NotFound, Forbidden (requester is not the booking's host) or InvalidTransition.
    """
    obj = _get_booking(db, booking_id)
    if not is_allowed(Operation.TRANSITION, obj, requester_id):
        raise Forbidden("Not authorized to update this booking")

    target = new_status.value if isinstance(new_status, BookingStatus) else str(new_status)
    current = obj.status
    if not can_transition(current, target):
        raise InvalidTransition(current, target)

    obj.status = target
    _commit(db, obj, "update booking status")

    logger.info(
        "bookings.status_changed",
        extra={"booking_id": obj.id, "from_status": current, "to_status": target, "user_id": requester_id},
    )
    _notify(db, BookingStatus(target), obj, obj.listing, requester_id)
    return obj


def cancel_booking(db: Session, booking_id: int, requester_id: int) -> models.Booking:
    """
    Cancel on behalf of the guest or the host, from any current status.

    The transition table is not consulted. The other party is notified.
    """
    obj = _get_booking(db, booking_id)
    if not is_allowed(Operation.CANCEL, obj, requester_id):
        raise Forbidden("Not authorized to cancel this booking")

    previous = obj.status
    obj.status = BookingStatus.CANCELLED.value
    _commit(db, obj, "cancel booking")

    logger.info(
        "bookings.cancelled",
        extra={"booking_id": obj.id, "from_status": previous, "user_id": requester_id},
    )
    _notify(db, BookingStatus.CANCELLED, obj, obj.listing, requester_id)
    return obj


def delete_booking(db: Session, booking_id: int, requester_id: int) -> None:
    """
    Permanently remove a booking on behalf of the guest or the host.

    The other party gets a 'cancelled' notification before the row is removed;
    that notification keeps a booking_id that no longer resolves.
    """
    obj = _get_booking(db, booking_id)
    if not is_allowed(Operation.DELETE, obj, requester_id):
        raise Forbidden("Not authorized to delete this booking")

    _notify(db, BookingStatus.CANCELLED, obj, obj.listing, requester_id)

    db.delete(obj)
    _commit(db, None, "delete booking")
    logger.info("bookings.deleted", extra={"booking_id": booking_id, "user_id": requester_id})


def _newest_first(q):
    return q.order_by(models.Booking.created_at.desc(), models.Booking.id.desc())


def list_bookings_for_guest(db: Session, guest_id: int) -> List[models.Booking]:
    q = db.query(models.Booking).filter(models.Booking.guest_id == guest_id)
    return _newest_first(q).all()


def list_bookings_for_host(db: Session, host_id: int) -> List[models.Booking]:
    q = db.query(models.Booking).filter(models.Booking.host_id == host_id)
    return _newest_first(q).all()


def list_bookings_for_listing(db: Session, listing_id: int, requester_id: int) -> List[models.Booking]:
    """Bookings of one listing, visible to its owner only."""
    listing = _get_listing(db, listing_id)
    if not owns_listing(listing, requester_id):
        raise Forbidden("Not authorized to view these bookings")
    q = db.query(models.Booking).filter(models.Booking.listing_id == listing_id)
    return _newest_first(q).all()

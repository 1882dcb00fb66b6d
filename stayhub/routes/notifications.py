# Notification endpoints for the signed-in recipient: list, read flags, unread count.
# Notifications are only ever created by the booking workflow (see notifier.py).
from typing import List
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..errors import NotFound
from ..rate_limit import rate_limit
from .auth import get_current_user

router = APIRouter()
logger = logging.getLogger("stayhub.notifications")

# Size of the notification feed
FEED_LIMIT = 50


def to_read(n: models.Notification) -> schemas.NotificationRead:
    """Display-ready view; referenced rows that no longer exist render as null."""
    listing = n.listing
    booking = n.booking
    return schemas.NotificationRead(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        is_read=n.read,
        timestamp=n.created_at,
        listing_id=n.listing_id,
        booking_id=n.booking_id,
        listing=(
            schemas.NotificationListing(id=listing.id, title=listing.title, images=list(listing.images or []))
            if listing is not None
            else None
        ),
        booking=(
            schemas.NotificationBooking(
                id=booking.id,
                check_in=booking.check_in,
                check_out=booking.check_out,
                status=booking.status,
            )
            if booking is not None
            else None
        ),
    )


@router.get("/notifications", response_model=schemas.DataEnvelope[List[schemas.NotificationRead]])
def list_notifications(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    """The most recent notifications of the caller, newest first."""
    items = (
        db.query(models.Notification)
        .filter(models.Notification.recipient_id == user.id)
        .order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
        .limit(FEED_LIMIT)
        .all()
    )
    return {"data": [to_read(n) for n in items]}


@router.put(
    "/notifications/read-all",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def mark_all_read(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    updated = (
        db.query(models.Notification)
        .filter(models.Notification.recipient_id == user.id, models.Notification.read == False)  # noqa: E712
        .update({models.Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    logger.info("notifications.read_all", extra={"user_id": user.id, "updated": updated})
    return {"message": "All notifications marked as read"}


@router.put(
    "/notifications/{notification_id}/read",
    response_model=schemas.DataEnvelope[schemas.NotificationRead],
    dependencies=[Depends(rate_limit("write"))],
)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    # Lookup is scoped to the caller: someone else's notification is indistinguishable from a missing one
    n = (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id, models.Notification.recipient_id == user.id)
        .first()
    )
    if n is None:
        raise NotFound("Notification not found")
    n.read = True
    db.add(n)
    db.commit()
    db.refresh(n)
    return {"data": to_read(n)}


@router.get("/notifications/unread-count", response_model=schemas.DataEnvelope[schemas.UnreadCount])
def unread_count(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    count = (
        db.query(models.Notification)
        .filter(models.Notification.recipient_id == user.id, models.Notification.read == False)  # noqa: E712
        .count()
    )
    return {"data": {"count": count}}

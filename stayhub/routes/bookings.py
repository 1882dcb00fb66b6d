# Booking endpoints: thin HTTP wrappers around booking_engine.
# Domain errors propagate to the handlers registered in main.py.
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import booking_engine, models, schemas
from ..rate_limit import rate_limit
from .auth import get_current_user

router = APIRouter()


def _read(obj: models.Booking) -> schemas.BookingRead:
    return schemas.BookingRead.model_validate(obj)


@router.post(
    "/bookings",
    response_model=schemas.DataEnvelope[schemas.BookingRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    obj = booking_engine.create_booking(
        db,
        listing_id=payload.listing_id,
        guest_id=user.id,
        check_in=payload.check_in,
        check_out=payload.check_out,
        number_of_guests=payload.number_of_guests,
        special_requests=payload.special_requests,
        total_price=payload.total_price,
    )
    return {"data": _read(obj)}


@router.get("/bookings/user", response_model=schemas.DataEnvelope[List[schemas.BookingRead]])
def list_guest_bookings(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    items = booking_engine.list_bookings_for_guest(db, user.id)
    return {"data": [_read(b) for b in items]}


@router.get("/bookings/host", response_model=schemas.DataEnvelope[List[schemas.BookingRead]])
def list_host_bookings(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    items = booking_engine.list_bookings_for_host(db, user.id)
    return {"data": [_read(b) for b in items]}


@router.get("/bookings/listing/{listing_id}", response_model=schemas.DataEnvelope[List[schemas.BookingRead]])
def list_listing_bookings(
    listing_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    items = booking_engine.list_bookings_for_listing(db, listing_id, user.id)
    return {"data": [_read(b) for b in items]}


@router.patch(
    "/bookings/{booking_id}/status",
    response_model=schemas.DataEnvelope[schemas.BookingRead],
    dependencies=[Depends(rate_limit("write"))],
)
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    obj = booking_engine.transition_status(db, booking_id, user.id, payload.status)
    return {"data": _read(obj)}


@router.delete(
    "/bookings/{booking_id}",
    response_model=schemas.MessageEnvelope[schemas.BookingRead],
    dependencies=[Depends(rate_limit("write"))],
)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    obj = booking_engine.cancel_booking(db, booking_id, user.id)
    return {"message": "Booking cancelled successfully", "data": _read(obj)}


@router.delete(
    "/bookings/{booking_id}/permanent",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    booking_engine.delete_booking(db, booking_id, user.id)
    return {"message": "Booking deleted successfully"}

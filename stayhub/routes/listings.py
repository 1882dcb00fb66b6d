# Listing endpoints: public browsing, host-managed CRUD and guest reviews.
from typing import List, Literal, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..errors import Conflict, Forbidden, NotFound
from ..policy import owns_listing
from ..rate_limit import rate_limit
from ..reviews import recompute_rating
from .auth import get_current_user, require_host

router = APIRouter()
logger = logging.getLogger("stayhub.listings")

SortBy = Literal["newest", "price_asc", "price_desc", "rating"]

_ORDERING = {
    "newest": (models.Listing.created_at.desc(), models.Listing.id.desc()),
    "price_asc": (models.Listing.price_per_night.asc(), models.Listing.id.desc()),
    "price_desc": (models.Listing.price_per_night.desc(), models.Listing.id.desc()),
    "rating": (models.Listing.rating.desc(), models.Listing.id.desc()),
}


def _get_listing(db: Session, listing_id: int) -> models.Listing:
    listing = db.get(models.Listing, listing_id)
    if listing is None:
        raise NotFound("Listing not found")
    return listing


def _get_owned_listing(db: Session, listing_id: int, user: models.User, action: str) -> models.Listing:
    listing = _get_listing(db, listing_id)
    if not owns_listing(listing, user.id):
        raise Forbidden(f"Not authorized to {action} this listing")
    return listing


@router.get("/listings", response_model=schemas.DataEnvelope[List[schemas.ListingRead]])
def list_listings(
    location: Optional[str] = Query(None, max_length=120),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    sort_by: SortBy = Query("newest"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """
    Browse listings.

    Filters:
    - location: case-insensitive substring of address, city, state or country
    - min_price / max_price: bounds on price_per_night
    - min_rating: lower bound on the aggregate rating
    """
    q = db.query(models.Listing)
    if location:
        pattern = f"%{location.strip()}%"
        q = q.filter(
            or_(
                models.Listing.address.ilike(pattern),
                models.Listing.city.ilike(pattern),
                models.Listing.state.ilike(pattern),
                models.Listing.country.ilike(pattern),
            )
        )
    if min_price is not None:
        q = q.filter(models.Listing.price_per_night >= min_price)
    if max_price is not None:
        q = q.filter(models.Listing.price_per_night <= max_price)
    if min_rating is not None:
        q = q.filter(models.Listing.rating >= min_rating)

    items = q.order_by(*_ORDERING[sort_by]).offset(offset).limit(limit).all()
    return {"data": [schemas.ListingRead.model_validate(i) for i in items]}


@router.get("/listings/mine", response_model=schemas.DataEnvelope[List[schemas.ListingRead]])
def list_my_listings(db: Session = Depends(get_db), user: models.User = Depends(require_host)):
    items = (
        db.query(models.Listing)
        .filter(models.Listing.owner_id == user.id)
        .order_by(models.Listing.created_at.desc(), models.Listing.id.desc())
        .all()
    )
    return {"data": [schemas.ListingRead.model_validate(i) for i in items]}


@router.get("/listings/{listing_id}", response_model=schemas.DataEnvelope[schemas.ListingDetail])
def get_listing(listing_id: int, db: Session = Depends(get_db)):
    listing = _get_listing(db, listing_id)
    return {"data": schemas.ListingDetail.model_validate(listing)}


@router.post(
    "/listings",
    response_model=schemas.DataEnvelope[schemas.ListingRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_listing(
    payload: schemas.ListingCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_host),
):
    """Create a listing owned by the authenticated host."""
    obj = models.Listing(owner_id=user.id, **payload.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("listings.created", extra={"listing_id": obj.id, "owner_id": user.id})
    return {"data": schemas.ListingRead.model_validate(obj)}


@router.put(
    "/listings/{listing_id}",
    response_model=schemas.DataEnvelope[schemas.ListingRead],
    dependencies=[Depends(rate_limit("write"))],
)
def update_listing(
    listing_id: int,
    payload: schemas.ListingUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    obj = _get_owned_listing(db, listing_id, user, "update")
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field not in ("latitude", "longitude"):
            continue
        setattr(obj, field, value)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return {"data": schemas.ListingRead.model_validate(obj)}


@router.delete(
    "/listings/{listing_id}",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_listing(
    listing_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Delete a listing together with its bookings and reviews."""
    obj = _get_owned_listing(db, listing_id, user, "delete")
    db.delete(obj)
    db.commit()
    logger.info("listings.deleted", extra={"listing_id": listing_id, "owner_id": user.id})
    return {"message": "Listing deleted successfully"}


@router.post(
    "/listings/{listing_id}/reviews",
    response_model=schemas.DataEnvelope[schemas.ListingDetail],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def add_review(
    listing_id: int,
    payload: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Add the caller's review and refresh the listing's aggregate rating. One review per user."""
    listing = _get_listing(db, listing_id)
    if owns_listing(listing, user.id):
        raise Forbidden("Hosts cannot review their own listing")

    existing = (
        db.query(models.Review.id)
        .filter(models.Review.listing_id == listing_id, models.Review.user_id == user.id)
        .first()
    )
    if existing:
        raise Conflict("You have already reviewed this listing")

    db.add(models.Review(listing_id=listing_id, user_id=user.id, rating=payload.rating, comment=payload.comment))
    db.flush()
    recompute_rating(db, listing)
    db.commit()
    db.refresh(listing)
    return {"data": schemas.ListingDetail.model_validate(listing)}

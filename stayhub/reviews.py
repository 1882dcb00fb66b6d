# Review aggregates kept denormalised on listings.
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models


def recompute_rating(db: Session, listing: models.Listing) -> None:
    """Set listing.rating to the mean review rating (0 without reviews), rounded to one decimal."""
    avg = db.query(func.avg(models.Review.rating)).filter(models.Review.listing_id == listing.id).scalar()
    listing.rating = round(float(avg), 1) if avg is not None else 0.0


def recompute_ratings(db: Session, listing_ids: Iterable[int]) -> None:
    for listing_id in set(listing_ids):
        listing = db.get(models.Listing, listing_id)
        if listing is not None:
            recompute_rating(db, listing)

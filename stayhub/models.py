# SQLAlchemy ORM models: users, listings, reviews, bookings, notifications.
# Lifecycle rules live in policy.py and booking_engine.py, not on the models.
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_mixin, relationship

from .db import Base
from .policy import BookingStatus, PaymentStatus


@declarative_mixin
class TimestampMixin:
    """Database-managed timestamps.

    - created_at: set on insert
    - updated_at: set on insert and refreshed on every update
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class User(Base, TimestampMixin):
    """Marketplace account.

    Roles:
    - guest: books listings and leaves reviews
    - host: additionally lists properties and manages their bookings
    - admin: treated as a host for listing management
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True, default="guest")
    phone = Column(String(40), nullable=True)
    bio = Column(Text, nullable=True)
    avatar = Column(String(500), nullable=True)


class Listing(Base, TimestampMixin):
    """Bookable property owned by a host."""
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    address = Column(String(255), nullable=False, default="")
    city = Column(String(120), nullable=False, default="", index=True)
    state = Column(String(120), nullable=False, default="")
    country = Column(String(120), nullable=False, default="")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    amenities = Column(JSON, nullable=False, default=list)
    price_per_night = Column(Float, nullable=False)
    bedrooms = Column(Integer, nullable=False, default=1)
    bathrooms = Column(Integer, nullable=False, default=1)
    max_guests = Column(Integer, nullable=False, default=1)
    rating = Column(Float, nullable=False, default=0.0)

    owner = relationship("User")
    reviews = relationship(
        "Review",
        back_populates="listing",
        cascade="all, delete-orphan",
        order_by="Review.id.desc()",
    )
    bookings = relationship("Booking", back_populates="listing", cascade="all, delete-orphan")


class Review(Base, TimestampMixin):
    """Guest review of a listing; one per (listing, user)."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)

    listing = relationship("Listing", back_populates="reviews")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("listing_id", "user_id", name="uq_reviews_listing_user"),
    )


class Booking(Base, TimestampMixin):
    """Reservation of a listing by a guest.

    Status transitions are defined in policy.TRANSITIONS; cancellation bypasses the table.

    host_id is a point-in-time copy of the listing owner taken at creation.
    It is never re-derived, even if the listing changes hands later.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False, index=True)
    guest_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    number_of_guests = Column(Integer, nullable=False, default=1)
    total_price = Column(Float, nullable=False)
    special_requests = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    listing = relationship("Listing", back_populates="bookings")
    guest = relationship("User", foreign_keys=[guest_id])
    host = relationship("User", foreign_keys=[host_id])

    # Projections: per guest, per host and per listing, newest first
    __table_args__ = (
        Index("ix_bookings_guest_created", "guest_id", "created_at"),
        Index("ix_bookings_host_created", "host_id", "created_at"),
        Index("ix_bookings_listing_created", "listing_id", "created_at"),
        Index("ix_bookings_status", "status"),
    )


class Notification(Base):
    """Recipient-addressed record of a booking event.

    listing_id and booking_id are plain references, not foreign keys: a hard-deleted
    booking leaves its notifications in place with a dangling booking_id.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    listing_id = Column(Integer, nullable=True, index=True)
    booking_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    listing = relationship(
        "Listing",
        primaryjoin="foreign(Notification.listing_id) == Listing.id",
        viewonly=True,
    )
    booking = relationship(
        "Booking",
        primaryjoin="foreign(Notification.booking_id) == Booking.id",
        viewonly=True,
    )

    __table_args__ = (
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
        Index("ix_notifications_recipient_read", "recipient_id", "read"),
    )

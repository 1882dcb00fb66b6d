# Pydantic models (request/response DTOs) used by the API layer.
# Keep models minimal and serializable; lifecycle rules live in booking_engine/policy.
from pydantic import BaseModel, Field, ConfigDict, field_validator, EmailStr
from typing import Generic, List, Literal, Optional, TypeVar
from datetime import date, datetime

from .policy import BookingStatus

T = TypeVar("T")


# Success envelope shared by every endpoint: {"data": ...}
class DataEnvelope(BaseModel, Generic[T]):
    data: T


# Success envelope for operations that also report a human-readable outcome
class MessageEnvelope(BaseModel, Generic[T]):
    message: str
    data: T


class MessageResponse(BaseModel):
    message: str


def _strip(v):
    if isinstance(v, str):
        v = v.strip()
    return v


# Authentication and user models

# User roles within the marketplace
Role = Literal["guest", "host", "admin"]


# Request payload for user registration
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Role = "guest"

    # Normalize email input to lowercase without surrounding whitespace
    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
        return v

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip(v)


# Request payload for logging in
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
        return v


# Partial profile update; omitted fields are left untouched
class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=40)
    bio: Optional[str] = None
    avatar: Optional[str] = Field(None, max_length=500)


# API response for a user record
class UserRead(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: Role
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# Public user card embedded in listings, bookings and reviews
class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


# OAuth2-style token response bundled with the current user profile
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


# Listings

class ListingBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    price_per_night: float = Field(..., ge=0)
    bedrooms: int = Field(1, ge=1)
    bathrooms: int = Field(1, ge=1)
    max_guests: int = Field(1, ge=1)

    @field_validator("title", "city", "country", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        # Trim surrounding whitespace before validation
        return _strip(v)


# Payload for creating a new listing
class ListingCreate(ListingBase):
    pass


# Partial listing update; only provided fields are written
class ListingUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    images: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    price_per_night: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=1)
    bathrooms: Optional[int] = Field(None, ge=1)
    max_guests: Optional[int] = Field(None, ge=1)


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=2000)

    @field_validator("comment", mode="before")
    @classmethod
    def strip_comment(cls, v: str) -> str:
        return _strip(v)


class ReviewRead(BaseModel):
    id: int
    rating: int
    comment: str
    user: UserSummary
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Response shape when reading a listing from the API
class ListingRead(ListingBase):
    id: int
    owner_id: int
    rating: float
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Listing detail additionally carries the owner card and reviews
class ListingDetail(ListingRead):
    owner: Optional[UserSummary] = None
    reviews: List[ReviewRead] = Field(default_factory=list)


# Listing card embedded in booking responses
class ListingSummary(BaseModel):
    id: int
    title: str
    city: str
    country: str
    images: List[str]
    price_per_night: float

    model_config = ConfigDict(from_attributes=True)


# Bookings

# Request payload for creating a booking; omitted guests/price fall back to defaults
class BookingCreate(BaseModel):
    listing_id: int = Field(..., ge=1)
    check_in: date
    check_out: date
    number_of_guests: Optional[int] = Field(None, ge=0)  # 0 means unspecified
    special_requests: Optional[str] = Field(None, max_length=2000)
    total_price: Optional[float] = Field(None, ge=0)


# Host-driven status change. Any non-empty string is accepted here; the
# transition table decides, after the existence and ownership checks.
class BookingStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


# API response for a booking record
class BookingRead(BaseModel):
    id: int
    listing_id: int
    guest_id: int
    host_id: int
    check_in: date
    check_out: date
    number_of_guests: int
    total_price: float
    special_requests: str = ""
    status: BookingStatus
    payment_status: Literal["pending", "paid", "refunded"]
    created_at: datetime
    updated_at: datetime
    listing: Optional[ListingSummary] = None
    guest: Optional[UserSummary] = None
    host: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)


# Notifications

class NotificationListing(BaseModel):
    id: int
    title: str
    images: List[str]


class NotificationBooking(BaseModel):
    id: int
    check_in: date
    check_out: date
    status: BookingStatus


# Display-ready notification with expanded listing/booking summaries
class NotificationRead(BaseModel):
    id: int
    type: str
    title: str
    message: str
    is_read: bool
    timestamp: datetime
    listing_id: Optional[int] = None
    booking_id: Optional[int] = None
    listing: Optional[NotificationListing] = None
    booking: Optional[NotificationBooking] = None


class UnreadCount(BaseModel):
    count: int

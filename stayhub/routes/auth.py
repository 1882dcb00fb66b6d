from __future__ import annotations

import logging
import os
import time
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, Header, status
from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..errors import Conflict, Forbidden, Unauthenticated
from ..rate_limit import rate_limit
from ..reviews import recompute_ratings

router = APIRouter()
logger = logging.getLogger("stayhub.auth")

JWT_SECRET: str = os.getenv("STAYHUB_JWT_SECRET", "dev-secret-change-me")
JWT_ALG: str = "HS256"
JWT_TTL_SECONDS: int = int(os.getenv("STAYHUB_JWT_TTL_SECONDS", str(60 * 60 * 24 * 7)))
# bcrypt_sha256 sidesteps bcrypt's 72-byte input limit
pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")

# Roles allowed to create and manage listings
HOST_ROLES = ("host", "admin")


# ----------------
# Helpers
# ----------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(*, user: models.User) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + JWT_TTL_SECONDS,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except jwt.ExpiredSignatureError as exc:
        raise Unauthenticated("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise Unauthenticated("Invalid token") from exc


def _token_response(user: models.User) -> schemas.TokenResponse:
    return schemas.TokenResponse(
        access_token=create_access_token(user=user),
        user=schemas.UserRead.model_validate(user),
    )


# ----------------
# Dependencies
# ----------------
def bearer_token_from_auth_header(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated("Not authorized, no token")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise Unauthenticated("Invalid Authorization header")
    return parts[1].strip()


def _user_from_payload(db: Session, payload: dict) -> Optional[models.User]:
    user_id = payload.get("sub")
    try:
        return db.get(models.User, int(user_id)) if user_id else None
    except (TypeError, ValueError):
        return None


def get_current_user(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> models.User:
    token = bearer_token_from_auth_header(authorization)
    user = _user_from_payload(db, decode_token(token))
    if not user:
        raise Unauthenticated("Not authorized, user not found")
    return user


def get_current_user_optional(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Optional[models.User]:
    """
    The current user when a valid Bearer token is present, otherwise None.

    For public endpoints that personalise their output for signed-in callers.
    """
    if not authorization:
        return None
    try:
        token = bearer_token_from_auth_header(authorization)
        return _user_from_payload(db, decode_token(token))
    except Unauthenticated:
        # Invalid tokens on optional-auth endpoints are treated as anonymous
        return None


def require_host(user: models.User = Depends(get_current_user)) -> models.User:
    if user.role not in HOST_ROLES:
        raise Forbidden("Host role required")
    return user


# ----------------
# Routes
# ----------------
@router.post(
    "/auth/signup",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("signup"))],
)
def signup(payload: schemas.UserCreate, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    existing = db.query(models.User).filter(models.User.email == payload.email).first()
    if existing:
        raise Conflict("Email already registered")

    user = models.User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("auth.signup", extra={"user_id": user.id, "role": user.role})
    return _token_response(user)


@router.post(
    "/auth/login",
    response_model=schemas.TokenResponse,
    dependencies=[Depends(rate_limit("login"))],
)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    user = db.query(models.User).filter(models.User.email == payload.email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")
    return _token_response(user)


@router.get("/auth/me", response_model=schemas.DataEnvelope[schemas.UserRead])
def get_profile(user: models.User = Depends(get_current_user)):
    return {"data": schemas.UserRead.model_validate(user)}


@router.put(
    "/auth/me",
    response_model=schemas.DataEnvelope[schemas.UserRead],
    dependencies=[Depends(rate_limit("write"))],
)
def update_profile(
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(user, field, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"data": schemas.UserRead.model_validate(user)}


@router.delete(
    "/auth/me",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_profile(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    """
    Delete the caller's account together with everything that references it.

    - owned listings, cascading to their bookings and reviews
    - bookings where the caller is the guest or the recorded host
    - the caller's reviews on other listings, whose ratings are recomputed
    - the caller's notifications

    No notifications are sent for the removed bookings.
    """
    owned = db.query(models.Listing).filter(models.Listing.owner_id == user.id).all()
    owned_ids = {listing.id for listing in owned}
    for listing in owned:
        db.delete(listing)

    reviewed_ids = [
        listing_id
        for (listing_id,) in db.query(models.Review.listing_id).filter(models.Review.user_id == user.id)
        if listing_id not in owned_ids
    ]
    db.query(models.Review).filter(
        models.Review.user_id == user.id,
        models.Review.listing_id.notin_(sorted(owned_ids)),
    ).delete(synchronize_session=False)
    db.query(models.Booking).filter(
        or_(models.Booking.guest_id == user.id, models.Booking.host_id == user.id),
        models.Booking.listing_id.notin_(sorted(owned_ids)),
    ).delete(synchronize_session=False)
    db.query(models.Notification).filter(models.Notification.recipient_id == user.id).delete(
        synchronize_session=False
    )
    db.flush()
    recompute_ratings(db, reviewed_ids)

    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info(
        "auth.account_deleted",
        extra={"user_id": user_id, "listings": len(owned_ids), "reviews": len(reviewed_ids)},
    )
    return {"message": "User deleted successfully"}

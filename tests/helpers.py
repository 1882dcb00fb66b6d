# Shared helpers for HTTP-level and session-level tests.
from __future__ import annotations

from typing import Optional, Tuple

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from stayhub import models


# Helper: create a user over HTTP and return (access_token, user JSON)
def signup(client: TestClient, email: str, role: Optional[str] = None, name: str = "Test User", password: str = "changeme123") -> Tuple[str, dict]:
    payload = {"name": name, "email": email, "password": password}
    if role:
        payload["role"] = role
    r = client.post("/auth/signup", json=payload)
    assert r.status_code == 201, r.text
    data = r.json()
    return data["access_token"], data["user"]


# Convenience header for authenticated requests
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# Helper: create a listing owned by the authenticated host
def create_listing(client: TestClient, token: str, title: str = "Beach House", price_per_night: float = 100, **extra) -> dict:
    payload = {"title": title, "price_per_night": price_per_night, "city": "Lisbon", "country": "Portugal", "max_guests": 4}
    payload.update(extra)
    r = client.post("/api/v1/listings", headers=auth_headers(token), json=payload)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def create_booking(client: TestClient, token: str, listing_id: int, check_in: str, check_out: str, **extra):
    payload = {"listing_id": listing_id, "check_in": check_in, "check_out": check_out}
    payload.update(extra)
    return client.post("/api/v1/bookings", headers=auth_headers(token), json=payload)


def notifications_for(client: TestClient, token: str) -> list:
    r = client.get("/api/v1/notifications", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    return r.json()["data"]


# Session-level fixtures: rows written straight through the ORM

def make_user(db: Session, email: str, role: str = "guest", name: str = "User") -> models.User:
    user = models.User(name=name, email=email, password_hash="x", role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_listing(db: Session, owner: models.User, title: str = "Cabin", price_per_night: float = 100) -> models.Listing:
    listing = models.Listing(owner_id=owner.id, title=title, price_per_night=price_per_night, images=["https://img/1.jpg"], amenities=[])
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


def notifications_of(db: Session, user_id: int) -> list:
    return (
        db.query(models.Notification)
        .filter(models.Notification.recipient_id == user_id)
        .order_by(models.Notification.id.asc())
        .all()
    )

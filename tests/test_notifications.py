# Notifications HTTP API: feed shape and ordering, read flags, unread count and ownership.
from __future__ import annotations

from fastapi.testclient import TestClient

from stayhub import models
from stayhub.db import SessionLocal

from helpers import auth_headers, create_booking, create_listing, notifications_for, signup


def _unread(client: TestClient, token: str) -> int:
    r = client.get("/api/v1/notifications/unread-count", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    return r.json()["data"]["count"]


def _seed(client: TestClient, bookings: int = 2):
    host_token, host = signup(client, "host@example.com", "host")
    guest_token, guest = signup(client, "guest@example.com")
    listing = create_listing(client, host_token, "Lake Cabin", 80, images=["https://img.example/lake.jpg"])
    for i in range(bookings):
        r = create_booking(client, guest_token, listing["id"], f"2024-0{i + 1}-01", f"2024-0{i + 1}-05")
        assert r.status_code == 201, r.text
    return host_token, host, guest_token, guest, listing


def test_feed_is_expanded_and_newest_first(client: TestClient):
    host_token, _, _, _, listing = _seed(client, bookings=2)

    feed = notifications_for(client, host_token)

    assert len(feed) == 2
    assert feed[0]["id"] > feed[1]["id"]
    first = feed[0]
    assert first["type"] == "pending"
    assert first["is_read"] is False
    assert first["message"] == "New booking request for Lake Cabin from 2024-02-01 to 2024-02-05."
    assert first["listing"] == {"id": listing["id"], "title": "Lake Cabin", "images": ["https://img.example/lake.jpg"]}
    assert first["booking"]["check_in"] == "2024-02-01"
    assert first["booking"]["check_out"] == "2024-02-05"
    assert first["booking"]["status"] == "pending"
    assert "timestamp" in first


def test_feed_is_capped_at_fifty(client: TestClient):
    host_token, host, _, _, listing = _seed(client, bookings=0)
    db = SessionLocal()
    try:
        for i in range(55):
            db.add(models.Notification(recipient_id=host["id"], type="info", title=f"Notice {i}", message="m", listing_id=listing["id"]))
        db.commit()
    finally:
        db.close()

    feed = notifications_for(client, host_token)
    assert len(feed) == 50
    assert feed[0]["title"] == "Notice 54"
    assert _unread(client, host_token) == 55


def test_mark_read_and_unread_count(client: TestClient):
    host_token, _, _, _, _ = _seed(client, bookings=2)
    assert _unread(client, host_token) == 2

    target = notifications_for(client, host_token)[0]
    r = client.put(f"/api/v1/notifications/{target['id']}/read", headers=auth_headers(host_token))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["is_read"] is True
    assert _unread(client, host_token) == 1


def test_mark_read_of_someone_elses_notification_is_not_found(client: TestClient):
    host_token, _, guest_token, _, _ = _seed(client, bookings=1)
    target = notifications_for(client, host_token)[0]

    r = client.put(f"/api/v1/notifications/{target['id']}/read", headers=auth_headers(guest_token))
    assert r.status_code == 404
    assert r.json() == {"message": "Notification not found", "error": "not_found"}

    missing = client.put("/api/v1/notifications/99999/read", headers=auth_headers(guest_token))
    assert missing.status_code == 404
    assert missing.json() == r.json()
    assert _unread(client, host_token) == 1


def test_mark_all_read_is_idempotent(client: TestClient):
    host_token, _, guest_token, _, _ = _seed(client, bookings=3)
    assert _unread(client, host_token) == 3

    for _ in range(2):
        r = client.put("/api/v1/notifications/read-all", headers=auth_headers(host_token))
        assert r.status_code == 200, r.text
        assert r.json() == {"message": "All notifications marked as read"}
        assert _unread(client, host_token) == 0

    # Nothing unread at all is still a success
    r = client.put("/api/v1/notifications/read-all", headers=auth_headers(guest_token))
    assert r.status_code == 200


def test_notifications_require_authentication(client: TestClient):
    assert client.get("/api/v1/notifications").status_code == 401
    assert client.get("/api/v1/notifications/unread-count").status_code == 401
    r = client.put("/api/v1/notifications/read-all", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"

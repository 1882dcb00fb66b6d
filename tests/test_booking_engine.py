# Booking lifecycle engine driven directly through a session: validation, transitions,
# cancellation, hard deletion, projections and the notifications each step emits.
from __future__ import annotations

from datetime import date

import pytest

from stayhub import booking_engine, models
from stayhub.errors import Forbidden, InvalidRange, InvalidTransition, NotFound
from stayhub.policy import BookingStatus

from helpers import make_listing, make_user, notifications_of

JUNE_1, JUNE_4, JUNE_5 = date(2024, 6, 1), date(2024, 6, 4), date(2024, 6, 5)


@pytest.fixture()
def parties(db):
    host = make_user(db, "host@example.com", role="host")
    guest = make_user(db, "guest@example.com")
    stranger = make_user(db, "stranger@example.com")
    listing = make_listing(db, host, title="Cabin", price_per_night=100)
    return host, guest, stranger, listing


def _book(db, listing, guest, **kwargs):
    return booking_engine.create_booking(
        db, listing_id=listing.id, guest_id=guest.id, check_in=JUNE_1, check_out=JUNE_4, **kwargs
    )


# Scenario: no total price given -> listing price, pending, one host notification
def test_create_booking_defaults_and_host_notification(db, parties):
    host, guest, _, listing = parties

    booking = _book(db, listing, guest)

    assert booking.status == "pending"
    assert booking.total_price == 100
    assert booking.number_of_guests == 1
    assert booking.special_requests == ""
    assert booking.payment_status == "pending"
    assert booking.host_id == host.id

    host_notes = notifications_of(db, host.id)
    assert len(host_notes) == 1
    assert host_notes[0].title == "New Booking Request"
    assert host_notes[0].type == "pending"
    assert host_notes[0].message == "New booking request for Cabin from 2024-06-01 to 2024-06-04."
    assert host_notes[0].booking_id == booking.id
    assert host_notes[0].listing_id == listing.id
    assert notifications_of(db, guest.id) == []


def test_create_booking_keeps_explicit_values(db, parties):
    _, guest, _, listing = parties
    booking = _book(db, listing, guest, number_of_guests=3, total_price=275.5, special_requests="Late arrival")
    assert booking.number_of_guests == 3
    assert booking.total_price == 275.5
    assert booking.special_requests == "Late arrival"


def test_create_booking_accepts_zero_total_price(db, parties):
    _, guest, _, listing = parties
    assert _book(db, listing, guest, total_price=0).total_price == 0


@pytest.mark.parametrize("check_in,check_out", [(JUNE_5, JUNE_5), (JUNE_5, JUNE_1)])
def test_create_booking_rejects_empty_or_reversed_range(db, parties, check_in, check_out):
    _, guest, _, listing = parties
    with pytest.raises(InvalidRange):
        booking_engine.create_booking(db, listing_id=listing.id, guest_id=guest.id, check_in=check_in, check_out=check_out)
    assert db.query(models.Booking).count() == 0
    assert db.query(models.Notification).count() == 0


def test_create_booking_unknown_listing(db, parties):
    _, guest, _, _ = parties
    with pytest.raises(NotFound):
        booking_engine.create_booking(db, listing_id=9999, guest_id=guest.id, check_in=JUNE_1, check_out=JUNE_4)


def test_host_is_a_snapshot_of_the_owner(db, parties):
    host, guest, stranger, listing = parties
    booking = _book(db, listing, guest)

    listing.owner_id = stranger.id
    db.commit()
    db.refresh(booking)

    assert booking.host_id == host.id
    # The original host keeps control of the booking
    with pytest.raises(Forbidden):
        booking_engine.transition_status(db, booking.id, stranger.id, "confirmed")
    assert booking_engine.transition_status(db, booking.id, host.id, "confirmed").status == "confirmed"


# Scenario: host confirms a pending booking -> guest notified
def test_confirm_notifies_guest(db, parties):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)

    updated = booking_engine.transition_status(db, booking.id, host.id, BookingStatus.CONFIRMED)

    assert updated.status == "confirmed"
    guest_notes = notifications_of(db, guest.id)
    assert [n.title for n in guest_notes] == ["Booking Confirmed"]
    assert guest_notes[0].message == "Your booking for Cabin has been confirmed for 2024-06-01 to 2024-06-04."


def test_reject_notifies_guest(db, parties):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)

    booking_engine.transition_status(db, booking.id, host.id, "rejected")

    guest_notes = notifications_of(db, guest.id)
    assert [(n.type, n.title) for n in guest_notes] == [("rejected", "Booking Declined")]
    assert guest_notes[0].message == "Your booking request for Cabin has been declined."


def test_complete_notifies_guest_and_host(db, parties):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)
    booking_engine.transition_status(db, booking.id, host.id, "confirmed")
    before = db.query(models.Notification).count()

    booking_engine.transition_status(db, booking.id, host.id, "completed")

    completed = db.query(models.Notification).filter(models.Notification.type == "completed").all()
    assert db.query(models.Notification).count() == before + 2
    assert sorted(n.recipient_id for n in completed) == sorted([guest.id, host.id])
    messages = {n.recipient_id: n.message for n in completed}
    assert messages[guest.id] == "Your stay at Cabin has been completed."
    assert messages[host.id] == "The stay at Cabin has been completed."


# Scenario: host cannot jump pending -> cancelled through the transition table
def test_transition_outside_table_fails(db, parties):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)

    with pytest.raises(InvalidTransition) as excinfo:
        booking_engine.transition_status(db, booking.id, host.id, "cancelled")
    assert excinfo.value.message == "Invalid status transition from pending to cancelled"

    with pytest.raises(InvalidTransition):
        booking_engine.transition_status(db, booking.id, host.id, "completed")

    db.refresh(booking)
    assert booking.status == "pending"


@pytest.mark.parametrize("terminal", ["rejected", "completed", "cancelled"])
def test_terminal_statuses_accept_no_transition(db, parties, terminal):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)
    booking.status = terminal
    db.commit()

    for target in BookingStatus:
        with pytest.raises(InvalidTransition):
            booking_engine.transition_status(db, booking.id, host.id, target)


def test_transition_requires_host(db, parties):
    _, guest, stranger, listing = parties
    booking = _book(db, listing, guest)
    for user in (guest, stranger):
        with pytest.raises(Forbidden):
            booking_engine.transition_status(db, booking.id, user.id, "confirmed")


def test_transition_unknown_booking(db, parties):
    host, _, _, _ = parties
    with pytest.raises(NotFound):
        booking_engine.transition_status(db, 424242, host.id, "confirmed")


@pytest.mark.parametrize("status", [s.value for s in BookingStatus])
@pytest.mark.parametrize("who", ["guest", "host"])
def test_cancel_from_any_status_by_either_party(db, parties, status, who):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)
    booking.status = status
    db.commit()
    actor, other = (guest, host) if who == "guest" else (host, guest)
    before = len(notifications_of(db, other.id))

    cancelled = booking_engine.cancel_booking(db, booking.id, actor.id)

    assert cancelled.status == "cancelled"
    other_notes = notifications_of(db, other.id)
    assert len(other_notes) == before + 1
    assert other_notes[-1].title == "Booking Cancelled"
    assert other_notes[-1].message == "A booking for Cabin has been cancelled."


# Scenario: a third party cannot cancel
def test_cancel_by_stranger_is_forbidden(db, parties):
    _, guest, stranger, listing = parties
    booking = _book(db, listing, guest)
    with pytest.raises(Forbidden):
        booking_engine.cancel_booking(db, booking.id, stranger.id)
    db.refresh(booking)
    assert booking.status == "pending"


def test_delete_removes_booking_and_notifies_other_party(db, parties):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)
    booking_id = booking.id

    booking_engine.delete_booking(db, booking_id, guest.id)

    assert db.get(models.Booking, booking_id) is None
    host_notes = notifications_of(db, host.id)
    assert [n.type for n in host_notes] == ["pending", "cancelled"]
    # The notification outlives the booking it points at
    assert host_notes[-1].booking_id == booking_id
    assert all(n.type != "cancelled" for n in notifications_of(db, guest.id))


def test_delete_by_host_notifies_guest(db, parties):
    host, guest, _, listing = parties
    booking = _book(db, listing, guest)

    booking_engine.delete_booking(db, booking.id, host.id)

    assert [n.type for n in notifications_of(db, guest.id)] == ["cancelled"]


def test_delete_by_stranger_is_forbidden(db, parties):
    _, guest, stranger, listing = parties
    booking = _book(db, listing, guest)
    with pytest.raises(Forbidden):
        booking_engine.delete_booking(db, booking.id, stranger.id)
    assert db.get(models.Booking, booking.id) is not None


def test_projections_are_newest_first(db, parties):
    host, guest, stranger, listing = parties
    first = _book(db, listing, guest)
    second = _book(db, listing, guest, number_of_guests=2)
    other = _book(db, listing, stranger)

    assert [b.id for b in booking_engine.list_bookings_for_guest(db, guest.id)] == [second.id, first.id]
    assert [b.id for b in booking_engine.list_bookings_for_host(db, host.id)] == [other.id, second.id, first.id]
    assert [b.id for b in booking_engine.list_bookings_for_listing(db, listing.id, host.id)] == [other.id, second.id, first.id]
    assert booking_engine.list_bookings_for_host(db, guest.id) == []


def test_listing_projection_requires_owner(db, parties):
    _, guest, _, listing = parties
    with pytest.raises(Forbidden):
        booking_engine.list_bookings_for_listing(db, listing.id, guest.id)
    with pytest.raises(NotFound):
        booking_engine.list_bookings_for_listing(db, 9999, guest.id)


def test_guest_projection_round_trips_booking_fields(db, parties):
    _, guest, _, listing = parties
    created = _book(db, listing, guest, number_of_guests=2, total_price=321.0)

    (listed,) = booking_engine.list_bookings_for_guest(db, guest.id)

    assert (listed.check_in, listed.check_out, listed.number_of_guests, listed.total_price) == (
        created.check_in,
        created.check_out,
        2,
        321.0,
    )

"""
Tests for the reservation and cancellation endpoints.
"""

import pytest
from httpx import AsyncClient

from conftest import booking_payload


async def _book(client: AsyncClient, event_id: int, headers: dict, **overrides):
    return await client.post(
        f"/api/v1/events/{event_id}/book",
        json=booking_payload(**overrides),
        headers=headers,
    )


async def _available(client: AsyncClient, event_id: int) -> int:
    response = await client.get(f"/api/v1/events/{event_id}")
    return response.json()["data"]["availableSeats"]


@pytest.mark.asyncio
async def test_book_seats(client: AsyncClient, auth_headers, test_user, test_event):
    """Successful booking decrements available seats and confirms the booking."""
    response = await _book(client, test_event.id, auth_headers, numberOfTickets=3)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Booking successful!"
    data = body["data"]
    assert data["eventId"] == test_event.id
    assert data["userId"] == test_user.id
    assert data["numberOfTickets"] == 3
    assert data["status"] == "confirmed"
    assert data["attendeeName"] == "Ada Lovelace"
    assert data["event"]["title"] == "Test Concert"
    assert data["event"]["availableSeats"] == 47

    assert await _available(client, test_event.id) == 47


@pytest.mark.asyncio
async def test_book_defaults_to_one_ticket(client: AsyncClient, auth_headers, test_event):
    payload = booking_payload()
    del payload["numberOfTickets"]
    response = await client.post(f"/api/v1/events/{test_event.id}/book", json=payload, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["numberOfTickets"] == 1


@pytest.mark.asyncio
async def test_book_accepts_numeric_string(client: AsyncClient, auth_headers, test_event):
    response = await _book(client, test_event.id, auth_headers, numberOfTickets="2")
    assert response.status_code == 200
    assert response.json()["data"]["numberOfTickets"] == 2


@pytest.mark.asyncio
async def test_book_seats_unauthenticated(client: AsyncClient, test_event):
    response = await client.post(f"/api/v1/events/{test_event.id}/book", json=booking_payload())
    assert response.status_code == 401
    assert await _available(client, test_event.id) == 50


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["name", "email", "phone"])
async def test_book_requires_attendee_fields(client: AsyncClient, auth_headers, test_event, missing):
    response = await _book(client, test_event.id, auth_headers, **{missing: "  "})
    assert response.status_code == 400
    assert response.json()["error"] == "Please provide name, email, and phone number"


@pytest.mark.asyncio
async def test_book_rejects_invalid_email(client: AsyncClient, auth_headers, test_event):
    response = await _book(client, test_event.id, auth_headers, email="not-an-email")
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("field, value", [("name", "x" * 101), ("phone", "9" * 51)])
async def test_book_rejects_overlong_attendee_fields(client: AsyncClient, auth_headers, test_event, field, value):
    response = await _book(client, test_event.id, auth_headers, **{field: value})
    assert response.status_code == 400
    assert "can not be more than" in response.json()["error"]
    assert await _available(client, test_event.id) == 50

    mine = await client.get("/api/v1/bookings", headers=auth_headers)
    assert mine.json()["count"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("tickets", [0, -2, "abc"])
async def test_book_rejects_bad_ticket_count(client: AsyncClient, auth_headers, test_event, tickets):
    response = await _book(client, test_event.id, auth_headers, numberOfTickets=tickets)
    assert response.status_code == 400
    assert await _available(client, test_event.id) == 50


@pytest.mark.asyncio
async def test_book_seats_sold_out(client: AsyncClient, auth_headers, sold_out_event):
    response = await _book(client, sold_out_event.id, auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Only 0 seats available"


@pytest.mark.asyncio
async def test_book_too_many_seats_leaves_state_unchanged(client: AsyncClient, auth_headers, test_event):
    response = await _book(client, test_event.id, auth_headers, numberOfTickets=51)
    assert response.status_code == 400
    assert await _available(client, test_event.id) == 50

    listing = await client.get("/api/v1/bookings", headers=auth_headers)
    assert listing.json()["count"] == 0


@pytest.mark.asyncio
async def test_book_nonexistent_event(client: AsyncClient, auth_headers):
    response = await _book(client, 99999, auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, auth_headers, test_event):
    """Same user booking same event twice is a conflict; seats are taken once."""
    assert (await _book(client, test_event.id, auth_headers, numberOfTickets=2)).status_code == 200

    response = await _book(client, test_event.id, auth_headers, numberOfTickets=2)
    assert response.status_code == 409
    assert response.json()["error"] == "You have already booked this event"
    assert await _available(client, test_event.id) == 48


@pytest.mark.asyncio
async def test_cancel_booking_restores_seats(client: AsyncClient, auth_headers, test_user, test_event):
    booking_id = (await _book(client, test_event.id, auth_headers, numberOfTickets=3)).json()["data"]["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {
            "message": "Booking cancelled successfully",
            "bookingId": booking_id,
            "eventId": test_event.id,
            "seatsReturned": 3,
        },
    }
    assert await _available(client, test_event.id) == 50

    booking = (await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)).json()["data"]
    assert booking["status"] == "cancelled"
    assert booking["cancelledBy"] == test_user.id
    assert booking["cancelledAt"] is not None


@pytest.mark.asyncio
async def test_cancel_already_cancelled(client: AsyncClient, auth_headers, test_event):
    """Double-cancelling is a conflict and seats come back only once."""
    booking_id = (await _book(client, test_event.id, auth_headers, numberOfTickets=4)).json()["data"]["id"]

    assert (await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)).status_code == 200
    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "This booking has already been cancelled"
    assert await _available(client, test_event.id) == 50


@pytest.mark.asyncio
async def test_cannot_rebook_after_cancelling(client: AsyncClient, auth_headers, test_event):
    """Walks 50 -> 47 -> 50 and then refuses the second reservation."""
    booked = await _book(client, test_event.id, auth_headers, numberOfTickets=3)
    assert booked.json()["data"]["status"] == "confirmed"
    assert await _available(client, test_event.id) == 47

    booking_id = booked.json()["data"]["id"]
    await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert await _available(client, test_event.id) == 50

    response = await _book(client, test_event.id, auth_headers, numberOfTickets=3)
    assert response.status_code == 409
    assert "cannot book it again" in response.json()["error"]
    assert await _available(client, test_event.id) == 50


@pytest.mark.asyncio
async def test_cancel_missing_booking(client: AsyncClient, auth_headers):
    response = await client.delete("/api/v1/bookings/99999", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stranger_cannot_cancel(client: AsyncClient, auth_headers, other_headers, test_event):
    booking_id = (await _book(client, test_event.id, auth_headers, numberOfTickets=2)).json()["data"]["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=other_headers)
    assert response.status_code == 403
    assert await _available(client, test_event.id) == 48


@pytest.mark.asyncio
async def test_admin_can_cancel_any_booking(
    client: AsyncClient, auth_headers, admin_headers, admin_user, test_event
):
    booking_id = (await _book(client, test_event.id, auth_headers, numberOfTickets=2)).json()["data"]["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["seatsReturned"] == 2

    booking = (await client.get(f"/api/v1/bookings/{booking_id}", headers=admin_headers)).json()["data"]
    assert booking["cancelledBy"] == admin_user.id


@pytest.mark.asyncio
async def test_cancel_reports_only_seats_that_fit(client: AsyncClient, auth_headers, admin_headers, test_event):
    """An admin reopened seats by hand; cancelling can then only return what still fits."""
    booking_id = (await _book(client, test_event.id, auth_headers, numberOfTickets=10)).json()["data"]["id"]
    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"availableSeats": 45}, headers=admin_headers
    )
    assert response.status_code == 200

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["seatsReturned"] == 5
    assert await _available(client, test_event.id) == 50


@pytest.mark.asyncio
async def test_cancel_after_event_deleted(client: AsyncClient, auth_headers, admin_headers, test_event):
    """A booking whose event is gone can still be cancelled; no seats are returned."""
    booking_id = (await _book(client, test_event.id, auth_headers, numberOfTickets=2)).json()["data"]["id"]
    assert (await client.delete(f"/api/v1/events/{test_event.id}", headers=admin_headers)).status_code == 200

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["seatsReturned"] == 0
    assert data["eventId"] is None


@pytest.mark.asyncio
async def test_get_booking_owner_only(client: AsyncClient, auth_headers, other_headers, test_event):
    booking_id = (await _book(client, test_event.id, auth_headers)).json()["data"]["id"]

    own = await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert own.status_code == 200
    assert own.json()["data"]["event"]["id"] == test_event.id

    foreign = await client.get(f"/api/v1/bookings/{booking_id}", headers=other_headers)
    assert foreign.status_code == 403


@pytest.mark.asyncio
async def test_list_user_bookings(
    client: AsyncClient, auth_headers, other_headers, test_event, user_owned_event, last_seat_event
):
    """Only the requester's active bookings, newest first, with events populated."""
    first = (await _book(client, test_event.id, auth_headers)).json()["data"]["id"]
    second = (await _book(client, user_owned_event.id, auth_headers)).json()["data"]["id"]
    cancelled = (await _book(client, last_seat_event.id, auth_headers)).json()["data"]["id"]
    await client.delete(f"/api/v1/bookings/{cancelled}", headers=auth_headers)
    await _book(client, test_event.id, other_headers)

    response = await client.get("/api/v1/bookings", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [b["id"] for b in body["data"]] == [second, first]
    assert body["data"][0]["event"]["title"] == "Community Meetup"


@pytest.mark.asyncio
async def test_list_all_bookings_admin_only(
    client: AsyncClient, auth_headers, admin_headers, test_event, last_seat_event
):
    assert (await client.get("/api/v1/bookings/all", headers=auth_headers)).status_code == 403

    kept = (await _book(client, test_event.id, admin_headers)).json()["data"]["id"]
    dropped = (await _book(client, last_seat_event.id, admin_headers)).json()["data"]["id"]
    await client.delete(f"/api/v1/bookings/{dropped}", headers=admin_headers)

    response = await client.get("/api/v1/bookings/all", headers=admin_headers)
    assert response.status_code == 200
    statuses = {b["id"]: b["status"] for b in response.json()["data"]}
    assert statuses == {kept: "confirmed", dropped: "cancelled"}

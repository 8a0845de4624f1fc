"""
The event listing cache must be dropped only after the write is committed,
otherwise a listing running in between re-caches the old seat counts.
"""

import pytest
from httpx import AsyncClient

from eventbook.api.routes import bookings as booking_routes
from eventbook.api.routes import events as event_routes
from eventbook.models.event import Event
from conftest import booking_payload


@pytest.fixture
def committed_seats_at_invalidation(monkeypatch, session_factory, test_event):
    """Record the committed seat count each time a route drops the cache."""
    seen = []

    async def record():
        async with session_factory() as session:
            event = await session.get(Event, test_event.id)
            seen.append(event.available_seats if event else None)

    monkeypatch.setattr(event_routes, "invalidate_event_cache", record)
    monkeypatch.setattr(booking_routes, "invalidate_event_cache", record)
    return seen


@pytest.mark.asyncio
async def test_booking_committed_before_cache_drop(
    client: AsyncClient, auth_headers, test_event, committed_seats_at_invalidation
):
    response = await client.post(
        f"/api/v1/events/{test_event.id}/book",
        json=booking_payload(numberOfTickets=4),
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert committed_seats_at_invalidation == [46]


@pytest.mark.asyncio
async def test_cancel_committed_before_cache_drop(
    client: AsyncClient, auth_headers, test_event, committed_seats_at_invalidation
):
    booked = await client.post(
        f"/api/v1/events/{test_event.id}/book",
        json=booking_payload(numberOfTickets=4),
        headers=auth_headers,
    )
    booking_id = booked.json()["data"]["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 200
    assert committed_seats_at_invalidation == [46, 50]


@pytest.mark.asyncio
async def test_event_update_and_delete_committed_before_cache_drop(
    client: AsyncClient, admin_headers, test_event, committed_seats_at_invalidation
):
    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"availableSeats": 30}, headers=admin_headers
    )
    assert response.status_code == 200

    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=admin_headers)
    assert response.status_code == 200
    assert committed_seats_at_invalidation == [30, None]


@pytest.mark.asyncio
async def test_failed_booking_leaves_cache_alone(
    client: AsyncClient, auth_headers, test_event, committed_seats_at_invalidation
):
    response = await client.post(
        f"/api/v1/events/{test_event.id}/book",
        json=booking_payload(numberOfTickets=51),
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert committed_seats_at_invalidation == []

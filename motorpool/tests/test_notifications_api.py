"""
Integration tests for the in-app inbox.

With the in_app provider, booking notices land as Notification rows
that only their recipient can read and mark read.
"""

import pytest

from motorpool.app.main import app
from motorpool.app.services.notifications import (
    InAppNotifier, NotificationDispatcher, get_notification_dispatcher,
)

API = "/v1"


@pytest.fixture
def in_app_dispatcher(session_factory):
    dispatcher = NotificationDispatcher(InAppNotifier(session_factory), session_factory)
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    return dispatcher


def trip(day) -> dict:
    return {
        "departure_date": day.isoformat(),
        "departure_time": "08:00:00",
        "return_date": day.isoformat(),
        "return_time": "12:00:00",
        "destination": "Ipoh",
        "purpose": "Training",
    }


@pytest.mark.asyncio
async def test_booking_notices_reach_requester_inbox(
    client, in_app_dispatcher, requester_headers, admin_headers, drivers, vehicles, trip_day
):
    booking = (await client.post(f"{API}/bookings", json=trip(trip_day()), headers=requester_headers)).json()
    await client.post(
        f"{API}/bookings/{booking['id']}/approve",
        json={"driver_id": drivers[0].id, "vehicle_id": vehicles[0].id},
        headers=admin_headers,
    )
    
    response = await client.get(f"{API}/notifications", headers=requester_headers)
    
    assert response.status_code == 200
    data = response.json()
    assert data["unread"] == 2
    titles = [n["title"] for n in data["notifications"]]
    assert titles == [
        f"Vehicle booking approved - {booking['booking_code']}",
        f"Vehicle booking received - {booking['booking_code']}",
    ]
    assert data["notifications"][0]["type"] == "SUCCESS"
    assert data["notifications"][0]["metadata_payload"] == {"booking_id": booking["id"], "event": "approved"}
    
    # Processors have their own, empty, inbox
    response = await client.get(f"{API}/notifications", headers=admin_headers)
    assert response.json() == {"notifications": [], "unread": 0}


@pytest.mark.asyncio
async def test_mark_read(client, in_app_dispatcher, requester_headers, headers_for, other_requester, trip_day):
    await client.post(f"{API}/bookings", json=trip(trip_day()), headers=requester_headers)
    notification = (await client.get(f"{API}/notifications", headers=requester_headers)).json()["notifications"][0]
    
    # Someone else's notification looks like a missing one
    response = await client.patch(
        f"{API}/notifications/{notification['id']}/read", headers=headers_for(other_requester)
    )
    assert response.status_code == 404
    
    response = await client.patch(f"{API}/notifications/{notification['id']}/read", headers=requester_headers)
    assert response.status_code == 200
    
    data = (await client.get(f"{API}/notifications", headers=requester_headers)).json()
    assert data["unread"] == 0
    assert data["notifications"][0]["is_read"] is True
    assert data["notifications"][0]["read_at"] is not None
    
    response = await client.get(f"{API}/notifications", params={"unread_only": True}, headers=requester_headers)
    assert response.json()["notifications"] == []


@pytest.mark.asyncio
async def test_mark_all_read(client, in_app_dispatcher, requester_headers, trip_day):
    await client.post(f"{API}/bookings", json=trip(trip_day(30)), headers=requester_headers)
    await client.post(f"{API}/bookings", json=trip(trip_day(31)), headers=requester_headers)
    
    response = await client.patch(f"{API}/notifications/read-all", headers=requester_headers)
    
    assert response.json() == {"status": "success", "count": 2}
    assert (await client.get(f"{API}/notifications", headers=requester_headers)).json()["unread"] == 0


@pytest.mark.asyncio
async def test_inbox_requires_authentication(client):
    response = await client.get(f"{API}/notifications")
    assert response.status_code in (401, 403)

"""
Integration tests for driver and vehicle management.

CRUD, soft deactivation, and the administrative audit log it writes.
"""

import pytest

from motorpool.app.models.driver import Driver

API = "/v1"


@pytest.mark.asyncio
async def test_create_and_list_drivers(client, admin_headers, requester_headers):
    response = await client.post(
        f"{API}/drivers", json={"name": "Faizal Omar", "phone": "017-2223333"}, headers=admin_headers
    )
    assert response.status_code == 201
    driver = response.json()
    assert driver["name"] == "Faizal Omar"
    assert driver["is_active"] is True
    
    # Any signed-in user may list
    response = await client.get(f"{API}/drivers", headers=requester_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["drivers"][0]["id"] == driver["id"]


@pytest.mark.asyncio
async def test_requester_cannot_manage_resources(client, requester_headers):
    response = await client.post(f"{API}/drivers", json={"name": "Someone"}, headers=requester_headers)
    assert response.status_code == 403
    
    response = await client.post(
        f"{API}/vehicles", json={"model": "Perodua Alza", "plate_number": "JQK 1"}, headers=requester_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_duplicate_plate_number(client, admin_headers, vehicles):
    response = await client.post(
        f"{API}/vehicles", json={"model": "Isuzu D-Max", "plate_number": "WXY 1234"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["details"]["plate_number"] == "WXY 1234"
    
    response = await client.patch(
        f"{API}/vehicles/{vehicles[1].id}", json={"plate_number": "WXY 1234"}, headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_vehicle_partially(client, admin_headers, vehicles):
    response = await client.patch(
        f"{API}/vehicles/{vehicles[0].id}", json={"model": "Toyota Hiace"}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["model"] == "Toyota Hiace"
    assert data["plate_number"] == "WXY 1234"


@pytest.mark.asyncio
async def test_unknown_resource(client, admin_headers):
    response = await client.get(f"{API}/vehicles/404", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["details"] == {"resource": "Vehicle", "id": 404}


@pytest.mark.asyncio
async def test_deactivated_driver_cannot_be_assigned(
    client, admin_headers, requester_headers, drivers, vehicles, trip_day
):
    day = trip_day()
    response = await client.post(f"{API}/drivers/{drivers[0].id}/deactivate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False
    
    response = await client.get(f"{API}/drivers", params={"active_only": True}, headers=admin_headers)
    assert [d["id"] for d in response.json()["drivers"]] == [drivers[1].id]
    
    booking = (await client.post(f"{API}/bookings", json={
        "departure_date": day.isoformat(),
        "return_date": day.isoformat(),
        "destination": "Klang",
        "purpose": "Stock count",
    }, headers=requester_headers)).json()
    
    response = await client.post(
        f"{API}/bookings/{booking['id']}/approve",
        json={"driver_id": drivers[0].id, "vehicle_id": vehicles[0].id},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "inactive" in response.json()["message"]
    
    await client.post(f"{API}/drivers/{drivers[0].id}/reactivate", headers=admin_headers)
    response = await client.post(
        f"{API}/bookings/{booking['id']}/approve",
        json={"driver_id": drivers[0].id, "vehicle_id": vehicles[0].id},
        headers=admin_headers,
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_deactivation_bumps_assignment_version(client, admin_headers, drivers, session_factory):
    await client.post(f"{API}/drivers/{drivers[0].id}/deactivate", headers=admin_headers)
    await client.post(f"{API}/drivers/{drivers[0].id}/reactivate", headers=admin_headers)

    async with session_factory() as session:
        driver = await session.get(Driver, drivers[0].id)
    assert driver.is_active is True
    assert driver.assignment_version == 1


@pytest.mark.asyncio
async def test_resource_changes_are_audited(client, admin_headers, admin_user, requester_headers, vehicles):
    await client.post(f"{API}/vehicles/{vehicles[0].id}/deactivate", headers=admin_headers)
    # Repeating the same state writes nothing
    await client.post(f"{API}/vehicles/{vehicles[0].id}/deactivate", headers=admin_headers)
    await client.post(
        f"{API}/drivers", json={"name": "Lim Wei"}, headers=admin_headers
    )
    
    response = await client.get(f"{API}/admin/ops/audit-log", headers=admin_headers)
    assert response.status_code == 200
    entries = response.json()["entries"]
    assert [e["action"] for e in entries] == ["DRIVER_CREATED", "VEHICLE_DEACTIVATED"]
    assert entries[1]["target_type"] == "vehicle"
    assert entries[1]["target_id"] == vehicles[0].id
    assert entries[1]["actor_username"] == admin_user.username
    assert entries[1]["meta_data"] == {"is_active": False}
    
    response = await client.get(
        f"{API}/admin/ops/audit-log", params={"target_type": "vehicle"}, headers=admin_headers
    )
    assert [e["action"] for e in response.json()["entries"]] == ["VEHICLE_DEACTIVATED"]
    
    response = await client.get(f"{API}/admin/ops/audit-log", headers=requester_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_stats_reflect_vehicle_availability(client, admin_headers, vehicles):
    await client.post(f"{API}/vehicles/{vehicles[1].id}/deactivate", headers=admin_headers)
    
    response = await client.get(f"{API}/stats", headers=admin_headers)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_vehicles"] == 2
    assert stats["active_vehicles"] == 1
    assert stats["available_vehicles"] == "1/2"
    assert stats["vehicle_availability"] == 0.5
    assert stats["pending"] == 0

"""
Integration tests for user administration.

Listing accounts, role / unit / active changes, the rules around
SUPERADMIN, and the audit entries each change writes.
"""

import pytest

API = "/v1"


@pytest.mark.asyncio
async def test_list_users(client, admin_headers, requester, admin_user, superadmin_user):
    response = await client.get(f"{API}/users", headers=admin_headers)
    
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    roles = {u["username"]: u["role"] for u in data["users"]}
    assert roles == {"aminah": "USER", "admin": "ADMIN", "super": "SUPERADMIN"}
    
    response = await client.get(f"{API}/users", params={"role": "ADMIN"}, headers=admin_headers)
    assert [u["id"] for u in response.json()["users"]] == [admin_user.id]


@pytest.mark.asyncio
async def test_requester_cannot_manage_users(client, requester_headers, requester, other_requester):
    response = await client.get(f"{API}/users", headers=requester_headers)
    assert response.status_code == 403
    
    response = await client.patch(
        f"{API}/users/{other_requester.id}", json={"role": "ADMIN"}, headers=requester_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_promotion_applies_to_existing_token(client, admin_headers, requester, requester_headers):
    response = await client.get(f"{API}/admin/ops/audit-log", headers=requester_headers)
    assert response.status_code == 403
    
    response = await client.patch(
        f"{API}/users/{requester.id}", json={"role": "ADMIN", "unit": "Transport"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "ADMIN"
    assert response.json()["unit"] == "Transport"
    
    # Same token, role re-read from the database
    response = await client.get(f"{API}/admin/ops/audit-log", headers=requester_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_user_changes_are_audited(client, admin_headers, admin_user, requester):
    await client.patch(f"{API}/users/{requester.id}", json={"unit": "Audit"}, headers=admin_headers)
    # Unchanged values write nothing
    await client.patch(f"{API}/users/{requester.id}", json={"unit": "Audit"}, headers=admin_headers)
    
    response = await client.get(
        f"{API}/admin/ops/audit-log", params={"target_type": "user"}, headers=admin_headers
    )
    entries = response.json()["entries"]
    assert [e["action"] for e in entries] == ["USER_UPDATED"]
    assert entries[0]["target_id"] == requester.id
    assert entries[0]["actor_username"] == admin_user.username
    assert entries[0]["meta_data"] == {"from": {"unit": "Finance"}, "to": {"unit": "Audit"}}


@pytest.mark.asyncio
async def test_deactivated_user_is_locked_out(client, admin_headers, requester, requester_headers):
    response = await client.patch(f"{API}/users/{requester.id}", json={"is_active": False}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False
    
    response = await client.get(f"{API}/bookings", headers=requester_headers)
    assert response.status_code == 403
    
    response = await client.get(f"{API}/users", params={"active_only": True}, headers=admin_headers)
    assert requester.id not in [u["id"] for u in response.json()["users"]]


@pytest.mark.asyncio
async def test_only_superadmin_grants_superadmin(
    client, admin_headers, superadmin_headers, requester, superadmin_user
):
    response = await client.patch(f"{API}/users/{requester.id}", json={"role": "SUPERADMIN"}, headers=admin_headers)
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"
    
    response = await client.patch(
        f"{API}/users/{superadmin_user.id}", json={"role": "USER"}, headers=admin_headers
    )
    assert response.status_code == 403
    
    response = await client.patch(
        f"{API}/users/{requester.id}", json={"role": "SUPERADMIN"}, headers=superadmin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "SUPERADMIN"


@pytest.mark.asyncio
async def test_cannot_change_own_role_or_deactivate_self(client, admin_headers, admin_user):
    response = await client.patch(f"{API}/users/{admin_user.id}", json={"role": "USER"}, headers=admin_headers)
    assert response.status_code == 403
    
    response = await client.patch(f"{API}/users/{admin_user.id}", json={"is_active": False}, headers=admin_headers)
    assert response.status_code == 400
    
    # Own unit is fine
    response = await client.patch(f"{API}/users/{admin_user.id}", json={"unit": "Fleet"}, headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_unknown_user(client, admin_headers):
    response = await client.patch(f"{API}/users/404", json={"unit": "Nowhere"}, headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["details"] == {"resource": "User", "id": 404}
    
    response = await client.patch(f"{API}/users/404", json={"role": "OWNER"}, headers=admin_headers)
    assert response.status_code == 422

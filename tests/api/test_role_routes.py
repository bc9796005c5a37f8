from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient


pytestmark = pytest.mark.asyncio


SALES_PERMISSIONS = {
    "modules": {"clients": True, "inventory": False},
    "clients": {"view": True, "edit": True},
}


async def _create_role(client: AsyncClient, headers: dict[str, str], name: str, permissions: dict) -> dict:
    response = await client.post(
        "/roles",
        json={"name": name, "description": "Sales team", "permissions": permissions},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_role(async_client: AsyncClient, seed_identity: Any) -> None:
    role = await _create_role(async_client, seed_identity.admin_headers, "  Sales ", SALES_PERMISSIONS)

    assert role["name"] == "Sales"
    assert role["is_system_role"] is False
    assert role["is_admin"] is False
    assert role["permissions"]["clients"] == {"view": True, "edit": True}
    assert role["permissions"]["modules"]["clients"] is True


async def test_create_role_rejects_orphaned_grant(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.post(
        "/roles",
        json={
            "name": "Sales",
            "permissions": {"modules": {"clients": True}, "inventory": {"view": True}},
        },
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "module_not_enabled"
    assert detail["group"] == "inventory"
    assert detail["key"] == "view"


async def test_create_role_rejects_unknown_key(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.post(
        "/roles",
        json={"name": "Sales", "permissions": {"modules": {"payroll": True}}},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "unknown_permission_key"


async def test_create_role_rejects_non_boolean(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.post(
        "/roles",
        json={"name": "Sales", "permissions": {"modules": {"clients": "yes"}}},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 400


async def test_create_role_duplicate_name(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.post(
        "/roles",
        json={"name": "Staff", "permissions": {}},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Role with name 'Staff' already exists"


async def test_staff_cannot_create_roles(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.post(
        "/roles",
        json={"name": "Sales", "permissions": {}},
        headers=seed_identity.staff_headers,
    )

    assert response.status_code == 403


async def test_staff_cannot_list_roles(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.get("/roles", headers=seed_identity.staff_headers)

    assert response.status_code == 403


async def test_list_roles_sorted_by_name(async_client: AsyncClient, seed_identity: Any) -> None:
    await _create_role(async_client, seed_identity.admin_headers, "Sales", SALES_PERMISSIONS)

    response = await async_client.get("/roles", headers=seed_identity.admin_headers)

    assert response.status_code == 200
    assert [role["name"] for role in response.json()] == ["Admin", "Sales", "Staff"]


async def test_update_replaces_whole_permission_set(async_client: AsyncClient, seed_identity: Any) -> None:
    role = await _create_role(async_client, seed_identity.admin_headers, "Sales", SALES_PERMISSIONS)

    response = await async_client.put(
        f"/roles/{role['id']}",
        json={"permissions": {"modules": {"notes": True}, "notes": {"view": True}}},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 200, response.text
    permissions = response.json()["permissions"]
    assert permissions["modules"] == {"notes": True}
    assert permissions["notes"] == {"view": True}
    assert permissions["clients"] == {}
    assert response.json()["description"] == "Sales team"


async def test_update_name_only_keeps_permissions(async_client: AsyncClient, seed_identity: Any) -> None:
    role = await _create_role(async_client, seed_identity.admin_headers, "Sales", SALES_PERMISSIONS)

    response = await async_client.put(
        f"/roles/{role['id']}",
        json={"name": "Field Sales"},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Field Sales"
    assert response.json()["permissions"] == role["permissions"]


async def test_update_rejects_orphaned_grant(async_client: AsyncClient, seed_identity: Any) -> None:
    role = await _create_role(async_client, seed_identity.admin_headers, "Sales", SALES_PERMISSIONS)

    response = await async_client.put(
        f"/roles/{role['id']}",
        json={"permissions": {"modules": {"clients": False}, "clients": {"view": True}}},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "module_not_enabled"

    stored = await async_client.get(f"/roles/{role['id']}", headers=seed_identity.admin_headers)
    assert stored.json()["permissions"] == role["permissions"]


async def test_cannot_rename_system_role(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.put(
        f"/roles/{seed_identity.admin_role.id}",
        json={"name": "Root"},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot rename system role"


async def test_cannot_take_another_roles_name(async_client: AsyncClient, seed_identity: Any) -> None:
    role = await _create_role(async_client, seed_identity.admin_headers, "Sales", SALES_PERMISSIONS)

    response = await async_client.put(
        f"/roles/{role['id']}",
        json={"name": "Staff"},
        headers=seed_identity.admin_headers,
    )

    assert response.status_code == 409


async def test_cannot_delete_system_role(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.delete(
        f"/roles/{seed_identity.admin_role.id}", headers=seed_identity.admin_headers
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete system role"


async def test_cannot_delete_assigned_role(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.delete(
        f"/roles/{seed_identity.staff_role.id}", headers=seed_identity.admin_headers
    )

    assert response.status_code == 409
    assert "1 user(s)" in response.json()["detail"]


async def test_delete_unassigned_role(async_client: AsyncClient, seed_identity: Any) -> None:
    role = await _create_role(async_client, seed_identity.admin_headers, "Sales", SALES_PERMISSIONS)

    response = await async_client.delete(f"/roles/{role['id']}", headers=seed_identity.admin_headers)
    assert response.status_code == 204

    missing = await async_client.get(f"/roles/{role['id']}", headers=seed_identity.admin_headers)
    assert missing.status_code == 404


async def test_role_users(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.get(
        f"/roles/{seed_identity.staff_role.id}/users", headers=seed_identity.admin_headers
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["count"] == 1
    assert payload["users"][0]["email"] == "staff@crm.com"


async def test_role_manager_can_read_but_not_write(async_client: AsyncClient, seed_identity: Any) -> None:
    manager = await _create_role(
        async_client,
        seed_identity.admin_headers,
        "Role Viewer",
        {"modules": {"settings": True}, "settings": {"manageRoles": True}},
    )
    assigned = await async_client.patch(
        f"/users/{seed_identity.staff.id}/role",
        json={"role_id": manager["id"]},
        headers=seed_identity.admin_headers,
    )
    assert assigned.status_code == 200, assigned.text

    listed = await async_client.get("/roles", headers=seed_identity.staff_headers)
    assert listed.status_code == 200

    created = await async_client.post(
        "/roles", json={"name": "Other", "permissions": {}}, headers=seed_identity.staff_headers
    )
    assert created.status_code == 403


async def test_role_changes_are_audited(async_client: AsyncClient, seed_identity: Any) -> None:
    role = await _create_role(async_client, seed_identity.admin_headers, "Sales", SALES_PERMISSIONS)
    await async_client.delete(f"/roles/{role['id']}", headers=seed_identity.admin_headers)

    response = await async_client.get(
        "/audit-logs", params={"resource_type": "role"}, headers=seed_identity.admin_headers
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 2
    assert {entry["action"] for entry in payload["items"]} == {"create", "delete"}
    assert all(entry["user_id"] == seed_identity.admin.id for entry in payload["items"])


async def test_audit_logs_require_admin(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.get("/audit-logs", headers=seed_identity.staff_headers)

    assert response.status_code == 403

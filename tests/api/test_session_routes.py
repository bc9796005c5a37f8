from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.users.auth import create_access_token
from app.features.users.models import User


pytestmark = pytest.mark.asyncio


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


async def test_me_requires_token(async_client: AsyncClient) -> None:
    response = await async_client.get("/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "No token provided. Authentication required."


async def test_me_rejects_invalid_token(async_client: AsyncClient) -> None:
    response = await async_client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["detail"].startswith("Invalid token")


async def test_me_rejects_expired_token(async_client: AsyncClient, seed_identity: Any) -> None:
    token = create_access_token(seed_identity.staff.id, expires_in=timedelta(minutes=-5))

    response = await async_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired. Please login again."


async def test_admin_session(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.get("/auth/me", headers=seed_identity.admin_headers)

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["is_admin"] is True
    assert payload["role"]["name"] == "Admin"
    navigation = [item["id"] for item in payload["navigation"]]
    assert navigation[-2:] == ["users", "roles"]
    assert "inventory" in navigation


async def test_staff_navigation(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.get("/auth/navigation", headers=seed_identity.staff_headers)

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == ["home", "clients"]


async def test_staff_permissions(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.get("/auth/permissions", headers=seed_identity.staff_headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["role_name"] == "Staff"
    assert payload["is_admin"] is False
    assert payload["permissions"]["clients"]["view"] is True
    assert payload["permissions"]["modules"].get("inventory", False) is False


async def test_inactive_user_is_forbidden(
    async_client: AsyncClient, db: AsyncSession, seed_identity: Any
) -> None:
    user = User(email="gone@crm.com", name="Gone", role_id=seed_identity.staff_role.id, is_active=False)
    db.add(user)
    await db.commit()

    response = await async_client.get("/auth/me", headers=_headers(user))

    assert response.status_code == 403
    assert response.json()["detail"] == "Account is inactive. Please contact administrator."


async def test_user_without_role_is_forbidden(
    async_client: AsyncClient, db: AsyncSession, seed_identity: Any
) -> None:
    user = User(email="norole@crm.com", name="No Role")
    db.add(user)
    await db.commit()

    response = await async_client.get("/auth/me", headers=_headers(user))

    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied. No role assigned."


async def test_logout(async_client: AsyncClient, seed_identity: Any) -> None:
    response = await async_client.post("/auth/logout", headers=seed_identity.staff_headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Logout successful"}

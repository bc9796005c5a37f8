from __future__ import annotations

import asyncio

import pytest

from app.features.permissions.catalog import PermissionCatalog
from app.features.permissions.errors import ResolutionFailure
from app.features.permissions.evaluator import AccessEvaluator, Principal, RoleSnapshot
from app.features.permissions.permission_set import PermissionSet
from app.features.session.context import GuardDecision, SessionContext


pytestmark = pytest.mark.asyncio


SALES = Principal(
    user_id="user-1",
    role=RoleSnapshot(
        id="role-1",
        name="Sales",
        permissions=PermissionSet({"modules": {"clients": True}, "clients": {"view": True}}),
    ),
)


@pytest.fixture()
def session(catalog: PermissionCatalog) -> SessionContext:
    return SessionContext(AccessEvaluator(catalog), timeout=1)


async def test_fresh_session_is_unauthenticated(session: SessionContext) -> None:
    assert not session.is_authenticated
    assert not session.has_module_access("clients")
    assert session.guard() is GuardDecision.UNAUTHENTICATED


async def test_resolve_sets_principal(session: SessionContext) -> None:
    async def loader() -> Principal:
        return SALES

    assert await session.resolve(loader) is SALES

    assert session.is_authenticated
    assert session.has_module_access("clients")
    assert session.has_permission("clients", "view")
    assert not session.has_permission("clients", "delete")
    assert session.guard(require_module="clients") is GuardDecision.ALLOWED
    assert session.guard(require_module="inventory") is GuardDecision.FORBIDDEN
    assert session.guard(require_admin=True) is GuardDecision.FORBIDDEN


async def test_resolution_failure_leaves_session_unauthenticated(session: SessionContext) -> None:
    async def loader() -> Principal:
        raise ResolutionFailure("User not found")

    assert await session.resolve(loader) is None

    assert not session.is_authenticated
    assert session.failure.reason == "User not found"
    assert session.failure.status_code == 401
    assert not session.loading


async def test_timeout_fails_closed(catalog: PermissionCatalog) -> None:
    session = SessionContext(AccessEvaluator(catalog), timeout=0.01)

    async def loader() -> Principal:
        await asyncio.sleep(1)
        return SALES

    assert await session.resolve(loader) is None

    assert session.failure.status_code == 503
    assert session.guard(require_module="clients") is GuardDecision.UNAUTHENTICATED


async def test_loading_while_resolution_pending(session: SessionContext) -> None:
    release = asyncio.Event()

    async def loader() -> Principal:
        await release.wait()
        return SALES

    task = asyncio.create_task(session.resolve(loader))
    await asyncio.sleep(0)

    assert session.loading
    assert session.guard(require_module="clients") is GuardDecision.LOADING
    assert not session.has_module_access("clients")

    release.set()
    await task
    assert session.guard(require_module="clients") is GuardDecision.ALLOWED


async def test_clear_discards_in_flight_resolution(session: SessionContext) -> None:
    release = asyncio.Event()

    async def loader() -> Principal:
        await release.wait()
        return SALES

    task = asyncio.create_task(session.resolve(loader))
    await asyncio.sleep(0)

    session.clear()
    release.set()
    await task

    assert not session.is_authenticated
    assert not session.loading
    assert not session.has_permission("clients", "view")


async def test_clear_after_resolve_revokes_access(session: SessionContext) -> None:
    async def loader() -> Principal:
        return SALES

    await session.resolve(loader)
    session.clear()

    assert session.principal is None
    assert not session.has_module_access("clients")
    assert session.guard() is GuardDecision.UNAUTHENTICATED


async def test_admin_guard_allows_everything(session: SessionContext) -> None:
    admin = Principal(
        user_id="user-2",
        role=RoleSnapshot(id="role-2", name="Admin", permissions=PermissionSet(), is_admin=True),
        is_admin=True,
    )

    async def loader() -> Principal:
        return admin

    await session.resolve(loader)

    assert session.is_admin()
    assert session.guard(require_module="inventory", require_admin=True) is GuardDecision.ALLOWED


async def test_unexpected_loader_error_does_not_leave_session_loading(session: SessionContext) -> None:
    async def loader() -> Principal:
        raise RuntimeError("database is locked")

    with pytest.raises(RuntimeError):
        await session.resolve(loader)

    assert not session.loading
    assert not session.is_authenticated
    assert session.guard(require_module="clients") is GuardDecision.UNAUTHENTICATED


async def test_unexpected_error_drops_previous_principal(session: SessionContext) -> None:
    async def good_loader() -> Principal:
        return SALES

    async def broken_loader() -> Principal:
        raise RuntimeError("database is locked")

    await session.resolve(good_loader)
    with pytest.raises(RuntimeError):
        await session.resolve(broken_loader)

    assert session.principal is None
    assert not session.has_permission("clients", "view")

"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.engine import build_engine, build_sessionmaker, get_db, init_db
from app.features.permissions.catalog import PermissionCatalog, build_default_catalog
from app.features.roles import service
from app.features.roles.models import Role
from app.features.users.auth import create_access_token
from app.features.users.models import User
from app.main import app
from scripts.seed_roles import STAFF_ROLE, seed_admin_user, seed_roles


@pytest.fixture()
def catalog() -> PermissionCatalog:
    return build_default_catalog()


@pytest_asyncio.fixture()
async def sessionmaker(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory bound to a fresh file-backed SQLite database."""

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'crm.sqlite'}")
    await init_db(engine)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture()
async def db(sessionmaker) -> AsyncIterator[AsyncSession]:
    async with sessionmaker() as session:
        yield session


@pytest_asyncio.fixture()
async def async_client(sessionmaker) -> AsyncIterator[AsyncClient]:
    """HTTPX async client bound to the FastAPI app, using the test database."""

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@dataclass
class SeededIdentity:
    admin_role: Role
    staff_role: Role
    admin: User
    staff: User

    @property
    def admin_headers(self) -> dict[str, str]:
        return auth_headers(self.admin)

    @property
    def staff_headers(self) -> dict[str, str]:
        return auth_headers(self.staff)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest_asyncio.fixture()
async def seed_identity(db: AsyncSession, catalog: PermissionCatalog) -> SeededIdentity:
    """Admin and Staff roles from the seed script, with one user each."""

    admin_role = await seed_roles(db, catalog)
    admin = await seed_admin_user(db, admin_role, "admin@crm.com")

    staff_role = await service.get_role_by_name(db, STAFF_ROLE)
    staff = User(email="staff@crm.com", name="Sam Staff", role_id=staff_role.id)
    db.add(staff)
    await db.commit()
    await db.refresh(staff)

    return SeededIdentity(admin_role=admin_role, staff_role=staff_role, admin=admin, staff=staff)

"""
Seed script to create the default roles and the first administrator.

Creates:
- the Admin system role (admin bypass, no stored grants needed)
- a Staff role that can work with clients, meetings and notes
- an admin user, and prints a bearer token for it

Usage:
    python -m scripts.seed_roles [admin-email]
"""
import asyncio
import sys
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import AsyncSessionLocal, init_db
from app.features.permissions.catalog import PermissionCatalog, build_default_catalog
from app.features.permissions.editor import RoleEditor
from app.features.permissions.permission_set import PermissionSet
from app.features.roles import service
from app.features.roles.models import Role
from app.features.users.auth import issue_access_token
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


ADMIN_ROLE = "Admin"
STAFF_ROLE = "Staff"

# (group, key) grants applied through the editor, modules first
STAFF_GRANTS = [
    ("modules", "home"),
    ("modules", "clients"),
    ("modules", "meetings"),
    ("modules", "notes"),
    ("clients", "view"),
    ("clients", "create"),
    ("clients", "edit"),
    ("meetings", "view"),
    ("meetings", "create"),
    ("meetings", "edit"),
    ("notes", "view"),
    ("notes", "create"),
    ("notes", "edit"),
]


def build_staff_permissions(catalog: PermissionCatalog) -> PermissionSet:
    editor = RoleEditor(catalog)
    for group, key in STAFF_GRANTS:
        result = editor.set_permission(group, key, True)
        if not result.ok:
            raise RuntimeError(result.message)
    return editor.commit()


async def seed_roles(db: AsyncSession, catalog: PermissionCatalog) -> Role:
    """Create the default roles if missing; returns the Admin role."""
    admin_role = await service.get_role_by_name(db, ADMIN_ROLE)
    if admin_role is None:
        admin_role = await service.create_role(
            db,
            ADMIN_ROLE,
            "System Administrator with full access to all modules and features",
            PermissionSet(),
            is_system_role=True,
            is_admin=True,
        )
        log.info("Created Admin role")
    else:
        log.info("Admin role already exists")

    if await service.get_role_by_name(db, STAFF_ROLE) is None:
        await service.create_role(
            db,
            STAFF_ROLE,
            "Basic staff member with limited access - can view and add clients but cannot delete",
            build_staff_permissions(catalog),
        )
        log.info("Created Staff role")
    else:
        log.info("Staff role already exists")

    return admin_role


async def seed_admin_user(db: AsyncSession, admin_role: Role, email: str) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is not None:
        log.info(f"Admin user {email} already exists")
        return user

    user = User(email=email, name="System Administrator", role_id=admin_role.id)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    log.info(f"Created admin user {email}")
    return user


async def main(email: str = "admin@crm.com"):
    """Main function to seed roles and the admin user."""
    log.info("Starting role seeding...")
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            admin_role = await seed_roles(db, build_default_catalog())
            user = await seed_admin_user(db, admin_role, email)
            token = await issue_access_token(db, user)
        except Exception as e:
            log.error(f"Error seeding roles: {e}", exc_info=True)
            await db.rollback()
            raise

    log.info("Role seeding completed successfully!")
    log.info(f"Admin token: {token}")


if __name__ == "__main__":
    asyncio.run(main(*sys.argv[1:2]))

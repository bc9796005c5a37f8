"""
Role storage operations.

Enforces the storage rules for roles: unique names, system roles keep their
name and cannot be deleted, and a role assigned to any user cannot be
deleted. Violations raise ``StorageConflict``.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.permissions.errors import StorageConflict
from app.features.permissions.permission_set import PermissionSet
from app.features.roles.models import AuditLog, Role
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


async def list_roles(db: AsyncSession) -> List[Role]:
    result = await db.execute(select(Role).order_by(Role.name))
    return list(result.scalars().all())


async def get_role(db: AsyncSession, role_id: str) -> Optional[Role]:
    return await db.get(Role, role_id)


async def get_role_by_name(db: AsyncSession, name: str) -> Optional[Role]:
    result = await db.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def count_role_users(db: AsyncSession, role_id: str) -> int:
    result = await db.execute(select(func.count()).select_from(User).where(User.role_id == role_id))
    return result.scalar_one()


async def list_role_users(db: AsyncSession, role_id: str) -> List[User]:
    result = await db.execute(select(User).where(User.role_id == role_id).order_by(User.name))
    return list(result.scalars().all())


async def _flush_unique(db: AsyncSession, name: str) -> None:
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise StorageConflict(f"Role with name '{name}' already exists")


async def create_role(
    db: AsyncSession,
    name: str,
    description: str,
    permissions: PermissionSet,
    is_system_role: bool = False,
    is_admin: bool = False,
) -> Role:
    """
    Persist a new role.

    Raises:
        StorageConflict: if the name is taken
    """
    if await get_role_by_name(db, name) is not None:
        raise StorageConflict(f"Role with name '{name}' already exists")

    role = Role(
        name=name,
        description=description,
        permissions=permissions.to_json(),
        is_system_role=is_system_role,
        is_admin=is_admin,
    )
    db.add(role)
    await _flush_unique(db, name)
    await db.commit()
    await db.refresh(role)
    log.info(f"Created role {role.id} ({role.name!r})")
    return role


async def update_role(
    db: AsyncSession,
    role: Role,
    name: Optional[str] = None,
    description: Optional[str] = None,
    permissions: Optional[PermissionSet] = None,
) -> Role:
    """
    Update a role. ``permissions`` replaces the whole stored set.

    Raises:
        StorageConflict: on renaming a system role or taking another role's name
    """
    if name is not None and name != role.name:
        if role.is_system_role:
            raise StorageConflict("Cannot rename system role")
        if await get_role_by_name(db, name) is not None:
            raise StorageConflict(f"Role with name '{name}' already exists")
        role.name = name

    if description is not None:
        role.description = description
    if permissions is not None:
        role.permissions = permissions.to_json()

    await _flush_unique(db, role.name)
    await db.commit()
    await db.refresh(role)
    log.info(f"Updated role {role.id} ({role.name!r})")
    return role


async def delete_role(db: AsyncSession, role: Role) -> None:
    """
    Delete a role.

    Raises:
        StorageConflict: for system roles and roles still assigned to users
    """
    if role.is_system_role:
        raise StorageConflict("Cannot delete system role")

    assigned = await count_role_users(db, role.id)
    if assigned > 0:
        raise StorageConflict(f"Cannot delete role. {assigned} user(s) are assigned to this role.")

    await db.delete(role)
    await db.commit()
    log.info(f"Deleted role {role.id} ({role.name!r})")


async def create_audit_log(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
) -> AuditLog:
    """
    Create an audit log entry.

    Args:
        db: Database session
        user_id: User performing the action
        action: Action performed (e.g., "create", "update", "delete", "assign_role")
        resource_type: Type of resource (e.g., "role", "user")
        resource_id: ID of the resource
        details: Additional details
        ip_address: Client IP address
        user_agent: Client user agent
    """
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    log.info(f"Audit: user={user_id} action={action} resource={resource_type}:{resource_id}")

    return audit_log

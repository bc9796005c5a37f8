"""
Role management API routes.

Permission payloads are replayed through a RoleEditor before they are
stored, so every persisted role satisfies the module rule.
"""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.catalog import PermissionCatalog
from app.features.permissions.editor import RoleEditor
from app.features.permissions.errors import PermissionPayloadError, describe
from app.features.permissions.permission_set import PermissionSet
from app.features.roles import service
from app.features.roles.models import AuditLog, Role
from app.features.roles.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    RoleUserResponse,
    RoleUsersResponse,
)
from app.features.session.context import SessionContext
from app.features.users.dependencies import get_catalog, require_session
from app.features.permissions.dependencies import require_admin


router = APIRouter()


async def require_role_manager(session: SessionContext = Depends(require_session)) -> SessionContext:
    """Administrators, or roles granted settings.manageRoles."""
    if session.is_admin() or session.has_permission("settings", "manageRoles"):
        return session
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Access denied. Role management privileges required."
    )


def build_permission_set(catalog: PermissionCatalog, payload: Any) -> PermissionSet:
    """Validate a wire-format payload against the catalog and the module rule."""
    try:
        return RoleEditor.from_payload(catalog, payload).commit()
    except PermissionPayloadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=describe(exc.rejection))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


async def _load_role(db: AsyncSession, role_id: str) -> Role:
    role = await service.get_role(db, role_id)
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role


def _client_info(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


# ============================================================================
# Role Routes
# ============================================================================

@router.get("", response_model=List[RoleResponse])
async def list_roles(
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_role_manager)
):
    """List all roles, sorted by name."""
    return await service.list_roles(db)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_role_manager)
):
    """Get a specific role with its permissions."""
    return await _load_role(db, role_id)


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role: RoleCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    catalog: PermissionCatalog = Depends(get_catalog),
    session: SessionContext = Depends(require_admin)
):
    """Create a new custom role."""
    permissions = build_permission_set(catalog, role.permissions)
    db_role = await service.create_role(db, role.name, role.description, permissions)

    await service.create_audit_log(
        db,
        user_id=session.principal.user_id,
        action="create",
        resource_type="role",
        resource_id=db_role.id,
        details={"name": db_role.name, "permissions": db_role.permissions},
        **_client_info(request)
    )
    return db_role


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    role_update: RoleUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    catalog: PermissionCatalog = Depends(get_catalog),
    session: SessionContext = Depends(require_admin)
):
    """Update a role; a provided permission set replaces the stored one."""
    db_role = await _load_role(db, role_id)

    permissions = None
    if role_update.permissions is not None:
        permissions = build_permission_set(catalog, role_update.permissions)

    db_role = await service.update_role(
        db,
        db_role,
        name=role_update.name,
        description=role_update.description,
        permissions=permissions,
    )

    await service.create_audit_log(
        db,
        user_id=session.principal.user_id,
        action="update",
        resource_type="role",
        resource_id=role_id,
        details=role_update.model_dump(exclude_unset=True),
        **_client_info(request)
    )
    return db_role


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_admin)
):
    """Delete a custom role that no user holds."""
    db_role = await _load_role(db, role_id)
    role_name = db_role.name

    await service.delete_role(db, db_role)

    await service.create_audit_log(
        db,
        user_id=session.principal.user_id,
        action="delete",
        resource_type="role",
        resource_id=role_id,
        details={"name": role_name},
        **_client_info(request)
    )
    return None


@router.get("/{role_id}/users", response_model=RoleUsersResponse)
async def get_role_users(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_role_manager)
):
    """Users assigned to a role."""
    await _load_role(db, role_id)
    users = await service.list_role_users(db, role_id)
    return RoleUsersResponse(
        users=[RoleUserResponse.model_validate(user) for user in users],
        count=len(users)
    )


# ============================================================================
# Audit Log Routes
# ============================================================================

audit_router = APIRouter()


@audit_router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    skip: int = 0,
    limit: int = 50,
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_admin)
):
    """List audit logs with optional filtering."""
    stmt = select(AuditLog)

    if user_id:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource_type:
        stmt = stmt.where(AuditLog.resource_type == resource_type)

    # Get total count
    count_stmt = select(func.count()).select_from(stmt.subquery())
    total_result = await db.execute(count_stmt)
    total = total_result.scalar() or 0

    # Get paginated results
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    logs = result.scalars().all()

    pages = (total + limit - 1) // limit if limit > 0 else 0
    page = (skip // limit) + 1 if limit > 0 else 1

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=limit,
        pages=pages
    )

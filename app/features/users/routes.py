"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.dependencies import require_admin, require_permission
from app.features.permissions.errors import StorageConflict
from app.features.roles import service as role_service
from app.features.session.context import SessionContext
from app.features.users.models import User
from app.features.users.schemas import (
    UserCreate,
    UserResponse,
    UserRoleAssignment,
    UserStatusResponse,
    UserUpdate,
)
from app.features.users.dependencies import get_current_user


router = APIRouter(tags=["users"])


async def _load_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    update_data: UserUpdate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update current user's profile."""
    if update_data.name is not None:
        user.name = update_data.name

    await db.commit()
    await db.refresh(user)
    return user


@router.get("", response_model=list[UserResponse])
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: Annotated[SessionContext, Depends(require_permission("settings", "manageUsers"))],
    skip: int = 0,
    limit: int = 50
):
    """List users (requires settings.manageUsers)."""
    result = await db.execute(
        select(User)
        .order_by(User.name)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: Annotated[SessionContext, Depends(require_permission("settings", "manageUsers"))]
):
    """Get a user by ID (requires settings.manageUsers)."""
    return await _load_user(db, user_id)


# Admin-only routes
@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    request: Request,
    session: Annotated[SessionContext, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a user holding an existing role (admin only)."""
    email = user_data.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise StorageConflict(f"User with email '{email}' already exists")

    role = await role_service.get_role(db, user_data.role_id)
    if role is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")

    user = User(email=email, name=user_data.name, role_id=role.id)
    db.add(user)
    await db.commit()
    await db.refresh(user)

    await role_service.create_audit_log(
        db,
        user_id=session.principal.user_id,
        action="create",
        resource_type="user",
        resource_id=user.id,
        details={"email": user.email, "role_id": role.id},
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
    return user


@router.patch("/{user_id}/role", response_model=UserResponse)
async def assign_role(
    user_id: str,
    assignment: UserRoleAssignment,
    request: Request,
    session: Annotated[SessionContext, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Assign a role to a user (admin only)."""
    user = await _load_user(db, user_id)
    role = await role_service.get_role(db, assignment.role_id)
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")

    # Prevent locking yourself out of administration
    if user.id == session.principal.user_id and not (user.is_admin or role.is_admin):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove your own admin role"
        )

    user.role_id = role.id
    await db.commit()
    await db.refresh(user)

    await role_service.create_audit_log(
        db,
        user_id=session.principal.user_id,
        action="assign_role",
        resource_type="user",
        resource_id=user.id,
        details={"role_id": role.id, "role_name": role.name},
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
    return user


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: str,
    session: Annotated[SessionContext, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Deactivate a user account (admin only)."""
    user = await _load_user(db, user_id)

    # Prevent self-deactivation
    if user.id == session.principal.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate your own account"
        )

    user.is_active = False
    await db.commit()

    return {"message": "User deactivated successfully"}


@router.put("/{user_id}/toggle-status", response_model=UserStatusResponse)
async def toggle_user_status(
    user_id: str,
    request: Request,
    session: Annotated[SessionContext, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Activate or deactivate a user account (admin only)."""
    user = await _load_user(db, user_id)

    if user.id == session.principal.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate your own account"
        )

    user.is_active = not user.is_active
    await db.commit()

    await role_service.create_audit_log(
        db,
        user_id=session.principal.user_id,
        action="activate" if user.is_active else "deactivate",
        resource_type="user",
        resource_id=user.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
    return UserStatusResponse(
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
        is_active=user.is_active
    )

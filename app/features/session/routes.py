"""
Current-session routes.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends

from app.features.session.context import SessionContext
from app.features.session.navigation import visible_navigation
from app.features.session.schemas import (
    NavItemResponse,
    SessionPermissionsResponse,
    SessionResponse,
    SessionRole,
)
from app.features.users.dependencies import get_current_user, require_session
from app.features.users.models import User


router = APIRouter(tags=["auth"])


@router.get("/me", response_model=SessionResponse)
async def get_session_info(
    session: Annotated[SessionContext, Depends(require_session)],
    user: Annotated[User, Depends(get_current_user)]
):
    """Current user, role, permissions and the navigation they can see."""
    principal = session.principal
    return SessionResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=SessionRole(id=principal.role.id, name=principal.role.name, is_admin=principal.role.is_admin),
        is_admin=session.is_admin(),
        permissions=principal.permissions.to_json(),
        navigation=[NavItemResponse.model_validate(item) for item in visible_navigation(session)],
    )


@router.get("/permissions", response_model=SessionPermissionsResponse)
async def get_session_permissions(
    session: Annotated[SessionContext, Depends(require_session)]
):
    """Current user's role name and stored permission set."""
    principal = session.principal
    return SessionPermissionsResponse(
        role_name=principal.role.name,
        is_admin=session.is_admin(),
        permissions=principal.permissions.to_json(),
    )


@router.get("/navigation", response_model=List[NavItemResponse])
async def get_navigation(
    session: Annotated[SessionContext, Depends(require_session)]
):
    """Sidebar entries for the current user."""
    return [NavItemResponse.model_validate(item) for item in visible_navigation(session)]


@router.post("/logout")
async def logout(
    session: Annotated[SessionContext, Depends(require_session)]
):
    """Tokens are stateless; the client discards its token and the session is cleared."""
    session.clear()
    return {"message": "Logout successful"}

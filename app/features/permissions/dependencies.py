"""
Route guards built on the request's SessionContext.

Usage:
    @router.get("/clients")
    async def list_clients(session: SessionContext = Depends(require_module("clients"))):
        ...

    @router.delete("/clients/{client_id}")
    async def delete_client(session: SessionContext = Depends(require_permission("clients", "delete"))):
        ...
"""
from fastapi import Depends, HTTPException, status

from app.features.session.context import SessionContext
from app.features.users.dependencies import require_session
from app.utils import get_logger


log = get_logger(__name__)


def require_module(module: str):
    """Dependency factory: 403 unless the session can open ``module``."""
    async def module_dependency(session: SessionContext = Depends(require_session)) -> SessionContext:
        if not session.has_module_access(module):
            log.debug(f"User {session.principal.user_id} denied module {module}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied to {module} module."
            )
        return session

    return module_dependency


def require_permission(group: str, action: str):
    """
    Dependency factory: 403 unless the session holds ``group.action``.

    The module gate is checked first so the error names the missing module.
    """
    async def permission_dependency(session: SessionContext = Depends(require_session)) -> SessionContext:
        if not session.has_module_access(group):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied to {group} module."
            )
        if not session.has_permission(group, action):
            log.debug(f"User {session.principal.user_id} denied {group}.{action}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. You don't have permission to {action} in {group}."
            )
        return session

    return permission_dependency


async def require_admin(session: SessionContext = Depends(require_session)) -> SessionContext:
    """Dependency: 403 unless the session belongs to an administrator."""
    if not session.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required."
        )
    return session

"""
FastAPI dependencies for authentication.

Every authenticated request gets a SessionContext resolved from its bearer
token; route guards in ``app.features.permissions.dependencies`` build on it.
"""
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.catalog import PermissionCatalog
from app.features.permissions.errors import ResolutionFailure
from app.features.permissions.evaluator import AccessEvaluator, Principal
from app.features.session.context import SessionContext
from app.features.users.auth import verify_jwt_token
from app.features.users.models import User


security = HTTPBearer(auto_error=False)


def get_catalog(request: Request) -> PermissionCatalog:
    """The process-wide catalog installed on ``app.state`` at startup."""
    return request.app.state.catalog


def get_evaluator(catalog: Annotated[PermissionCatalog, Depends(get_catalog)]) -> AccessEvaluator:
    return AccessEvaluator(catalog)


async def load_principal(db: AsyncSession, token: Optional[str]) -> Principal:
    """
    Resolve the principal behind a bearer token.

    Raises:
        ResolutionFailure: for missing or invalid tokens, unknown or inactive
            users, and users without a role
    """
    if not token:
        raise ResolutionFailure("No token provided. Authentication required.")

    user_id = verify_jwt_token(token)
    user = await db.get(User, user_id)

    if user is None:
        raise ResolutionFailure("User not found.")
    if not user.is_active:
        raise ResolutionFailure("Account is inactive. Please contact administrator.", status.HTTP_403_FORBIDDEN)
    if user.role is None:
        raise ResolutionFailure("Access denied. No role assigned.", status.HTTP_403_FORBIDDEN)

    role = user.role.snapshot()
    return Principal(user_id=user.id, role=role, is_admin=user.is_admin or role.is_admin)


async def get_session(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    evaluator: Annotated[AccessEvaluator, Depends(get_evaluator)],
) -> SessionContext:
    """Session for the current request; unauthenticated if resolution failed."""
    session = SessionContext(evaluator)
    token = credentials.credentials if credentials else None
    await session.resolve(lambda: load_principal(db, token))
    return session


async def require_session(
    session: Annotated[SessionContext, Depends(get_session)]
) -> SessionContext:
    """
    Require an authenticated session.

    Usage:
        @router.get("/me")
        async def me(session: SessionContext = Depends(require_session)):
            return session.principal
    """
    if not session.is_authenticated:
        failure = session.failure
        raise HTTPException(
            status_code=failure.status_code if failure else status.HTTP_401_UNAUTHORIZED,
            detail=failure.reason if failure else "Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def get_current_user(
    session: Annotated[SessionContext, Depends(require_session)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """The User row behind the authenticated session."""
    user = await db.get(User, session.principal.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found.")
    return user


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"

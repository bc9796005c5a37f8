"""
Bearer token helpers.

Tokens are HS256 JWTs whose ``sub`` claim is the user id. Issuing tokens
belongs to the login flow; ``issue_access_token`` signs a token and records
the login time, ``create_access_token`` only signs.
"""
from datetime import datetime, timedelta, timezone
import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.features.permissions.errors import ResolutionFailure
from app.features.users.models import User


def create_access_token(user_id: str, expires_in: timedelta | None = None) -> str:
    """Sign a token for ``user_id``."""
    expires_at = datetime.now(timezone.utc) + (expires_in or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": user_id, "exp": expires_at}
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


async def issue_access_token(db: AsyncSession, user: User) -> str:
    """Sign a token for ``user`` and record the login time."""
    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)
    return create_access_token(user.id)


def verify_jwt_token(token: str) -> str:
    """
    Verify a bearer token and return the user id it was issued for.

    Raises:
        ResolutionFailure: If the token is expired, malformed or has no subject
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ResolutionFailure("Token expired. Please login again.")
    except jwt.InvalidTokenError as e:
        raise ResolutionFailure(f"Invalid token: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        raise ResolutionFailure("Invalid token payload")
    return user_id

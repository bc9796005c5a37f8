"""
Pydantic schemas for the current session.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class NavItemResponse(BaseModel):
    id: str
    name: str
    path: str
    module: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SessionRole(BaseModel):
    id: str
    name: str
    is_admin: bool


class SessionResponse(BaseModel):
    """Everything a client needs to render guarded views for the current user."""
    user_id: str
    email: str
    name: str
    role: SessionRole
    is_admin: bool
    permissions: Dict[str, Dict[str, bool]]
    navigation: List[NavItemResponse]


class SessionPermissionsResponse(BaseModel):
    role_name: str
    is_admin: bool
    permissions: Dict[str, Dict[str, bool]]

"""
Pydantic schemas for role management.
"""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, StrictBool, field_validator


# Wire format of a permission set: {group: {key: bool}}
PermissionPayload = Dict[str, Dict[str, StrictBool]]


class RoleBase(BaseModel):
    """Base role schema."""
    name: str = Field(..., min_length=1, max_length=50, description="Unique role name")
    description: str = Field("", max_length=1000, description="Role description")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        """Strip surrounding whitespace; reject names that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Role name is required")
        return v


class RoleCreate(RoleBase):
    """Schema for creating a new role."""
    permissions: PermissionPayload = Field(default_factory=dict, description="Two-level permission set")


class RoleUpdate(BaseModel):
    """
    Schema for updating a role.

    ``permissions`` replaces the stored set as a whole; there is no partial patch.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    permissions: Optional[PermissionPayload] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Role name cannot be empty")
        return v


class RoleResponse(RoleBase):
    """Schema for role response."""
    id: str
    permissions: PermissionPayload
    is_system_role: bool
    is_admin: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleUserResponse(BaseModel):
    id: str
    email: str
    name: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class RoleUsersResponse(BaseModel):
    users: List[RoleUserResponse]
    count: int


# ============================================================================
# Audit Log Schemas
# ============================================================================

class AuditLogResponse(BaseModel):
    """Schema for audit log response."""
    id: str
    user_id: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    details: Optional[Dict]
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    """Schema for paginated audit log list."""
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    pages: int

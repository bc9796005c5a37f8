"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)


class UserUpdate(BaseModel):
    """Schema for updating the current user's profile."""
    name: str | None = Field(None, min_length=1, max_length=255)


class UserCreate(UserBase):
    """Schema for creating a user with a role (admin only)."""
    role_id: str = Field(..., description="Role ID")


class UserRoleAssignment(BaseModel):
    """Schema for assigning a role to a user."""
    role_id: str = Field(..., description="Role ID")


class UserRoleSummary(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class UserStatusResponse(BaseModel):
    message: str
    is_active: bool


class UserResponse(UserBase):
    """Schema for user responses."""
    id: str
    is_active: bool
    is_admin: bool
    role_id: str | None = None
    role: UserRoleSummary | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

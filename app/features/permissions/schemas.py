"""
Pydantic schemas for the permission catalog, access checks and editor sessions.
"""
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, StrictBool, model_validator


# ============================================================================
# Catalog Schemas
# ============================================================================

class PermissionDefResponse(BaseModel):
    key: str
    label: str
    implemented: bool


class PermissionGroupResponse(BaseModel):
    key: str
    title: str
    permissions: List[PermissionDefResponse]


# ============================================================================
# Permission Check Schemas
# ============================================================================

class PermissionCheckRequest(BaseModel):
    """Schema for checking if the current user holds a permission."""
    group: str = Field(..., description="Permission group, 'modules' for module access")
    action: str = Field(..., description="Permission key within the group")


class PermissionCheckResponse(BaseModel):
    """Schema for permission check response."""
    has_permission: bool
    reason: Optional[str] = None


# ============================================================================
# Editor Schemas
# ============================================================================

class EditorOperation(BaseModel):
    """One interactive edit: set a single checkbox or toggle a whole group."""
    op: Literal["set", "toggle_all"]
    group: str
    key: Optional[str] = None
    value: Optional[StrictBool] = None

    @model_validator(mode="after")
    def check_arguments(self) -> "EditorOperation":
        if self.op == "set" and (self.key is None or self.value is None):
            raise ValueError("'set' requires key and value")
        return self


class EditorApplyRequest(BaseModel):
    """Starting permission set (e.g. the stored role) and the edits to replay on it."""
    permissions: Dict[str, Dict[str, StrictBool]] = Field(default_factory=dict)
    operations: List[EditorOperation] = Field(default_factory=list)


class EditOutcomeResponse(BaseModel):
    ok: bool
    kind: str
    group: str
    key: Optional[str] = None
    message: str


class EditorApplyResponse(BaseModel):
    permissions: Dict[str, Dict[str, bool]]
    results: List[EditOutcomeResponse]

"""
Module and action access checks.

Administrators bypass every check without consulting the stored permission
set. For everyone else the stored value is returned as-is, provided the
catalog offers the key; anything the catalog does not know is denied.
"""
from dataclasses import dataclass
from typing import Optional

from app.features.permissions.catalog import MODULES_GROUP, PermissionCatalog
from app.features.permissions.permission_set import PermissionSet


@dataclass(frozen=True)
class RoleSnapshot:
    """The parts of a stored role a session needs, detached from the ORM."""
    id: str
    name: str
    permissions: PermissionSet
    is_admin: bool = False


@dataclass(frozen=True)
class Principal:
    """
    Authenticated identity with its resolved role.

    ``is_admin`` is resolved once, when the session is loaded, from the explicit
    admin flags on the user and the role.
    """
    user_id: str
    role: RoleSnapshot
    is_admin: bool = False

    @property
    def permissions(self) -> PermissionSet:
        return self.role.permissions


class AccessEvaluator:
    """Pure access queries against a catalog."""

    def __init__(self, catalog: PermissionCatalog):
        self.catalog = catalog

    def is_admin(self, principal: Optional[Principal]) -> bool:
        return principal is not None and principal.is_admin

    def has_module_access(self, principal: Optional[Principal], module_key: str) -> bool:
        if principal is None:
            return False
        if principal.is_admin:
            return True
        if not self.catalog.is_reachable(MODULES_GROUP, module_key):
            return False
        return principal.permissions.get_value(MODULES_GROUP, module_key)

    def has_permission(self, principal: Optional[Principal], group: str, action: str) -> bool:
        # No read-time module check: the module rule is guaranteed when the set is written.
        if principal is None:
            return False
        if principal.is_admin:
            return True
        if not self.catalog.is_reachable(group, action):
            return False
        return principal.permissions.get_value(group, action)

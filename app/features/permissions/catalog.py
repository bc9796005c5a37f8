"""
Permission catalog: the fixed list of valid (group, permission) pairs.

The catalog is built once at startup (``build_default_catalog``), stored on
``app.state.catalog`` and handed to every consumer. Group ``"modules"`` lists
the gate-able modules; every other group holds the functionality permissions
of the module with the same key.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from app.features.permissions.errors import UnknownPermissionKey


MODULES_GROUP = "modules"


@dataclass(frozen=True)
class PermissionDef:
    key: str
    label: str
    implemented: bool = True


@dataclass(frozen=True)
class PermissionGroup:
    key: str
    title: str
    permissions: Tuple[PermissionDef, ...]

    def get(self, key: str) -> PermissionDef | None:
        for permission in self.permissions:
            if permission.key == key:
                return permission
        return None

    @property
    def implemented(self) -> Tuple[PermissionDef, ...]:
        return tuple(p for p in self.permissions if p.implemented)


@dataclass(frozen=True)
class PermissionCatalog:
    """
    Immutable registry of permission groups.

    Construction validates that keys are unique within a group and that every
    functionality group is backed by an entry in the ``modules`` group.

    Raises:
        ValueError: if the groups violate either rule
    """
    groups: Tuple[PermissionGroup, ...]
    _index: Dict[str, Dict[str, PermissionDef]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        index: Dict[str, Dict[str, PermissionDef]] = {}
        for group in self.groups:
            if group.key in index:
                raise ValueError(f"Duplicate permission group '{group.key}'")
            entries: Dict[str, PermissionDef] = {}
            for permission in group.permissions:
                if permission.key in entries:
                    raise ValueError(f"Duplicate permission '{group.key}.{permission.key}'")
                entries[permission.key] = permission
            index[group.key] = entries

        if MODULES_GROUP not in index:
            raise ValueError("Catalog must define the 'modules' group")
        for key in index:
            if key != MODULES_GROUP and key not in index[MODULES_GROUP]:
                raise ValueError(f"Group '{key}' has no matching entry in 'modules'")

        object.__setattr__(self, "_index", index)

    def group(self, key: str) -> PermissionGroup | None:
        for group in self.groups:
            if group.key == key:
                return group
        return None

    def group_keys(self) -> List[str]:
        return [group.key for group in self.groups]

    def module_keys(self) -> List[str]:
        """Implemented module keys, in catalog order."""
        return self.implemented_keys(MODULES_GROUP)

    def contains(self, group: str, key: str) -> bool:
        return key in self._index.get(group, {})

    def is_reachable(self, group: str, key: str) -> bool:
        """True when the pair is in the catalog and its feature is implemented."""
        permission = self._index.get(group, {}).get(key)
        return permission is not None and permission.implemented

    def implemented_keys(self, group: str) -> List[str]:
        found = self.group(group)
        if found is None:
            return []
        return [p.key for p in found.implemented]

    def require(self, group: str, key: str) -> PermissionDef:
        """
        Look up an editable permission.

        Raises:
            UnknownPermissionKeyError: for absent or unimplemented entries
        """
        if group not in self._index:
            raise UnknownPermissionKeyError(UnknownPermissionKey(group))
        permission = self._index[group].get(key)
        if permission is None or not permission.implemented:
            raise UnknownPermissionKeyError(UnknownPermissionKey(group, key))
        return permission

    def to_json(self, include_unimplemented: bool = False) -> List[Dict[str, Any]]:
        return [
            {
                "key": group.key,
                "title": group.title,
                "permissions": [
                    {"key": p.key, "label": p.label, "implemented": p.implemented}
                    for p in group.permissions
                    if include_unimplemented or p.implemented
                ],
            }
            for group in self.groups
        ]


class UnknownPermissionKeyError(LookupError):
    """Raised by ``PermissionCatalog.require`` for keys the catalog does not offer."""

    def __init__(self, outcome: UnknownPermissionKey):
        super().__init__(outcome.message)
        self.outcome = outcome


# ============================================================================
# Default CRM Catalog
# ============================================================================

def _group(key: str, title: str, entries: Iterable[Tuple[str, str, bool]]) -> PermissionGroup:
    return PermissionGroup(
        key=key,
        title=title,
        permissions=tuple(PermissionDef(k, label, implemented) for k, label, implemented in entries),
    )


_CRUD = [
    ("view", "View", True),
    ("create", "Create", True),
    ("edit", "Edit", True),
    ("delete", "Delete", True),
]


def build_default_catalog() -> PermissionCatalog:
    """Catalog of the CRM modules and their actions."""
    return PermissionCatalog(groups=(
        _group(MODULES_GROUP, "Module Access", [
            ("home", "Home", True),
            ("clients", "Clients", True),
            ("inventory", "Inventory", True),
            ("dashboard", "Dashboard", True),
            ("quotation", "Quotation", True),
            ("quoteHistory", "Quote History", True),
            ("settings", "Settings", True),
            ("meetings", "Meetings", True),
            ("notes", "Notes", True),
        ]),
        _group("clients", "Client Permissions", _CRUD + [
            ("duplicate", "Duplicate", False),
            ("export", "Export", True),
            ("import", "Import", True),
        ]),
        _group("inventory", "Inventory Permissions", _CRUD + [
            ("duplicate", "Duplicate", False),
            ("manageStock", "Manage Stock", True),
            ("export", "Export", True),
            ("import", "Import", False),
        ]),
        _group("quotation", "Quotation Permissions", _CRUD + [
            ("duplicate", "Duplicate", False),
            ("generatePdf", "Generate PDF", True),
            ("export", "Export", True),
        ]),
        _group("quoteHistory", "Quote History Permissions", [
            (key, label, False) for key, label, _ in _CRUD
        ] + [
            ("duplicate", "Duplicate", False),
            ("export", "Export", False),
        ]),
        _group("meetings", "Meeting Permissions", _CRUD),
        _group("notes", "Notes Permissions", _CRUD),
        _group("dashboard", "Dashboard Permissions", [
            ("view", "View", False),
            ("viewAnalytics", "View Analytics", True),
            ("viewReports", "View Reports", True),
            ("exportReports", "Export Reports", True),
        ]),
        _group("settings", "Settings Permissions", [
            ("view", "View", False),
            ("viewCompanySettings", "View Company Settings", True),
            ("editCompanySettings", "Edit Company Settings", True),
            ("manageUsers", "Manage Users", True),
            ("manageRoles", "Manage Roles", True),
        ]),
    ))

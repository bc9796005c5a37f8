"""
Draft editing of a role's permission set.

The editor keeps the module rule true after every call: a functionality
permission can only be granted while its module is enabled, and disabling a
module clears every permission of that module. Rejected edits return an
outcome value and leave the draft untouched.
"""
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from app.features.permissions.catalog import (
    MODULES_GROUP,
    PermissionCatalog,
    UnknownPermissionKeyError,
)
from app.features.permissions.errors import (
    Applied,
    EditResult,
    ModuleNotEnabled,
    PermissionPayloadError,
    UnknownPermissionKey,
)
from app.features.permissions.permission_set import PermissionSet
from app.utils import get_logger


log = get_logger(__name__)


class RoleEditor:
    """
    Stateful editor for one role's permissions.

    Usage:
        editor = RoleEditor(catalog, role_permissions)
        result = editor.set_permission("clients", "edit", True)
        if not result.ok:
            warn(result.message)
        role.permissions = editor.commit().to_json()
    """

    def __init__(self, catalog: PermissionCatalog, initial: Optional[Mapping[str, Mapping[str, bool]]] = None):
        self.catalog = catalog
        self._draft: Dict[str, Dict[str, bool]] = self._hydrate(initial or {})
        # (group, values before the toggle) of the last bulk toggle, cleared by any other edit
        self._last_toggle: Optional[Tuple[str, Dict[str, Dict[str, bool]]]] = None

    def _hydrate(self, initial: Mapping[str, Mapping[str, bool]]) -> Dict[str, Dict[str, bool]]:
        draft: Dict[str, Dict[str, bool]] = {key: {} for key in self.catalog.group_keys()}
        for group, entries in initial.items():
            if group not in draft:
                log.warning(f"Dropping permission group '{group}' not present in the catalog")
                continue
            for key, value in entries.items():
                if not self.catalog.contains(group, key):
                    log.warning(f"Dropping permission '{group}.{key}' not present in the catalog")
                    continue
                if value is True and not self.catalog.is_reachable(group, key):
                    log.warning(f"Dropping grant '{group}.{key}' for a feature that is not implemented")
                    continue
                draft[group][key] = value is True

        modules = draft[MODULES_GROUP]
        for group, entries in draft.items():
            if group == MODULES_GROUP or modules.get(group) is True:
                continue
            if any(entries.values()):
                log.warning(f"Clearing permissions of disabled module '{group}'")
            draft[group] = {}
        return draft

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def draft(self) -> Mapping[str, Mapping[str, bool]]:
        return MappingProxyType({group: MappingProxyType(entries) for group, entries in self._draft.items()})

    def is_enabled(self, group: str, key: str) -> bool:
        return self._draft.get(group, {}).get(key) is True

    def module_enabled(self, module: str) -> bool:
        return self.is_enabled(MODULES_GROUP, module)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_permission(self, group: str, key: str, desired: bool) -> EditResult:
        """
        Set one permission in the draft.

        Returns:
            Applied, or the rejection (UnknownPermissionKey, ModuleNotEnabled)
            with the draft unchanged
        """
        try:
            self.catalog.require(group, key)
        except UnknownPermissionKeyError as exc:
            return exc.outcome

        if group != MODULES_GROUP and not self.module_enabled(group):
            return ModuleNotEnabled(group, key)

        self._last_toggle = None
        self._assign(group, key, bool(desired))
        return Applied(group, key)

    def toggle_all_in_group(self, group: str) -> EditResult:
        """
        Grant every implemented permission of the group, or revoke them all
        when they are already all granted.

        Calling it again on the same group with no edit in between restores
        the values the group had before the first call, which may be a mixed
        group, rather than applying all-or-nothing a second time.
        """
        found = self.catalog.group(group)
        if found is None:
            return UnknownPermissionKey(group)
        if group != MODULES_GROUP and not self.module_enabled(group):
            return ModuleNotEnabled(group)

        if self._last_toggle is not None and self._last_toggle[0] == group:
            _, before = self._last_toggle
            self._last_toggle = None
            for key, value in before[group].items():
                self._assign(group, key, value)
            return Applied(group)

        before = {group: {key: self.is_enabled(group, key) for key in self.catalog.implemented_keys(group)}}
        desired = not all(before[group].values())
        for key in before[group]:
            self._assign(group, key, desired)
        self._last_toggle = (group, before)
        return Applied(group)

    def _assign(self, group: str, key: str, value: bool) -> None:
        if group == MODULES_GROUP:
            was_enabled = self.module_enabled(key)
            self._draft[MODULES_GROUP][key] = value
            if was_enabled and not value and key in self._draft:
                log.debug(f"Module '{key}' disabled, clearing its permissions")
                self._draft[key] = {}
            return
        self._draft[group][key] = value

    def commit(self) -> PermissionSet:
        return PermissionSet(self._draft)

    # ------------------------------------------------------------------
    # Wire payloads
    # ------------------------------------------------------------------

    @classmethod
    def from_payload(cls, catalog: PermissionCatalog, payload: Any) -> "RoleEditor":
        """
        Build an editor by replaying a wire-format permission set.

        Modules are applied first, then functionality grants. ``false`` values
        only need to name catalog keys; ``true`` values go through
        ``set_permission`` so the module rule is enforced.

        Raises:
            ValueError: if the payload is not a two-level object of booleans
            PermissionPayloadError: on the first rejected grant
        """
        requested = PermissionSet.from_json(payload)
        for group, entries in requested.items():
            if catalog.group(group) is None:
                raise PermissionPayloadError(UnknownPermissionKey(group))
            for key in entries:
                if not catalog.contains(group, key):
                    raise PermissionPayloadError(UnknownPermissionKey(group, key))

        editor = cls(catalog)
        ordered = sorted(requested.granted(), key=lambda pair: pair[0] != MODULES_GROUP)
        for group, key in ordered:
            result = editor.set_permission(group, key, True)
            if not result.ok:
                raise PermissionPayloadError(result)
        return editor

"""
Immutable two-level grant table owned by a role.

Wire format (JSON column and API bodies):

    {"modules": {"clients": true}, "clients": {"view": true, "edit": false}}

Absent keys mean ``False``. Only JSON booleans are accepted as values.
"""
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from app.features.permissions.catalog import MODULES_GROUP


Grants = Mapping[str, Mapping[str, bool]]


class PermissionSet(Mapping[str, Mapping[str, bool]]):
    """
    Read-only mapping ``group -> {permission key -> bool}``.

    Lookups through ``get_value`` never raise; missing groups or keys are
    reported as ``False``. Two sets are equal when they grant the same pairs.
    """

    __slots__ = ("_groups",)

    def __init__(self, grants: Grants | None = None):
        frozen: Dict[str, Mapping[str, bool]] = {}
        for group, entries in (grants or {}).items():
            frozen[group] = MappingProxyType({key: bool(value) for key, value in entries.items()})
        self._groups = MappingProxyType(frozen)

    def __getitem__(self, group: str) -> Mapping[str, bool]:
        return self._groups[group]

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        try:
            other_set = other if isinstance(other, PermissionSet) else PermissionSet(other)
        except (AttributeError, TypeError):
            return NotImplemented
        return sorted(self.granted()) == sorted(other_set.granted())

    def __hash__(self):
        return hash(tuple(sorted(self.granted())))

    def __repr__(self) -> str:
        return f"PermissionSet({self.to_json()!r})"

    def get_value(self, group: str, key: str) -> bool:
        return self._groups.get(group, {}).get(key, False) is True

    def is_module_enabled(self, module: str) -> bool:
        return self.get_value(MODULES_GROUP, module)

    def granted(self) -> List[Tuple[str, str]]:
        """All (group, key) pairs stored as ``True``."""
        return [
            (group, key)
            for group, entries in self._groups.items()
            for key, value in entries.items()
            if value
        ]

    def orphaned_grants(self) -> List[Tuple[str, str]]:
        """Functionality grants whose owning module is not enabled."""
        return [
            (group, key)
            for group, key in self.granted()
            if group != MODULES_GROUP and not self.is_module_enabled(group)
        ]

    def to_json(self) -> Dict[str, Dict[str, bool]]:
        return {group: dict(entries) for group, entries in self._groups.items()}

    @classmethod
    def from_json(cls, payload: Any) -> "PermissionSet":
        """
        Decode the wire format.

        Raises:
            ValueError: if the payload is not a two-level object of booleans
        """
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise ValueError("Permission set must be a JSON object")
        grants: Dict[str, Dict[str, bool]] = {}
        for group, entries in payload.items():
            if not isinstance(entries, Mapping):
                raise ValueError(f"Permissions for '{group}' must be a JSON object")
            for key, value in entries.items():
                if not isinstance(value, bool):
                    raise ValueError(f"Permission '{group}.{key}' must be a boolean")
            grants[str(group)] = {str(key): value for key, value in entries.items()}
        return cls(grants)

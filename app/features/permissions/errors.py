"""
Outcomes and errors of the permission engine.

Editor rejections are returned as values (``ModuleNotEnabled``,
``UnknownPermissionKey``) so callers decide how to present them. Only
conditions that cross a collaborator boundary are raised as exceptions.
"""
from dataclasses import dataclass
from typing import Union


# ============================================================================
# Editor Outcomes
# ============================================================================

@dataclass(frozen=True)
class Applied:
    """The mutation was applied to the draft."""
    group: str
    key: str | None = None

    ok = True
    kind = "applied"

    @property
    def message(self) -> str:
        target = f"{self.group}.{self.key}" if self.key else self.group
        return f"Updated {target}"


@dataclass(frozen=True)
class ModuleNotEnabled:
    """A functionality permission was touched while its module is disabled."""
    group: str
    key: str | None = None

    ok = False
    kind = "module_not_enabled"

    @property
    def message(self) -> str:
        return f"Enable the '{self.group}' module before granting its permissions"


@dataclass(frozen=True)
class UnknownPermissionKey:
    """The (group, key) pair is not offered by the permission catalog."""
    group: str
    key: str | None = None

    ok = False
    kind = "unknown_permission_key"

    @property
    def message(self) -> str:
        if self.key is None:
            return f"Unknown permission group '{self.group}'"
        return f"Unknown permission '{self.group}.{self.key}'"


EditResult = Union[Applied, ModuleNotEnabled, UnknownPermissionKey]
Rejection = Union[ModuleNotEnabled, UnknownPermissionKey]


def describe(result: EditResult) -> dict:
    """Serializable form of an edit outcome, used in API bodies."""
    return {
        "ok": result.ok,
        "kind": result.kind,
        "group": result.group,
        "key": result.key,
        "message": result.message,
    }


# ============================================================================
# Exceptions
# ============================================================================

class PermissionPayloadError(ValueError):
    """A wire-format permission set could not be replayed through the editor."""

    def __init__(self, rejection: Rejection):
        super().__init__(rejection.message)
        self.rejection = rejection


class ResolutionFailure(Exception):
    """No principal could be resolved from the presented credentials."""

    def __init__(self, reason: str, status_code: int = 401):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class StorageConflict(Exception):
    """The storage layer refused a role mutation (name taken, system role, role in use)."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

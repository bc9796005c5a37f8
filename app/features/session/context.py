"""
Per-session view of the authenticated principal.

A SessionContext starts unauthenticated, resolves its principal through an
async loader, and answers access queries for that principal until it is
cleared. The principal (with its role and admin flag) is held in a single
attribute so a query never observes a partially cleared session.
"""
import asyncio
import enum
from typing import Awaitable, Callable, Optional

from app.core import config
from app.features.permissions.errors import ResolutionFailure
from app.features.permissions.evaluator import AccessEvaluator, Principal
from app.utils import get_logger


log = get_logger(__name__)

PrincipalLoader = Callable[[], Awaitable[Principal]]


class GuardDecision(str, enum.Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    ALLOWED = "allowed"


class SessionContext:
    def __init__(self, evaluator: AccessEvaluator, timeout: float | None = None):
        self.evaluator = evaluator
        self.timeout = config.SESSION_RESOLVE_TIMEOUT if timeout is None else timeout
        self.failure: Optional[ResolutionFailure] = None
        self._principal: Optional[Principal] = None
        self._loading = False
        self._generation = 0

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._principal is not None

    def is_admin(self) -> bool:
        return self.evaluator.is_admin(self._principal)

    def has_module_access(self, module_key: str) -> bool:
        return self.evaluator.has_module_access(self._principal, module_key)

    def has_permission(self, group: str, action: str) -> bool:
        return self.evaluator.has_permission(self._principal, group, action)

    async def resolve(self, loader: PrincipalLoader) -> Optional[Principal]:
        """
        Resolve the principal with ``loader``.

        A ResolutionFailure or a timeout leaves the session unauthenticated
        (the reason is kept in ``failure``). Any other error from the loader
        also leaves it unauthenticated and is re-raised. If the session is
        cleared or resolved again while the loader is pending, the late result
        is dropped.
        """
        self._generation += 1
        generation = self._generation
        self._loading = True

        principal: Optional[Principal] = None
        failure: Optional[ResolutionFailure] = None
        current = False
        try:
            principal = await asyncio.wait_for(loader(), timeout=self.timeout)
        except ResolutionFailure as exc:
            log.info(f"Session resolution failed: {exc.reason}")
            failure = exc
        except asyncio.TimeoutError:
            log.warning(f"Session resolution timed out after {self.timeout}s")
            failure = ResolutionFailure("Session resolution timed out", status_code=503)
        finally:
            current = generation == self._generation
            if current:
                self._principal = principal
                self.failure = failure
                self._loading = False

        if not current:
            log.debug("Discarding stale session resolution")
            return self._principal

        if principal is not None:
            log.debug(f"Session resolved for user {principal.user_id} (role={principal.role.name})")
        return principal

    def clear(self) -> None:
        """Logout or token invalidation: drop the principal and any pending resolution."""
        self._generation += 1
        self._principal = None
        self.failure = None
        self._loading = False

    def guard(self, require_module: str | None = None, require_admin: bool = False) -> GuardDecision:
        """Decision for a protected view."""
        if self._loading:
            return GuardDecision.LOADING
        if not self.is_authenticated:
            return GuardDecision.UNAUTHENTICATED
        if require_admin and not self.is_admin():
            return GuardDecision.FORBIDDEN
        if require_module and not self.has_module_access(require_module):
            return GuardDecision.FORBIDDEN
        return GuardDecision.ALLOWED

"""Permission gate consulted by every mutating or generating entry point."""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from typing import Dict, Protocol, Set, runtime_checkable

from .errors import AuthorizationError, LifecycleError
from .logging import get_logger

LOGGER = get_logger(__name__)

TRAINER = "trainer"
GENERATOR = "generator"
ADMIN = "admin"
ROLES = frozenset({TRAINER, GENERATOR, ADMIN})


@runtime_checkable
class PermissionGate(Protocol):
    def can_train(self, caller: Hashable) -> bool: ...

    def can_generate(self, caller: Hashable) -> bool: ...

    def can_administer(self, caller: Hashable) -> bool: ...

    def paused(self) -> bool: ...


class OpenGate:
    """Gate for local tooling: every caller may do everything, never paused."""

    def can_train(self, caller: Hashable) -> bool:
        return True

    def can_generate(self, caller: Hashable) -> bool:
        return True

    def can_administer(self, caller: Hashable) -> bool:
        return True

    def paused(self) -> bool:
        return False


class RoleGate:
    """In-memory role assignments plus a pause flag."""

    def __init__(self, roles: Dict[Hashable, Iterable[str]] | None = None) -> None:
        self._roles: Dict[Hashable, Set[str]] = {}
        self._paused = False
        for caller, granted in (roles or {}).items():
            for role in granted:
                self.grant(caller, role)

    def grant(self, caller: Hashable, role: str) -> None:
        if role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        self._roles.setdefault(caller, set()).add(role)
        LOGGER.debug("Granted %s to %r", role, caller)

    def revoke(self, caller: Hashable, role: str) -> None:
        self._roles.get(caller, set()).discard(role)

    def _has(self, caller: Hashable, role: str) -> bool:
        return role in self._roles.get(caller, set())

    def can_train(self, caller: Hashable) -> bool:
        return self._has(caller, TRAINER)

    def can_generate(self, caller: Hashable) -> bool:
        return self._has(caller, GENERATOR)

    def can_administer(self, caller: Hashable) -> bool:
        return self._has(caller, ADMIN)

    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False


def require_train(gate: PermissionGate, caller: Hashable) -> None:
    if not gate.can_train(caller):
        raise AuthorizationError(f"{caller!r} may not train")
    if gate.paused():
        raise LifecycleError("training is paused")


def require_generate(gate: PermissionGate, caller: Hashable) -> None:
    if not gate.can_generate(caller):
        raise AuthorizationError(f"{caller!r} may not generate")
    if gate.paused():
        raise LifecycleError("generation is paused")


def require_admin(gate: PermissionGate, caller: Hashable) -> None:
    if not gate.can_administer(caller):
        raise AuthorizationError(f"{caller!r} may not administer")

"""Exception hierarchy raised by the generation engine."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised by :mod:`layered_lexicon`."""


class ValidationError(EngineError, ValueError):
    """Input rejected before any state was touched."""


class AuthorizationError(EngineError, PermissionError):
    """Caller lacks the role required by an entry point."""


class UnavailableError(EngineError, LookupError):
    """No template, candidate or start word survived every fallback."""


class LifecycleError(EngineError, RuntimeError):
    """Operation attempted while the engine is paused."""


class NotificationError(EngineError, RuntimeError):
    """A subscriber failed after the notified change was already applied."""


__all__ = [
    "AuthorizationError",
    "EngineError",
    "LifecycleError",
    "NotificationError",
    "UnavailableError",
    "ValidationError",
]

"""Notifications emitted by mutating and generating entry points."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Deque, List

from .errors import NotificationError
from .logging import get_logger

LOGGER = get_logger(__name__)

Listener = Callable[["EngineEvent"], None]


@dataclass(frozen=True)
class EngineEvent:
    name: str
    key: Hashable
    count: int


class EventLog:
    """Fan events out to subscribers and keep the most recent ones.

    Events are emitted after the change they describe has been committed. A
    failing listener does not stop the others; once every listener has run,
    :class:`NotificationError` reports the failures to the caller.
    """

    def __init__(self, history: int = 256) -> None:
        self._listeners: List[Listener] = []
        self._history: Deque[EngineEvent] = deque(maxlen=history)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def emit(self, name: str, key: Hashable, count: int) -> EngineEvent:
        event = EngineEvent(name=name, key=key, count=count)
        self._history.append(event)
        LOGGER.debug("Emitted %s key=%r count=%d", name, key, count)
        failures = 0
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                failures += 1
                LOGGER.exception("Listener %r failed on %s", listener, name)
        if failures:
            raise NotificationError(
                f"{failures} listener(s) failed on {name}; the change itself was applied"
            )
        return event

    @property
    def history(self) -> List[EngineEvent]:
        return list(self._history)

    def names(self) -> List[str]:
        return [event.name for event in self._history]

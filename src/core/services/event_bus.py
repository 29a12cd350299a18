"""Keyboard download event notifications.

Listeners are called synchronously, in registration order, on the thread
that emits the event. A listener that raises is logged and skipped so the
rest still get the event.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Protocol, Union, runtime_checkable

from core.domain.models import InstalledKeyboard

LOGGER = logging.getLogger(__name__)


class EventType(str, Enum):
    DOWNLOAD_STARTED = "download_started"
    DOWNLOAD_FINISHED = "download_finished"
    PACKAGE_INSTALLED = "package_installed"


EventPayload = Union[dict[str, str], list[InstalledKeyboard]]


@runtime_checkable
class KeyboardEventListener(Protocol):
    def on_event(self, event_type: EventType, payload: EventPayload, result_code: int) -> None:
        ...


ListenerLike = Union[KeyboardEventListener, Callable[[EventType, EventPayload, int], None]]


class Subscription:
    """Handle returned by `EventBus.subscribe`; `cancel()` unregisters."""

    def __init__(self, bus: "EventBus", listener: ListenerLike) -> None:
        self._bus = bus
        self._listener = listener

    @property
    def active(self) -> bool:
        return self._bus.has_listener(self._listener)

    def cancel(self) -> None:
        self._bus.remove_listener(self._listener)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()


class EventBus:
    def __init__(self) -> None:
        self._listeners: list[ListenerLike] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def has_listener(self, listener: ListenerLike) -> bool:
        return listener in self._listeners

    def add_listener(self, listener: ListenerLike | None) -> None:
        """Register `listener`; registering it twice has no effect."""

        if listener is not None and listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ListenerLike | None) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def subscribe(self, listener: ListenerLike) -> Subscription:
        self.add_listener(listener)
        return Subscription(self, listener)

    def notify(self, event_type: EventType, payload: EventPayload, result_code: int) -> None:
        # Snapshot so listeners may unsubscribe while being notified.
        for listener in list(self._listeners):
            handler = listener.on_event if isinstance(listener, KeyboardEventListener) else listener
            try:
                handler(event_type, payload, result_code)
            except Exception:
                LOGGER.exception("Listener %r failed on %s", listener, event_type.value)


default_bus = EventBus()

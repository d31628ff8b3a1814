"""Listener registries and cancelable subscriptions.

Every observable collaborator (text buffers, chart engines, node boxes)
hands out a :class:`Subscription` from its ``on_*`` / ``observe_*``
methods; cancelling it removes exactly that callback.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class Subscription(Protocol):
    def cancel(self) -> None: ...


class _ListenerSubscription:
    def __init__(self, listeners: Listeners, callback: Callable[..., Any]) -> None:
        self._listeners = listeners
        self._callback: Callable[..., Any] | None = callback

    def cancel(self) -> None:
        if self._callback is not None:
            self._listeners.discard(self._callback)
            self._callback = None


class Listeners:
    """Ordered set of callbacks notified synchronously by :meth:`emit`."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[..., Any]] = []

    def add(self, callback: Callable[..., Any]) -> Subscription:
        self._callbacks.append(callback)
        return _ListenerSubscription(self, callback)

    def discard(self, callback: Callable[..., Any]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def clear(self) -> None:
        self._callbacks.clear()

    def emit(self, *args: Any) -> None:
        # Copy so a callback may unsubscribe itself.
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)

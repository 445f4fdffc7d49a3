from __future__ import annotations

import typing

Listener = typing.Callable[..., typing.Any]

E = typing.TypeVar("E", bound="EventEmitter")


class EventEmitter:
    """
    Minimal synchronous event dispatch.

    Listeners run in registration order, on the caller's thread, at the
    moment `emit()` is called.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self: E, event: str, listener: Listener) -> E:
        self._listeners.setdefault(event, []).append(listener)
        return self

    def once(self: E, event: str, listener: Listener) -> E:
        def wrapper(*args: typing.Any) -> None:
            self.off(event, wrapper)
            listener(*args)

        return self.on(event, wrapper)

    def off(self: E, event: str, listener: Listener | None = None) -> E:
        if listener is None:
            self._listeners.pop(event, None)
        elif listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)
        return self

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, []))

    def emit(self, event: str, *args: typing.Any) -> bool:
        listeners = self.listeners(event)
        for listener in listeners:
            listener(*args)
        return bool(listeners)

"""
DebounceTimer: cancellable one-shot timer (deadline + cancel handle) on the running event loop.

Expiry only calls back; it never touches buffers itself. The session routes the
callback through its event queue so expiry is processed like any other event.
"""
from __future__ import annotations

import asyncio
from typing import Callable


class DebounceTimer:
    def __init__(
        self,
        delay: float,
        callback: Callable[["DebounceTimer"], None],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._delay = max(0.0, delay)
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self.deadline: float | None = None
        self.cancelled = False
        self.fired = False

    def start(self) -> "DebounceTimer":
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        self.deadline = loop.time() + self._delay
        self._handle = loop.call_later(self._delay, self._fire)
        return self

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.fired

    def _fire(self) -> None:
        self._handle = None
        if self.cancelled:
            return
        self.fired = True
        self._callback(self)


TimerFactory = Callable[[float, Callable[[DebounceTimer], None]], DebounceTimer]


def start_timer(delay: float, callback: Callable[[DebounceTimer], None]) -> DebounceTimer:
    """Default TimerFactory: create and arm a DebounceTimer on the running loop."""
    return DebounceTimer(delay, callback).start()

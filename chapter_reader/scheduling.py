"""Frame and timer scheduling on top of asyncio.

Hosts that drive a real display supply their own ``FrameScheduler``; the
defaults here emulate one rendering interval with ``loop.call_later``.
"""

import asyncio
import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class FrameScheduler(Protocol):
    def request_frame(self, callback: Callback) -> None: ...


class Timers(Protocol):
    def call_later(self, delay: float, callback: Callback) -> Cancellable: ...


class LoopFrameScheduler:
    """Runs each requested callback after one frame interval."""

    def __init__(self, interval: float = 1 / 60) -> None:
        self.interval = interval

    def request_frame(self, callback: Callback) -> None:
        asyncio.get_running_loop().call_later(self.interval, callback)


class LoopTimers:
    def call_later(self, delay: float, callback: Callback) -> Cancellable:
        return asyncio.get_running_loop().call_later(delay, callback)


class CoalescedTick:
    """Collapses any number of ``schedule()`` calls into one run per frame."""

    def __init__(self, frames: FrameScheduler, fn: Callback) -> None:
        self._frames = frames
        self._fn = fn
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def schedule(self) -> None:
        if self._pending:
            return
        self._pending = True
        self._frames.request_frame(self._run)

    def _run(self) -> None:
        try:
            self._fn()
        finally:
            self._pending = False


def after_frames(frames: FrameScheduler, count: int, callback: Callback) -> None:
    """Run *callback* after *count* frame ticks (two ticks = after layout)."""
    if count <= 0:
        callback()
        return
    frames.request_frame(lambda: after_frames(frames, count - 1, callback))

"""
services/scheduler.py

Time source and timer abstraction used by the exam session.

The session never touches asyncio timers directly: it asks a TickScheduler for
a repeating or one-shot callback and gets a handle back. Cancelling the handle
guarantees the callback does not run again, which is what stops a finished
session from ticking.
"""

import asyncio
import inspect
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[Any]]]


class Clock(ABC):
    @abstractmethod
    def now_ms(self) -> int:
        ...


class SystemClock(Clock):
    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ScheduledHandle:
    """Cancellation token for a scheduled callback."""

    def __init__(self, name: str = ""):
        self.name = name
        self.cancelled = False
        self.fired = False
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """Not yet fired and not cancelled."""
        return not self.cancelled and not self.fired

    def cancel(self) -> None:
        self.cancelled = True
        task = self._task
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # a callback cancelling its own handle must be allowed to finish
        if task is not current:
            task.cancel()


class TickScheduler(ABC):
    @abstractmethod
    def every(self, interval_seconds: float, callback: Callback, name: str = "") -> ScheduledHandle:
        """Run `callback` every `interval_seconds` until the handle is cancelled."""

    @abstractmethod
    def call_later(self, delay_seconds: float, callback: Callback, name: str = "") -> ScheduledHandle:
        """Run `callback` once after `delay_seconds` unless cancelled first."""


async def run_callback(callback: Callback, name: str = "") -> None:
    """Invoke a sync or async callback; errors are logged so the loop keeps going."""
    try:
        result = callback()
        if inspect.isawaitable(result):
            await result
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception(f"Scheduled callback '{name}' failed")


class AsyncioScheduler(TickScheduler):
    """TickScheduler backed by tasks on the running event loop."""

    def every(self, interval_seconds: float, callback: Callback, name: str = "") -> ScheduledHandle:
        handle = ScheduledHandle(name)

        async def _loop():
            while not handle.cancelled:
                await asyncio.sleep(interval_seconds)
                if handle.cancelled:
                    break
                await run_callback(callback, name)

        handle._task = asyncio.get_running_loop().create_task(_loop())
        return handle

    def call_later(self, delay_seconds: float, callback: Callback, name: str = "") -> ScheduledHandle:
        handle = ScheduledHandle(name)

        async def _once():
            await asyncio.sleep(delay_seconds)
            if not handle.cancelled:
                handle.fired = True
                await run_callback(callback, name)

        handle._task = asyncio.get_running_loop().create_task(_once())
        return handle

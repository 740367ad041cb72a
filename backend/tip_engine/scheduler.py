import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from .logger import get_logger


class TimerNames:
    """Timer names used by the tip controller."""
    SHOW = "outer-tip:show"
    AUTO_HIDE = "outer-tip:auto-hide"
    FOLLOW_UP = "outer-tip:follow-up"
    RETURNING = "outer-tip:returning"
    ACTIVE_RETURN = "outer-tip:active-return"


class NamedTimerScheduler:
    """
    Delayed callbacks addressed by name, at most one pending per name.

    Scheduling a name that is already pending cancels the old timer first,
    and a replaced callback is guaranteed not to run. Timers are armed with
    `loop.call_later`; when no loop is given the running asyncio loop is
    picked up on first use.
    """

    def __init__(self, loop: Optional[Any] = None, logger: Optional[logging.Logger] = None):
        self._loop = loop
        self.logger = logger or get_logger("scheduler")
        self._timers: Dict[str, Any] = {}

    @property
    def loop(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, name: str, delay_ms: float, callback: Callable[[], Any]) -> None:
        if not name:
            raise ValueError("Timer name must be a non-empty string")
        if not callable(callback):
            raise TypeError(f"Callback for timer {name!r} must be callable")
        if delay_ms < 0:
            raise ValueError(f"Delay for timer {name!r} must be >= 0, got {delay_ms}")

        self.cancel(name)

        handle = None

        def fire():
            # Stale handle: the name was cancelled or re-scheduled
            if self._timers.get(name) is not handle:
                return
            del self._timers[name]
            self.logger.info(f"Timer fired: {name}")
            callback()

        handle = self.loop.call_later(delay_ms / 1000, fire)
        self._timers[name] = handle
        self.logger.info(f"Timer scheduled: {name} in {delay_ms}ms")

    def cancel(self, name: str) -> bool:
        handle = self._timers.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        self.logger.info(f"Timer cancelled: {name}")
        return True

    def clear_all(self) -> None:
        for name in list(self._timers):
            self.cancel(name)

    def has_scheduled(self, name: str) -> bool:
        return name in self._timers

    def __len__(self) -> int:
        return len(self._timers)

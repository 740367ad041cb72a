import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Optional

from .logger import get_logger

CHAT_OPENED = "chatOpened"
CHAT_CLOSED = "chatClosed"
MESSAGE_SENT = "messageSent"
PAGE_RETURNED = "pageReturned"

LIFECYCLE_EVENTS = (CHAT_OPENED, CHAT_CLOSED, MESSAGE_SENT, PAGE_RETURNED)

Handler = Callable[..., Any]


class LifecycleEvents:
    """
    Widget lifecycle notifications.

    Constructed by the host and handed to whoever listens; subscribers are
    expected to `off` every handler they `on`.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("events")
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def on(self, event: str, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError(f"Handler for {event!r} must be callable")
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(f"Lifecycle event: {event}")
        # Copy so a handler may unsubscribe while being called
        for handler in list(self._handlers.get(event, [])):
            handler(*args, **kwargs)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

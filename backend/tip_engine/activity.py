import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from .logger import get_logger
from .schemas import ActivityStamp, utcnow
from .storage import KeyValueStore, StorageKeyProvider


class UserActivityStore:
    """
    Persists what the visitor did with the chat: when it was last opened and
    closed, and when a message was last sent.

    Writes never raise: a failing backend is logged and the previous value
    stays in place. Reads return None/False for missing or malformed data.
    """

    SECTION = "CHAT"

    def __init__(
        self,
        storage: KeyValueStore,
        keys: Optional[StorageKeyProvider] = None,
        clock: Callable[[], datetime] = utcnow,
        logger: Optional[logging.Logger] = None,
    ):
        self.storage = storage
        self.keys = keys or StorageKeyProvider()
        self.clock = clock
        self.logger = logger or get_logger("activity")

    def mark_chat_open(self, at: Optional[datetime] = None) -> None:
        self._write("CHAT_OPEN", at)

    def mark_chat_close(self, at: Optional[datetime] = None) -> None:
        self._write("CHAT_CLOSE", at)

    def mark_message_sent(self, at: Optional[datetime] = None) -> None:
        at = at or self.clock()
        # LAST_MESSAGE_SENT alone is enough for has_sent_message
        self._write("LAST_MESSAGE_SENT", at)
        self._write("MESSAGE_SENT", at)

    def get_last_chat_open_time(self) -> Optional[datetime]:
        return self._read("CHAT_OPEN")

    def get_last_chat_close_time(self) -> Optional[datetime]:
        return self._read("CHAT_CLOSE")

    def get_last_message_sent_time(self) -> Optional[datetime]:
        return self._read("LAST_MESSAGE_SENT")

    def has_sent_message(self) -> bool:
        return (
            self.get_last_message_sent_time() is not None
            or self._read("MESSAGE_SENT") is not None
        )

    def _write(self, name: str, at: Optional[datetime]) -> None:
        key = self.keys.get(self.SECTION, name)
        if not key:
            self.logger.warning(f"No storage key for activity {name}")
            return

        stamp = ActivityStamp(timestamp=at or self.clock())
        try:
            self.storage.set(key, stamp.model_dump_json())
        except Exception as e:
            self.logger.warning(f"Failed to persist activity {name}: {e}")

    def _read(self, name: str) -> Optional[datetime]:
        key = self.keys.get(self.SECTION, name)
        if not key:
            return None

        try:
            raw = self.storage.get(key)
        except Exception as e:
            self.logger.warning(f"Failed to read activity {name}: {e}")
            return None

        if not raw:
            return None

        try:
            return ActivityStamp.model_validate_json(raw).timestamp
        except ValidationError:
            self.logger.debug(f"Ignoring malformed activity {name}: {raw!r}")
            return None

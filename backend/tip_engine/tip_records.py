import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from pydantic import ValidationError

from .logger import get_logger
from .schemas import INNER, OUTER, TipCategory, TipRecord, utcnow
from .storage import KeyValueStore, StorageKeyProvider

# (category, type) -> (section, name) in the storage key map
TIP_STORAGE_MAP: Dict[str, Dict[str, Tuple[str, str]]] = {
    OUTER: {
        "welcome": ("OUTER_TIP", "WELCOME_SHOWN"),
        "followup": ("OUTER_TIP", "FOLLOWUP_SHOWN"),
        "returning": ("OUTER_TIP", "RETURNING_SHOWN"),
        "reconnect": ("OUTER_TIP", "RECONNECT_SHOWN"),
        "active_return": ("OUTER_TIP", "ACTIVE_RETURN_SHOWN"),
    },
    INNER: {
        "greeting": ("INNER_TIP", "GREETING_SHOWN"),
        "followup": ("INNER_TIP", "FOLLOWUP_SHOWN"),
        "error": ("INNER_TIP", "ERROR_SHOWN"),
        "fallback": ("INNER_TIP", "FALLBACK_SHOWN"),
    },
}


class TipRecordStore:
    """
    Remembers, per (category, type), whether and when a tip was last shown.

    A record present means "shown at least once". Anything unreadable is
    treated as never shown so a broken value cannot silence a tip forever.
    """

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
        self.logger = logger or get_logger("tip_records")

    def key_for(self, type: str, category: TipCategory = OUTER) -> Optional[str]:
        category_map = TIP_STORAGE_MAP.get(category)
        if category_map is None:
            self.logger.warning(f"Unknown tip category: {category}")
            return None

        section_name = category_map.get(type)
        if section_name is None:
            self.logger.warning(
                f"Unknown tip type: {type} for category: {category}")
            return None

        return self.keys.get(*section_name)

    def get_record(self, type: str, category: TipCategory = OUTER) -> Optional[TipRecord]:
        key = self.key_for(type, category)
        if not key:
            return None

        try:
            raw = self.storage.get(key)
        except Exception as e:
            self.logger.warning(f"Failed to read tip record {category}/{type}: {e}")
            return None

        if not raw:
            return None

        try:
            return TipRecord.model_validate_json(raw)
        except ValidationError:
            self.logger.debug(
                f"Ignoring malformed tip record {category}/{type}: {raw!r}")
            return None

    def mark_as_shown(
        self,
        type: str,
        category: TipCategory = OUTER,
        at: Optional[datetime] = None,
    ) -> bool:
        """
        Overwrite the record for this tip with a fresh timestamp.

        Returns False when the tip is unknown or the write failed.
        """
        key = self.key_for(type, category)
        if not key:
            return False

        previous = self.get_record(type, category)
        record = TipRecord(
            type=type,
            category=category,
            timestamp=at or self.clock(),
            version=previous.version + 1 if previous else 1,
        )

        try:
            self.storage.set(key, record.model_dump_json())
        except Exception as e:
            self.logger.warning(f"Failed to persist tip record {category}/{type}: {e}")
            return False
        return True

    def was_shown(self, type: str, category: TipCategory = OUTER) -> bool:
        return self.get_record(type, category) is not None

    def get_last_shown_time(self, type: str, category: TipCategory = OUTER) -> Optional[datetime]:
        record = self.get_record(type, category)
        return record.timestamp if record else None

    def all_shown_times(self, category: TipCategory = OUTER) -> Dict[str, Optional[datetime]]:
        return {
            type: self.get_last_shown_time(type, category)
            for type in TIP_STORAGE_MAP.get(category, {})
        }

    def clear(self, type: str, category: TipCategory = OUTER) -> None:
        key = self.key_for(type, category)
        if not key:
            return

        try:
            self.storage.remove(key)
        except Exception as e:
            self.logger.warning(f"Failed to clear tip record {category}/{type}: {e}")

    def clear_all(self, category: TipCategory = OUTER) -> None:
        for type in TIP_STORAGE_MAP.get(category, {}):
            self.clear(type, category)

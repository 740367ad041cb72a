from typing import Dict, List, Optional, Protocol

from .settings import settings


class StorageError(Exception):
    """Raised by a key-value backend that is unavailable or out of quota."""


class KeyValueStore(Protocol):
    """Synchronous string store the persisted tip state lives in."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """
    Dict-backed store.

    Used for request-scoped decisions and in tests. `max_keys` emulates a
    storage quota, `available=False` emulates a disabled storage.
    """

    def __init__(self, max_keys: Optional[int] = None, available: bool = True):
        self.max_keys = max_keys
        self.available = available
        self._data: Dict[str, str] = {}

    def _check_available(self) -> None:
        if not self.available:
            raise StorageError("storage is not available")

    def get(self, key: str) -> Optional[str]:
        self._check_available()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_available()
        if (
            self.max_keys is not None
            and key not in self._data
            and len(self._data) >= self.max_keys
        ):
            raise StorageError(f"quota of {self.max_keys} keys exceeded")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._check_available()
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


STORAGE_KEYS = {
    "CHAT": {
        "CHAT_OPEN": "ui:chat:last-open",
        "CHAT_CLOSE": "ui:chat:last-close",
        "MESSAGE_SENT": "ui:chat:message-sent",
        "LAST_MESSAGE_SENT": "ui:chat:last-message-sent",
    },
    "OUTER_TIP": {
        "WELCOME_SHOWN": "ui:outer-tip:welcome-shown",
        "FOLLOWUP_SHOWN": "ui:outer-tip:followup-shown",
        "RETURNING_SHOWN": "ui:outer-tip:returning-shown",
        "RECONNECT_SHOWN": "ui:outer-tip:reconnect-shown",
        "ACTIVE_RETURN_SHOWN": "ui:outer-tip:active-return-shown",
    },
    "INNER_TIP": {
        "GREETING_SHOWN": "ui:inner-tip:greeting-shown",
        "FOLLOWUP_SHOWN": "ui:inner-tip:followup-shown",
        "ERROR_SHOWN": "ui:inner-tip:error-shown",
        "FALLBACK_SHOWN": "ui:inner-tip:fallback-shown",
    },
}


class StorageKeyProvider:
    """Resolves `(section, name)` to a key namespaced by the storage prefix."""

    def __init__(
        self,
        prefix: str = settings.storage_prefix,
        keys: Dict[str, Dict[str, str]] = STORAGE_KEYS,
    ):
        self.prefix = prefix
        self.keys = keys

    def get(self, section: str, name: str) -> Optional[str]:
        key = self.keys.get(section, {}).get(name)
        if not key:
            return None
        return f"{self.prefix}:{key}"

    def has(self, section: str, name: str) -> bool:
        return bool(self.keys.get(section, {}).get(name))

    def sections(self) -> List[str]:
        return list(self.keys)

    def names(self, section: str) -> List[str]:
        return list(self.keys.get(section, {}))

from datetime import datetime
from typing import Callable, Dict

from .messages import MessagesProvider
from .schemas import OUTER, TipCategory, utcnow
from .tip_records import TipRecordStore

# Minimum hours between two showings of the same type
DEFAULT_COOLDOWN_HOURS: Dict[str, float] = {
    "welcome": 24,
    "followup": 6,
    "returning": 0,
    "reconnect": 24,
    "active_return": 24,
}

FALLBACK_COOLDOWN_HOURS = 24


class CooldownPolicy:
    """Answers whether a tip type may be shown again yet."""

    def __init__(
        self,
        messages: MessagesProvider,
        records: TipRecordStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.messages = messages
        self.records = records
        self.clock = clock

    def get_cooldown_hours(self, type: str, category: TipCategory = OUTER) -> float:
        default = DEFAULT_COOLDOWN_HOURS.get(type, FALLBACK_COOLDOWN_HOURS)
        return self.messages.get_field(category, type, "cooldown_hours", default)

    def hours_since(self, moment: datetime) -> float:
        return (self.clock() - moment).total_seconds() / 3600

    def can_show(self, type: str, category: TipCategory = OUTER) -> bool:
        cooldown_hours = self.get_cooldown_hours(type, category)
        if cooldown_hours == 0:
            return True

        last = self.records.get_last_shown_time(type, category)
        if last is None:
            return True

        # Exactly at the cooldown boundary counts as elapsed
        return self.hours_since(last) >= cooldown_hours

    def has_seen_recently(
        self,
        type: str,
        category: TipCategory = OUTER,
        hours: float = 24,
    ) -> bool:
        last = self.records.get_last_shown_time(type, category)
        if last is None:
            return False
        return self.hours_since(last) < hours

from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal, Optional, List

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .settings import Settings, settings

TipCategory = Literal["in", "out"]

INNER: TipCategory = "in"
OUTER: TipCategory = "out"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Stamps written without an offset are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class ActivityStamp(BaseModel):
    """Persisted value of one activity fact (chat opened, message sent...)."""
    timestamp: UtcDatetime


class TipRecord(BaseModel):
    """Persisted value of a tip showing. Overwritten on every show."""
    type: str
    category: TipCategory
    timestamp: UtcDatetime
    version: int = Field(default=1, ge=1)  # number of showings so far


class VisitorStateSnapshot(BaseModel):
    """
    Read-only view of the visitor passed into a decision.

    Every derived field is a pure function of the two timestamps and `now`,
    so a snapshot is never persisted, only rebuilt via `build`.
    """
    model_config = ConfigDict(frozen=True)

    now: datetime
    last_chat_open_time: Optional[datetime] = None
    last_message_sent_time: Optional[datetime] = None
    has_sent_message: bool = False

    time_since_last_open: Optional[timedelta] = None
    time_since_last_message: Optional[timedelta] = None

    is_recently_returned: bool = False
    was_inactive_long_enough: bool = False
    is_eligible_for_reconnect: bool = False

    @classmethod
    def build(
        cls,
        last_chat_open_time: Optional[datetime],
        last_message_sent_time: Optional[datetime],
        now: datetime,
        config: Settings = settings,
    ) -> "VisitorStateSnapshot":
        has_sent_message = last_message_sent_time is not None

        since_open = (
            now - last_chat_open_time
            if last_chat_open_time is not None else None
        )
        since_message = (
            now - last_message_sent_time if has_sent_message else None
        )

        returning_min = timedelta(minutes=config.returning_min_minutes)
        returning_max = timedelta(minutes=config.returning_max_minutes)
        reconnect_min = timedelta(minutes=config.reconnect_min_minutes)
        reconnect_max = timedelta(days=config.reconnect_max_days)

        return cls(
            now=now,
            last_chat_open_time=last_chat_open_time,
            last_message_sent_time=last_message_sent_time,
            has_sent_message=has_sent_message,
            time_since_last_open=since_open,
            time_since_last_message=since_message,
            is_recently_returned=(
                since_open is not None
                and returning_min <= since_open <= returning_max
            ),
            was_inactive_long_enough=(
                since_open is not None and since_open > returning_max
            ),
            is_eligible_for_reconnect=(
                since_message is not None
                and reconnect_min < since_message <= reconnect_max
            ),
        )


class DecisionRequest(BaseModel):
    last_chat_open_at: Optional[UtcDatetime] = None
    last_message_sent_at: Optional[UtcDatetime] = None
    shown: List[TipRecord] = Field(default_factory=list)
    context: Optional[str] = None


class DecisionResponse(BaseModel):
    should_show: bool
    tip_type: Optional[str] = None
    message: Optional[str] = None
    delay_ms: int = 0
    ttl_seconds: int = 0

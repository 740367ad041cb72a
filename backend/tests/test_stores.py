"""Tests for the persisted stores: key provider, activity and tip records."""

from datetime import timedelta

import pytest

from tip_engine.activity import UserActivityStore
from tip_engine.schemas import INNER, OUTER
from tip_engine.storage import InMemoryKeyValueStore, StorageError
from tip_engine.tip_records import TipRecordStore


def test_in_memory_store_enforces_quota():
    store = InMemoryKeyValueStore(max_keys=1)
    store.set("a", "1")
    store.set("a", "2")  # overwriting an existing key is not a new key

    with pytest.raises(StorageError):
        store.set("b", "1")
    assert store.get("a") == "2"


def test_unavailable_store_raises_on_every_operation():
    store = InMemoryKeyValueStore(available=False)
    for call in (lambda: store.get("k"), lambda: store.set("k", "v"), lambda: store.remove("k")):
        with pytest.raises(StorageError):
            call()


def test_key_provider_namespaces_keys(keys):
    assert keys.get("CHAT", "CHAT_OPEN") == "test:ui:chat:last-open"
    assert keys.get("OUTER_TIP", "WELCOME_SHOWN") == "test:ui:outer-tip:welcome-shown"
    assert keys.get("CHAT", "MISSING") is None
    assert keys.has("INNER_TIP", "GREETING_SHOWN")
    assert "OUTER_TIP" in keys.sections()
    assert "LAST_MESSAGE_SENT" in keys.names("CHAT")


def test_activity_defaults_when_nothing_stored(activity):
    assert activity.get_last_chat_open_time() is None
    assert activity.get_last_message_sent_time() is None
    assert activity.has_sent_message() is False


def test_activity_marks_are_stamped_with_clock(activity, clock):
    activity.mark_chat_open()
    clock.advance(minutes=3)
    activity.mark_chat_close()
    activity.mark_message_sent()

    assert activity.get_last_chat_open_time() == clock() - timedelta(minutes=3)
    assert activity.get_last_chat_close_time() == clock()
    assert activity.get_last_message_sent_time() == clock()
    assert activity.has_sent_message() is True


def test_activity_malformed_values_read_as_absent(activity, storage, keys):
    storage.set(keys.get("CHAT", "CHAT_OPEN"), "{not json")
    storage.set(keys.get("CHAT", "LAST_MESSAGE_SENT"), '{"timestamp": "yesterday"}')

    assert activity.get_last_chat_open_time() is None
    assert activity.get_last_message_sent_time() is None
    assert activity.has_sent_message() is False


def test_activity_write_failure_keeps_previous_state(keys, clock):
    storage = InMemoryKeyValueStore()
    activity = UserActivityStore(storage, keys, clock=clock)
    activity.mark_chat_open()
    first_open = activity.get_last_chat_open_time()

    storage.available = False
    clock.advance(minutes=5)
    activity.mark_chat_open()  # must not raise
    assert activity.get_last_chat_open_time() is None  # reads fail soft too

    storage.available = True
    assert activity.get_last_chat_open_time() == first_open


def test_message_sent_survives_quota_after_first_write(keys, clock):
    storage = InMemoryKeyValueStore(max_keys=1)
    activity = UserActivityStore(storage, keys, clock=clock)

    activity.mark_message_sent()  # second key hits the quota, must not raise

    assert activity.get_last_message_sent_time() == clock()
    assert activity.has_sent_message() is True
    assert storage.get(keys.get("CHAT", "MESSAGE_SENT")) is None


def test_tip_record_mark_and_read(records, clock):
    assert records.was_shown("welcome") is False

    assert records.mark_as_shown("welcome", OUTER) is True

    record = records.get_record("welcome", OUTER)
    assert record.type == "welcome"
    assert record.category == OUTER
    assert record.timestamp == clock()
    assert records.was_shown("welcome", OUTER) is True
    assert records.was_shown("welcome", INNER) is False


def test_tip_record_is_overwritten_not_appended(records, storage, clock):
    records.mark_as_shown("reconnect")
    clock.advance(hours=30)
    records.mark_as_shown("reconnect")

    record = records.get_record("reconnect")
    assert record.timestamp == clock()
    assert record.version == 2
    assert len(storage) == 1


def test_tip_record_persisted_format(records, storage, keys):
    records.mark_as_shown("greeting", INNER)

    raw = storage.get(keys.get("INNER_TIP", "GREETING_SHOWN"))
    assert '"type":"greeting"' in raw
    assert '"category":"in"' in raw
    assert '"version":1' in raw


def test_malformed_tip_record_means_not_shown(records, storage, keys):
    storage.set(keys.get("OUTER_TIP", "WELCOME_SHOWN"), "garbage")

    assert records.was_shown("welcome") is False
    assert records.get_last_shown_time("welcome") is None
    # A fresh show replaces the broken value
    assert records.mark_as_shown("welcome") is True
    assert records.get_record("welcome").version == 1


def test_unknown_tip_type_is_never_shown(records, storage):
    assert records.mark_as_shown("confetti") is False
    assert records.was_shown("confetti") is False
    assert records.key_for("welcome", "sideways") is None
    assert len(storage) == 0


def test_tip_record_write_failure_is_reported(keys, clock):
    records = TipRecordStore(InMemoryKeyValueStore(max_keys=0), keys, clock=clock)

    assert records.mark_as_shown("welcome") is False
    assert records.was_shown("welcome") is False


def test_clear_and_clear_all(records):
    records.mark_as_shown("welcome")
    records.mark_as_shown("followup")
    records.mark_as_shown("followup", INNER)

    records.clear("welcome")
    assert records.was_shown("welcome") is False
    assert records.was_shown("followup") is True

    records.clear_all(OUTER)
    assert all(value is None for value in records.all_shown_times(OUTER).values())
    assert records.was_shown("followup", INNER) is True


def test_all_shown_times_lists_every_known_type(records, clock):
    records.mark_as_shown("returning")

    times = records.all_shown_times(OUTER)
    assert set(times) == {"welcome", "followup", "returning", "reconnect", "active_return"}
    assert times["returning"] == clock()
    assert times["welcome"] is None

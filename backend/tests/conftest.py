from datetime import datetime, timedelta, timezone

import pytest

from tip_engine.activity import UserActivityStore
from tip_engine.controller import TipController
from tip_engine.cooldown import CooldownPolicy
from tip_engine.decision import DecisionEngine
from tip_engine.events import LifecycleEvents
from tip_engine.messages import MessagesProvider
from tip_engine.scheduler import NamedTimerScheduler
from tip_engine.settings import Settings
from tip_engine.storage import InMemoryKeyValueStore, StorageKeyProvider
from tip_engine.tip_records import TipRecordStore

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class ManualHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTime:
    """Clock and `call_later` loop in one, moved forward by hand."""

    def __init__(self, start=START):
        self.start = start
        self.elapsed = 0.0
        self.handles = []

    def __call__(self):
        return self.start + timedelta(seconds=self.elapsed)

    def call_later(self, delay, callback):
        handle = ManualHandle(self.elapsed + delay, callback)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds=0, **kwargs):
        target = self.elapsed + seconds + timedelta(**kwargs).total_seconds()
        while True:
            due = [h for h in self.pending() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.elapsed = max(self.elapsed, handle.when)
            handle.callback()
        self.elapsed = target


class FakePresenter:
    def __init__(self, renderable=True):
        self.is_shown = False
        self.renderable = renderable
        self.shown = []
        self.hide_calls = 0

    def show(self, text, on_complete=None):
        self.shown.append(text)
        self.is_shown = True
        if on_complete:
            on_complete()

    def hide(self):
        self.hide_calls += 1
        self.is_shown = False

    def can_render(self):
        return self.renderable


@pytest.fixture
def clock():
    return ManualTime()


@pytest.fixture
def config():
    return Settings(page_return_debounce_ms=500)


@pytest.fixture
def storage():
    return InMemoryKeyValueStore()


@pytest.fixture
def keys():
    return StorageKeyProvider(prefix="test")


@pytest.fixture
def messages():
    return MessagesProvider()


@pytest.fixture
def activity(storage, keys, clock):
    return UserActivityStore(storage, keys, clock=clock)


@pytest.fixture
def records(storage, keys, clock):
    return TipRecordStore(storage, keys, clock=clock)


@pytest.fixture
def cooldown(messages, records, clock):
    return CooldownPolicy(messages, records, clock=clock)


@pytest.fixture
def engine(messages, records, cooldown, config):
    return DecisionEngine(messages, records, cooldown, config=config)


@pytest.fixture
def events():
    return LifecycleEvents()


@pytest.fixture
def presenter():
    return FakePresenter()


@pytest.fixture
def scheduler(clock):
    return NamedTimerScheduler(loop=clock)


@pytest.fixture
def controller(presenter, events, engine, activity, scheduler, config, clock):
    controller = TipController(
        presenter, events, engine, activity, scheduler,
        config=config, clock=clock,
    )
    yield controller
    controller.destroy()


@pytest.fixture
def ago(clock):
    """Datetime `delta` before the manual clock's now."""
    def _ago(**delta):
        return clock() - timedelta(**delta)
    return _ago

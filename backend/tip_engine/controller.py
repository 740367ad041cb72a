import logging
from datetime import datetime
from typing import Any, Callable, Optional

from .activity import UserActivityStore
from .cooldown import CooldownPolicy
from .decision import DecisionEngine
from .events import CHAT_CLOSED, CHAT_OPENED, MESSAGE_SENT, PAGE_RETURNED, LifecycleEvents
from .logger import get_logger
from .messages import DEFAULT_DELAYS, DEFAULT_DURATIONS, MessagesProvider
from .presenter import Presenter
from .scheduler import NamedTimerScheduler, TimerNames
from .schemas import OUTER, VisitorStateSnapshot, utcnow
from .settings import Settings, settings
from .storage import KeyValueStore, StorageKeyProvider
from .tip_records import TipRecordStore


class TipController:
    """
    Drives outer tips (the bubbles under the chat toggle button).

    Lifecycle events update the activity store and (re)arm named timers;
    when a timer fires the controller asks the decision engine which tip
    fits and hands the text to the presenter. Only one tip is ever on
    screen, and every handler re-checks that before acting because events
    may land between a show and its auto-hide.
    """

    def __init__(
        self,
        presenter: Presenter,
        events: LifecycleEvents,
        engine: DecisionEngine,
        activity: UserActivityStore,
        scheduler: NamedTimerScheduler,
        config: Settings = settings,
        clock: Callable[[], datetime] = utcnow,
        logger: Optional[logging.Logger] = None,
    ):
        if not isinstance(presenter, Presenter):
            raise TypeError(
                "presenter must provide show(), hide(), can_render() and is_shown")
        for name, value in (
            ("events", events),
            ("engine", engine),
            ("activity", activity),
            ("scheduler", scheduler),
        ):
            if value is None:
                raise TypeError(f"TipController requires {name}")

        self.presenter = presenter
        self.events = events
        self.engine = engine
        self.activity = activity
        self.scheduler = scheduler
        self.config = config
        self.clock = clock
        self.logger = logger or get_logger("controller")

        self.messages: MessagesProvider = engine.messages
        self.records: TipRecordStore = engine.records
        self.cooldown: CooldownPolicy = engine.cooldown

        self.started = False
        self.destroyed = False
        self.chat_open = False
        self.current_type: Optional[str] = None

        self._subscriptions = (
            (CHAT_OPENED, self.handle_chat_opened),
            (CHAT_CLOSED, self.handle_chat_closed),
            (MESSAGE_SENT, self.handle_message_sent),
            (PAGE_RETURNED, self.handle_page_returned),
        )

    @property
    def is_shown(self) -> bool:
        return bool(self.presenter.is_shown)

    def start(self) -> None:
        if self.started or self.destroyed:
            return
        self.started = True

        for event, handler in self._subscriptions:
            self.events.on(event, handler)

        self.scheduler.schedule(
            TimerNames.SHOW, self.get_delay("welcome"), self._on_show_timer)

    def destroy(self) -> None:
        if self.destroyed:
            return

        self.hide()
        self.scheduler.clear_all()
        if self.started:
            for event, handler in self._subscriptions:
                self.events.off(event, handler)
        self.destroyed = True
        self.logger.info("Tip controller destroyed")

    def current_state(self) -> VisitorStateSnapshot:
        return VisitorStateSnapshot.build(
            self.activity.get_last_chat_open_time(),
            self.activity.get_last_message_sent_time(),
            self.clock(),
            config=self.config,
        )

    def get_delay(self, type: str) -> int:
        return self.messages.get_field(OUTER, type, "delay", DEFAULT_DELAYS.get(type, 0))

    def get_duration(self, type: str) -> int:
        return self.messages.get_field(OUTER, type, "duration", DEFAULT_DURATIONS.get(type, 0))

    def can_present(self) -> bool:
        if self.destroyed or self.chat_open:
            return False
        if self.is_shown:
            self.logger.debug("A tip is already shown, skipping")
            return False
        if not self.presenter.can_render():
            self.logger.info("Tip cannot be rendered, skipping this cycle")
            return False
        return True

    def show_message_by_type(self, type: str) -> bool:
        """Show a specific tip if its message exists and its cooldown has passed."""
        if self.destroyed:
            return False
        if not self.messages.has(OUTER, type) or not self.cooldown.can_show(type, OUTER):
            return False
        if not self.can_present():
            return False

        self._present(type)
        return True

    def hide(self) -> None:
        self.scheduler.cancel(TimerNames.AUTO_HIDE)
        if not self.is_shown:
            return

        self.presenter.hide()
        self.logger.info(f"Tip hidden: {self.current_type}")
        self.current_type = None

    def _cancel_pending_tips(self) -> None:
        for name in (TimerNames.SHOW, TimerNames.FOLLOW_UP, TimerNames.RETURNING):
            self.scheduler.cancel(name)

    # Lifecycle handlers

    def handle_chat_opened(self, *args: Any) -> None:
        if self.destroyed:
            return
        self.chat_open = True
        self.activity.mark_chat_open()
        self._cancel_pending_tips()
        self.hide()

    def handle_chat_closed(self, *args: Any) -> None:
        if self.destroyed:
            return
        self.chat_open = False
        self.activity.mark_chat_close()

        if self.activity.has_sent_message() or self.is_shown:
            return

        self.scheduler.schedule(
            TimerNames.RETURNING, self.get_delay("returning"), self._on_returning)

    def handle_message_sent(self, *args: Any) -> None:
        if self.destroyed:
            return
        self.chat_open = True
        self.activity.mark_message_sent()
        self.activity.mark_chat_open()
        self._cancel_pending_tips()
        self.hide()

    def handle_page_returned(self, *args: Any) -> None:
        if self.destroyed:
            return
        # Debounced: quick tab switches collapse into one check
        self.scheduler.schedule(
            TimerNames.ACTIVE_RETURN,
            self.config.page_return_debounce_ms,
            self._on_active_return,
        )

    # Timer callbacks

    def _on_show_timer(self) -> None:
        state = self.current_state()
        type = self.engine.determine(state)
        self.logger.info(f"Determined tip type: {type}")

        if not type or not self.can_present():
            return

        self._present(type)

        if type == "welcome" and self.activity.get_last_chat_open_time() is None:
            self._schedule_follow_up()

    def _schedule_follow_up(self) -> None:
        if self.scheduler.has_scheduled(TimerNames.FOLLOW_UP):
            return
        self.scheduler.schedule(
            TimerNames.FOLLOW_UP, self.get_delay("followup"), self._on_follow_up)

    def _on_follow_up(self) -> None:
        if self.activity.get_last_chat_open_time() is not None:
            return
        if not self.can_present():
            return

        if self.engine.determine(self.current_state()) == "followup":
            self._present("followup")

    def _on_returning(self) -> None:
        if self.activity.has_sent_message() or not self.can_present():
            return

        if self.engine.determine(self.current_state()) == "returning":
            self._present("returning")

    def _on_active_return(self) -> None:
        state = self.current_state()

        if not state.has_sent_message or self.chat_open:
            return
        if self.cooldown.has_seen_recently(
            "active_return", OUTER, hours=self.config.active_return_recent_hours
        ):
            return
        if not self.can_present():
            return

        if self.engine.determine(state, context="return") == "active_return":
            self._present("active_return")

    def _on_auto_hide(self) -> None:
        if self.is_shown:
            self.hide()

    def _present(self, type: str) -> None:
        text = self.messages.get_text(OUTER, type)

        self.presenter.show(
            text, lambda: self.logger.info(f"Tip displayed: {type}"))
        self.current_type = type
        self.records.mark_as_shown(type, OUTER)
        self.logger.info(f"Tip shown: {type}")

        duration = self.get_duration(type)
        if duration and duration > 0:
            self.scheduler.schedule(
                TimerNames.AUTO_HIDE, duration, self._on_auto_hide)


def build_controller(
    presenter: Presenter,
    events: LifecycleEvents,
    storage: KeyValueStore,
    messages: Optional[MessagesProvider] = None,
    loop: Optional[Any] = None,
    config: Settings = settings,
    clock: Callable[[], datetime] = utcnow,
    logger: Optional[logging.Logger] = None,
) -> TipController:
    """Wire a controller with its stores, cooldown policy and engine."""
    keys = StorageKeyProvider(prefix=config.storage_prefix)
    messages = messages or MessagesProvider()

    activity = UserActivityStore(storage, keys, clock=clock, logger=logger)
    records = TipRecordStore(storage, keys, clock=clock, logger=logger)
    cooldown = CooldownPolicy(messages, records, clock=clock)
    engine = DecisionEngine(messages, records, cooldown, config=config)

    return TipController(
        presenter,
        events,
        engine,
        activity,
        NamedTimerScheduler(loop=loop, logger=logger),
        config=config,
        clock=clock,
        logger=logger,
    )

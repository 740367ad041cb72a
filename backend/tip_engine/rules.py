"""
Outer tip rules, in priority order.

A rule looks at the visitor snapshot and the engine's read-only helpers and
returns the tip type it stands for, or None. Rules never write anything.
"""
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from .schemas import INNER, OUTER, VisitorStateSnapshot

if TYPE_CHECKING:
    from .decision import DecisionEngine

Rule = Callable[
    [VisitorStateSnapshot, "DecisionEngine", Optional[str]], Optional[str]
]


def _is_new_visitor(state: VisitorStateSnapshot) -> bool:
    return state.last_chat_open_time is None and not state.has_sent_message


def welcome_rule(state, engine, context=None):
    """First visit: chat never opened, nothing sent."""
    type = "welcome"

    if not _is_new_visitor(state):
        return None
    if not engine.has(type, OUTER):
        return None
    if not engine.cooldown.can_show(type, OUTER):
        return None
    return type


def followup_rule(state, engine, context=None):
    """Welcome was shown and ignored: still never opened, nothing sent."""
    type = "followup"

    if not _is_new_visitor(state):
        return None
    # Followup must never pre-empt the welcome tip
    if not engine.records.was_shown("welcome", OUTER):
        return None
    if not engine.has(type, OUTER):
        return None
    if not engine.cooldown.can_show(type, OUTER):
        return None
    return type


def returning_rule(state, engine, context=None):
    """Opened the chat a few minutes ago but never wrote."""
    type = "returning"

    if state.last_chat_open_time is None or state.has_sent_message:
        return None
    if not state.is_recently_returned:
        return None
    if not engine.records.was_shown("welcome", OUTER):
        return None
    if engine.has("followup", OUTER) and not engine.records.was_shown("followup", OUTER):
        return None
    if not engine.has(type, OUTER):
        return None
    if not engine.cooldown.can_show(type, OUTER):
        return None
    return type


def reconnect_rule(state, engine, context=None):
    type = "reconnect"

    if not state.is_eligible_for_reconnect:
        return None
    if not engine.has(type, OUTER):
        return None
    if not engine.cooldown.can_show(type, OUTER):
        return None
    return type


def active_return_rule(state, engine, context=None):
    type = "active_return"

    if not state.has_sent_message:
        return None
    if engine.cooldown.has_seen_recently(
        type, OUTER, hours=engine.config.active_return_recent_hours
    ):
        return None
    if not engine.has(type, OUTER):
        return None
    if not engine.cooldown.can_show(type, OUTER):
        return None
    return type


OUTER_RULES: Tuple[Rule, ...] = (
    welcome_rule,
    followup_rule,
    returning_rule,
    reconnect_rule,
    active_return_rule,
)

INNER_RULES: Tuple[Rule, ...] = ()

RULES: Dict[str, Tuple[Rule, ...]] = {
    OUTER: OUTER_RULES,
    INNER: INNER_RULES,
}

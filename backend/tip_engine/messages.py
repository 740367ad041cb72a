from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .schemas import INNER, OUTER, TipCategory

# Milliseconds before a tip of this type is shown
DEFAULT_DELAYS: Dict[str, int] = {
    "welcome": 3000,
    "followup": 30000,
    "reconnect": 8000,
    "active_return": 5000,
    "returning": 10000,
}

# Milliseconds a tip of this type stays on screen
DEFAULT_DURATIONS: Dict[str, int] = {
    "welcome": 8000,
    "followup": 10000,
    "reconnect": 10000,
    "active_return": 7000,
    "returning": 10000,
}


class MessageConfig(BaseModel):
    text: str = ""
    enabled: bool = True
    delay: Optional[int] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0)
    cooldown_hours: Optional[float] = Field(default=None, ge=0)


DEFAULT_MESSAGES: Dict[str, Dict[str, Dict[str, Any]]] = {
    OUTER: {
        "welcome": {"text": "Hi! Got a question? I'm here to help."},
        "followup": {"text": "Still thinking it over? Ask me anything."},
        "returning": {"text": "Welcome back! Pick up where you left off?"},
        "reconnect": {"text": "Good to see you again. Anything new I can help with?"},
        "active_return": {"text": "Glad you're back! Need a hand?"},
    },
    INNER: {
        "greeting": {"text": "Hello! How can I help you?", "delay": 600},
        "followup": {"text": "Still deciding? I'm ready to help.", "delay": 15000},
        "error": {"text": "Something went wrong, please call us."},
        "fallback": {"text": "Something went wrong, please call us."},
    },
}


class MessagesProvider:
    """
    Text and timing config for every tip, per category and type.

    Caller overrides are merged field by field over the defaults, so
    `{"out": {"welcome": {"delay": 5000}}}` keeps the default welcome text.
    """

    def __init__(
        self,
        overrides: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None,
        defaults: Dict[str, Dict[str, Dict[str, Any]]] = DEFAULT_MESSAGES,
    ):
        self.messages: Dict[str, Dict[str, MessageConfig]] = {}

        overrides = overrides or {}
        for category in set(defaults) | set(overrides):
            base = defaults.get(category, {})
            extra = overrides.get(category, {})
            self.messages[category] = {
                type: MessageConfig(**{**base.get(type, {}), **extra.get(type, {})})
                for type in set(base) | set(extra)
            }

    def get(self, category: TipCategory, type: str) -> Optional[MessageConfig]:
        return self.messages.get(category, {}).get(type)

    def has(self, category: TipCategory, type: str) -> bool:
        """True when the tip has text and is not disabled."""
        message = self.get(category, type)
        return bool(message and message.enabled and message.text)

    def get_text(self, category: TipCategory, type: str) -> str:
        message = self.get(category, type)
        return message.text if message else ""

    def get_field(self, category: TipCategory, type: str, field: str, default: Any = None) -> Any:
        message = self.get(category, type)
        value = getattr(message, field, None) if message else None
        return default if value is None else value

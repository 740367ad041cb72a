from typing import Optional, Sequence

from .cooldown import CooldownPolicy
from .messages import MessagesProvider
from .rules import OUTER_RULES, Rule
from .schemas import OUTER, TipCategory, VisitorStateSnapshot
from .settings import Settings, settings
from .tip_records import TipRecordStore


class DecisionEngine:
    """
    Picks the tip to show for a visitor snapshot.

    Rules are tried in order and the first one that returns a type wins.
    `determine` only reads from the stores, so asking twice without any
    write in between gives the same answer.
    """

    def __init__(
        self,
        messages: MessagesProvider,
        records: TipRecordStore,
        cooldown: CooldownPolicy,
        rules: Sequence[Rule] = OUTER_RULES,
        config: Settings = settings,
    ):
        self.messages = messages
        self.records = records
        self.cooldown = cooldown
        self.rules = tuple(rules)
        self.config = config

    def has(self, type: str, category: TipCategory = OUTER) -> bool:
        return self.messages.has(category, type)

    def determine(self, state: VisitorStateSnapshot, context: Optional[str] = None) -> Optional[str]:
        for rule in self.rules:
            result = rule(state, self, context)
            if result:
                return result
        return None

"""
Rule actions and the fixed capacity constants that bound generated rules.

Priority bands, lowest priority value first:
- Log: manual 0-999, generated 1000-1999
- Allow: manual 2000-2999, generated 3000-3999
- Block: manual 4000-4999, generated 5000-5999
"""
from enum import Enum
from typing import Dict, NamedTuple, Union

from wafkeeper.core.exceptions import UnsupportedAction

# Upstream hard limit on custom rules per policy
MAX_CUSTOM_RULES = 90
# Upstream hard limit on IPMatch values per rule
MAX_IP_MATCH_VALUES = 600
# Maximum number of policies to list when none are named (not an upstream limit)
MAX_POLICIES_TO_FETCH = 200


class Action(str, Enum):
    """Disposition a generated rule set enacts."""
    BLOCK = "Block"
    ALLOW = "Allow"
    LOG = "Log"

    @classmethod
    def from_value(cls, value: Union["Action", str]) -> "Action":
        """
        Resolve an action from an enum member or a case-insensitive name.

        Raises:
            UnsupportedAction: if the value is not one of Block, Allow or Log
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for action in cls:
                if action.value.lower() == value.strip().lower():
                    return action
        raise UnsupportedAction(value)

    @property
    def prefix(self) -> str:
        return ACTION_SETTINGS[self].rule_prefix

    @property
    def priority_start(self) -> int:
        return ACTION_SETTINGS[self].priority_start

    @property
    def max_rules(self) -> int:
        return ACTION_SETTINGS[self].max_rules


class ActionSettings(NamedTuple):
    """Per-action naming, priority band and default rule cap."""
    rule_prefix: str
    priority_start: int
    max_rules: int


ACTION_SETTINGS: Dict[Action, ActionSettings] = {
    Action.LOG: ActionSettings(rule_prefix="LogNets", priority_start=1000, max_rules=10),
    Action.ALLOW: ActionSettings(rule_prefix="AllowNets", priority_start=3000, max_rules=10),
    Action.BLOCK: ActionSettings(rule_prefix="BlockNets", priority_start=5000, max_rules=40),
}


def prefix_from_action(action: Union[Action, str]) -> str:
    """Return the custom rule name prefix used for an action."""
    return Action.from_value(action).prefix

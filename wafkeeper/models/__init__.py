"""Enumerations and fixed constants."""
from wafkeeper.models.action import (
    ACTION_SETTINGS,
    MAX_CUSTOM_RULES,
    MAX_IP_MATCH_VALUES,
    MAX_POLICIES_TO_FETCH,
    Action,
    ActionSettings,
    prefix_from_action,
)

__all__ = [
    "ACTION_SETTINGS",
    "MAX_CUSTOM_RULES",
    "MAX_IP_MATCH_VALUES",
    "MAX_POLICIES_TO_FETCH",
    "Action",
    "ActionSettings",
    "prefix_from_action",
]

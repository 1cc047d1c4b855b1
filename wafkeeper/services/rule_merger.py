"""
Merges generated custom rules into an existing policy.
"""
import logging
from typing import List, Tuple, Union

from wafkeeper.core.exceptions import RuleLimitExceeded
from wafkeeper.models.action import MAX_CUSTOM_RULES, Action
from wafkeeper.schemas.policy import CustomRule, WafPolicy

logger = logging.getLogger(__name__)


def remove_custom_rules_by_prefix(policy: WafPolicy, prefix: str) -> Tuple[WafPolicy, int]:
    """
    Return a copy of the policy without custom rules whose name starts with prefix.

    Returns:
        Tuple of (updated policy copy, number of rules removed)
    """
    updated = policy.model_copy(deep=True)
    kept = [rule for rule in updated.rules if not rule.name.startswith(prefix)]
    removed = len(updated.rules) - len(kept)
    if updated.properties.custom_rules is not None:
        updated.set_rules(kept)
    return updated, removed


def merge_custom_rules(
    policy: WafPolicy,
    new_rules: List[CustomRule],
    action: Union[Action, str],
) -> WafPolicy:
    """
    Replace the generated rules of one action within a policy.

    Every existing rule named with the action's prefix is dropped and the new
    rules are added. The result is ordered by priority, the order the policy
    diff compares in. Rules of other actions and manually authored rules keep
    their content. Removal goes by name prefix only, so a manual rule sharing
    the prefix is dropped as well.

    Args:
        policy: The current policy; not modified
        new_rules: Rules compiled for the action
        action: Block, Allow or Log

    Returns:
        Updated copy of the policy

    Raises:
        UnsupportedAction: if the action is not recognised
        RuleLimitExceeded: if the result holds more than MAX_CUSTOM_RULES rules
    """
    action = Action.from_value(action)

    updated, removed = remove_custom_rules_by_prefix(policy, action.prefix)
    merged = updated.rules + [rule.model_copy(deep=True) for rule in new_rules]

    if len(merged) > MAX_CUSTOM_RULES:
        raise RuleLimitExceeded(len(merged), MAX_CUSTOM_RULES)

    updated.set_rules(merged)
    updated.sort_rules()
    logger.debug(
        f"replaced {removed} {action.value.lower()} rules with {len(new_rules)}, "
        f"policy now has {len(merged)} custom rules"
    )
    return updated

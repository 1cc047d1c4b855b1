"""
Compiles IP networks into priority-ordered custom rules.
"""
import logging
from typing import Iterable, List, Optional, Union

from wafkeeper.models.action import MAX_IP_MATCH_VALUES, Action
from wafkeeper.schemas.policy import CustomRule, MatchCondition
from wafkeeper.utils.ip_parser import parse_network

logger = logging.getLogger(__name__)


def dedupe_networks(networks: Iterable) -> List[str]:
    """
    Return the canonical string form of each network, first occurrence wins.

    Accepts networks or strings. Strings are parsed first, so a bare address
    and its single-host CIDR count as the same network. Order of first
    appearance is preserved.

    Raises:
        ParseError: if a string is not a valid address or CIDR
    """
    seen = set()
    result = []
    for network in networks:
        if isinstance(network, str):
            network = parse_network(network)
        key = str(network)
        if key in seen:
            continue
        seen.add(key)
        result.append(key)
    return result


def create_custom_rule(name: str, action: Union[Action, str], priority: int, items: List[str]) -> CustomRule:
    """Build an enabled RemoteAddr/IPMatch custom rule matching the given networks."""
    action = Action.from_value(action)
    return CustomRule(
        name=name,
        priority=priority,
        enabled_state="Enabled",
        rule_type="MatchRule",
        match_conditions=[
            MatchCondition(
                match_variable="RemoteAddr",
                operator="IPMatch",
                negate_condition=False,
                match_value=list(items),
                transforms=[],
            )
        ],
        action=action.value,
    )


def compile_custom_rules(
    networks: Iterable,
    action: Union[Action, str],
    max_rules: Optional[int] = 0,
) -> List[CustomRule]:
    """
    Generate custom rules for an action from a list of networks.

    Networks are deduplicated and split, in order, into chunks of at most
    MAX_IP_MATCH_VALUES. Chunk n becomes rule <prefix><start + n> with
    priority start + n, where prefix and start come from the action.

    Args:
        networks: Networks (or their string forms), e.g. an IPSet
        action: Block, Allow or Log
        max_rules: Maximum number of rules to emit; 0 or None means unbounded,
            negative values are rejected

    Returns:
        Custom rules with strictly increasing, contiguous priorities

    Raises:
        UnsupportedAction: if the action is not recognised
        ParseError: if a network string is not a valid address or CIDR
        ValueError: if max_rules is negative
    """
    action = Action.from_value(action)
    if max_rules is not None and max_rules < 0:
        raise ValueError(f"max rules must not be negative, got {max_rules}")

    values = dedupe_networks(networks)
    logger.debug(f"total networks after deduplication: {len(values)}")

    rules: List[CustomRule] = []
    for chunk_index, offset in enumerate(range(0, len(values), MAX_IP_MATCH_VALUES)):
        if max_rules and len(rules) >= max_rules:
            logger.debug(
                f"max rules of {max_rules} reached, discarding {len(values) - offset} networks"
            )
            break
        priority = action.priority_start + chunk_index
        rules.append(
            create_custom_rule(
                name=f"{action.prefix}{priority}",
                action=action,
                priority=priority,
                items=values[offset:offset + MAX_IP_MATCH_VALUES],
            )
        )

    logger.debug(f"generated {len(rules)} {action.value.lower()} rules")
    return rules

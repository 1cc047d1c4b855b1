"""
Service for applying IP lists to policies as generated custom rules.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from wafkeeper.core.exceptions import InvalidScope, RuleLimitExceeded, TargetNotFound
from wafkeeper.models.action import Action
from wafkeeper.schemas.actions import ActionSpec, ApplyIPsRequest
from wafkeeper.schemas.patch import PatchSummary
from wafkeeper.schemas.policy import CustomRule, WafPolicy
from wafkeeper.services.policy_diff import generate_policy_patch
from wafkeeper.services.policy_store import PolicyStore, fetch_wrapped_policy, push_wrapped_policy
from wafkeeper.services.rule_compiler import compile_custom_rules
from wafkeeper.services.rule_merger import merge_custom_rules, remove_custom_rules_by_prefix
from wafkeeper.utils.ip_parser import load_ipset
from wafkeeper.utils.resource_id import split_extended_id, validate_resource_id

logger = logging.getLogger(__name__)


@dataclass
class ApplyIPsResult:
    """Outcome of applying an IP list to one policy."""
    policy_id: str
    action: Action
    rules_generated: int
    summary: PatchSummary
    policy: WafPolicy
    pushed: bool = False

    @property
    def changes(self) -> int:
        return self.summary.custom_rule_changes


@dataclass
class ApplyActionsResult:
    results: List[ApplyIPsResult] = field(default_factory=list)
    errors: List[Tuple[ActionSpec, Exception]] = field(default_factory=list)


class IPRulesService:
    """Service for IP based custom rules."""

    def __init__(self, store: PolicyStore):
        """
        Initialize IP rules service.

        Args:
            store: Policy store used to fetch and push policies
        """
        self.store = store

    def apply_ip_changes(self, request: ApplyIPsRequest) -> ApplyIPsResult:
        """
        Replace the generated rules of an action with rules built from an IP list.

        The push is skipped when the custom rules would not change, in dry-run
        mode and in output-only mode.

        Args:
            request: Target policy, action, networks and flags

        Returns:
            ApplyIPsResult with the change summary and the merged policy

        Raises:
            InvalidScope: if no networks were supplied
            ParseError: if a network is invalid
            TargetNotFound: if the policy does not exist
            RuleLimitExceeded: if the merged policy would exceed the custom rule ceiling
        """
        validate_resource_id(request.resource_id)
        action = request.action

        ipset = load_ipset(values=request.nets, paths=request.paths)
        if len(ipset) == 0:
            raise InvalidScope("no IPs loaded")

        existing = fetch_wrapped_policy(self.store, request.resource_id)
        if existing is None:
            raise TargetNotFound(request.resource_id, "specified policy not found")

        max_rules = action.max_rules if request.max_rules is None else request.max_rules
        rules = compile_custom_rules(ipset, action, max_rules)
        merged = merge_custom_rules(existing.policy, rules, action)

        summary = generate_policy_patch(existing.policy, merged)
        result = ApplyIPsResult(
            policy_id=existing.policy_id,
            action=action,
            rules_generated=len(rules),
            summary=summary,
            policy=merged,
        )

        list_name = action.value.lower()
        if summary.custom_rule_changes == 0:
            logger.info("nothing to do")
            return result

        if request.dry_run:
            logger.info(f"{summary.custom_rule_changes} changes to {list_name} list would be applied")
            return result

        if request.output_only:
            return result

        existing.policy = merged
        push_wrapped_policy(self.store, existing)
        result.pushed = True
        logger.info(f"{summary.custom_rule_changes} changes to {list_name} list have been applied")
        return result

    def apply_actions(
        self,
        actions: List[ActionSpec],
        dry_run: bool = False,
        fail_fast: bool = False,
    ) -> ApplyActionsResult:
        """
        Apply a list of actions in order.

        A failing action is recorded and skipped unless fail_fast is set.
        Exceeding the custom rule ceiling always aborts the batch.
        """
        outcome = ApplyActionsResult()
        for entry in actions:
            request = ApplyIPsRequest(
                resource_id=entry.policy,
                action=entry.action,
                nets=entry.networks,
                # networks already hold the contents of paths once loaded
                paths=[] if entry.networks else entry.paths,
                max_rules=entry.max_rules,
                dry_run=dry_run,
            )
            try:
                outcome.results.append(self.apply_ip_changes(request))
            except RuleLimitExceeded:
                raise
            except Exception as e:
                if fail_fast:
                    raise
                logger.warning(f"failed to apply {entry.action.value} list to {entry.policy}: {e}")
                outcome.errors.append((entry, e))
        return outcome

    def delete_custom_rules(self, resource_id: str, prefix: str) -> int:
        """
        Remove every custom rule whose name starts with prefix.

        Returns:
            Number of rules removed; the policy is only pushed when this is non-zero

        Raises:
            TargetNotFound: if the policy does not exist
        """
        validate_resource_id(resource_id)
        existing = fetch_wrapped_policy(self.store, resource_id)
        if existing is None:
            raise TargetNotFound(resource_id, "specified policy not found")

        updated, removed = remove_custom_rules_by_prefix(existing.policy, prefix)
        if removed == 0:
            logger.info("nothing to do")
            return 0

        existing.policy = updated
        push_wrapped_policy(self.store, existing)
        return removed

    def get_custom_rule(self, extended_id: str) -> CustomRule:
        """
        Return one custom rule addressed by <policy id>|<rule name>.

        Raises:
            InvalidResourceID: if the extended id is malformed
            TargetNotFound: if the policy or the rule does not exist
        """
        validate_resource_id(extended_id, extended=True)
        policy_id, rule_name = split_extended_id(extended_id)

        existing = fetch_wrapped_policy(self.store, policy_id)
        if existing is None:
            raise TargetNotFound(policy_id, "specified policy not found")

        for rule in existing.policy.rules:
            if rule.name == rule_name:
                return rule
        raise TargetNotFound(extended_id, f"custom rule '{rule_name}' not found")

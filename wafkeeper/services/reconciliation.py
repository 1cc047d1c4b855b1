"""
Restore/copy decision logic.

Decides, for one candidate policy (a backup, or the source of a copy) and the
existing policy it would replace, whether to apply, skip or fail, and builds the
policy that would be pushed.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from wafkeeper.core.config import settings
from wafkeeper.core.exceptions import InvalidScope, TargetNotFound
from wafkeeper.schemas.backup import WrappedPolicy
from wafkeeper.schemas.patch import PatchSummary
from wafkeeper.schemas.policy import WafPolicy
from wafkeeper.services.policy_diff import generate_policy_patch
from wafkeeper.utils.confirm import Confirmer
from wafkeeper.utils.resource_id import ResourceID, build_policy_id

logger = logging.getLogger(__name__)

# RFC 850 style, e.g. Monday, 02-Jan-06 15:04:05 UTC
DATE_FORMAT = "%A, %d-%b-%y %H:%M:%S %Z"


class RestoreScope(str, Enum):
    """Which rule sections a restore or copy replaces."""
    ALL = "all"
    CUSTOM_RULES = "custom"
    MANAGED_RULES = "managed"

    @classmethod
    def from_flags(cls, custom_rules_only: bool = False, managed_rules_only: bool = False) -> "RestoreScope":
        if custom_rules_only and managed_rules_only:
            raise InvalidScope("custom rules only and managed rules only are mutually exclusive")
        if custom_rules_only:
            return cls.CUSTOM_RULES
        if managed_rules_only:
            return cls.MANAGED_RULES
        return cls.ALL

    @property
    def label(self) -> str:
        """Prefix used in messages, e.g. 'custom ' in 'replace custom rules'."""
        return "" if self == RestoreScope.ALL else f"{self.value} "

    def relevant_changes(self, summary: PatchSummary) -> int:
        if self == RestoreScope.CUSTOM_RULES:
            return summary.custom_rule_changes
        if self == RestoreScope.MANAGED_RULES:
            return summary.managed_rule_changes
        return summary.total_rule_differences


class Outcome(str, Enum):
    APPLY = "apply"
    SKIP = "skip"


@dataclass
class ReconcileDecision:
    """Result of reconciling one candidate against the live system."""
    outcome: Outcome
    reason: str
    policy: Optional[WrappedPolicy] = None
    summary: Optional[PatchSummary] = None
    created: bool = False


def copy_rule_sections(target: WafPolicy, source: WafPolicy, scope: RestoreScope = RestoreScope.ALL) -> WafPolicy:
    """
    Return a copy of target with the rule sections selected by scope taken from source.

    - custom: only the custom rules are taken from source
    - managed: only the managed rules are taken; a source without managed
      rules clears them
    - all: both sections are replaced wholesale

    Custom rules of the result are ordered by priority.
    """
    policy = target.model_copy(deep=True)
    source = source.model_copy(deep=True)

    if scope == RestoreScope.CUSTOM_RULES:
        policy.set_rules(source.rules)
    elif scope == RestoreScope.MANAGED_RULES:
        policy.properties.managed_rules = source.properties.managed_rules
    else:
        policy.properties.custom_rules = source.properties.custom_rules
        policy.properties.managed_rules = source.properties.managed_rules
    policy.sort_rules()
    return policy


def generate_policy_to_restore(
    existing: Optional[WrappedPolicy],
    candidate: WrappedPolicy,
    scope: RestoreScope = RestoreScope.ALL,
    subscription_id: Optional[str] = None,
    resource_group: Optional[str] = None,
) -> WrappedPolicy:
    """
    Build the policy to push from an existing policy and a candidate.

    Without an existing policy the candidate's policy is used as-is under the
    given subscription and resource group. Otherwise the existing policy keeps
    everything except the sections the scope replaces (see copy_rule_sections).

    Neither input is modified.
    """
    if existing is None:
        policy = candidate.policy.model_copy(deep=True)
        policy.sort_rules()
        return WrappedPolicy(
            subscription_id=subscription_id or "",
            resource_group=resource_group or "",
            name=candidate.name,
            policy=policy,
            policy_id=build_policy_id(subscription_id or "", resource_group or "", candidate.name),
            app_version=candidate.app_version,
        )

    policy = copy_rule_sections(existing.policy, candidate.policy, scope)

    rid = ResourceID.parse(existing.policy_id)
    return WrappedPolicy(
        subscription_id=rid.subscription_id,
        resource_group=rid.resource_group,
        name=rid.name,
        policy=policy,
        policy_id=existing.policy_id,
        app_version=existing.app_version,
    )


def _confirmation_text(
    existing: WrappedPolicy,
    candidate: WrappedPolicy,
    scope: RestoreScope,
    target_policy_id: Optional[str],
    source_label: str,
):
    taken = candidate.date.strftime(DATE_FORMAT)
    if target_policy_id:
        return (
            f"confirm replacement of {scope.label}rules in target policy {target_policy_id}",
            f"with {source_label} {candidate.policy_id}\ntaken {taken}",
        )
    return (
        f"found an existing policy: {existing.policy_id}",
        f"confirm replacement of {scope.label}rules with {source_label} taken {taken}",
    )


def reconcile(
    candidate: WrappedPolicy,
    existing: Optional[WrappedPolicy],
    confirm: Confirmer,
    scope: RestoreScope = RestoreScope.ALL,
    target_policy_id: Optional[str] = None,
    subscription_id: Optional[str] = None,
    resource_group: Optional[str] = None,
    force: bool = False,
    source_label: str = "backup",
) -> ReconcileDecision:
    """
    Decide what to do with one candidate policy.

    Args:
        candidate: Backup or copy source
        existing: Live policy matched by the candidate's origin id or the
            explicit target, None if nothing matched
        confirm: Asked before replacing an existing policy unless force is set
        scope: Which rule sections are replaced
        target_policy_id: Explicit target policy, if one was requested
        subscription_id: Subscription for a newly created policy; falls back
            to DEFAULT_SUBSCRIPTION_ID, then to the candidate's own subscription
        resource_group: Resource group for a newly created policy
        force: Replace without asking
        source_label: Word used for the candidate in confirmation prompts

    Returns:
        ReconcileDecision to apply (with the policy to push) or skip

    Raises:
        TargetNotFound: an explicit target does not exist
        InvalidScope: a new policy is needed but no resource group or
            subscription could be determined
        DiffError: either policy is not a valid document
    """
    if existing is None:
        if target_policy_id:
            raise TargetNotFound(target_policy_id)
        if not resource_group:
            raise InvalidScope("cannot create new policy without resource group")
        subscription_id = subscription_id or settings.DEFAULT_SUBSCRIPTION_ID or candidate.subscription_id
        if not subscription_id:
            raise InvalidScope("cannot create new policy without subscription id")
        logger.debug(f"no existing policy matches {candidate.policy_id}, creating {candidate.name}")
        return ReconcileDecision(
            outcome=Outcome.APPLY,
            reason="new policy",
            policy=generate_policy_to_restore(None, candidate, scope, subscription_id, resource_group),
            created=True,
        )

    summary = generate_policy_patch(existing.policy, candidate.policy)
    if scope.relevant_changes(summary) == 0:
        if scope == RestoreScope.ALL:
            reason = f"target policy rules are identical to {source_label}"
        else:
            reason = f"target policy's {scope.value} rules are identical to those in {source_label}"
        logger.info(reason)
        return ReconcileDecision(outcome=Outcome.SKIP, reason=reason, summary=summary)

    if not force:
        headline, detail = _confirmation_text(existing, candidate, scope, target_policy_id, source_label)
        if not confirm(headline, detail):
            logger.info(f"replacement of {existing.policy_id} declined")
            return ReconcileDecision(outcome=Outcome.SKIP, reason="declined", summary=summary)

    return ReconcileDecision(
        outcome=Outcome.APPLY,
        reason=f"{scope.relevant_changes(summary)} rule changes",
        policy=generate_policy_to_restore(existing, candidate, scope),
        summary=summary,
    )

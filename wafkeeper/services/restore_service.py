"""
Service for restoring policy backups and copying rules between policies.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from wafkeeper.core.exceptions import InvalidResourceID, InvalidScope, TargetNotFound
from wafkeeper.schemas.backup import WrappedPolicy
from wafkeeper.services.policy_store import PolicyStore, fetch_wrapped_policy, push_wrapped_policy
from wafkeeper.services.reconciliation import Outcome, ReconcileDecision, RestoreScope, reconcile
from wafkeeper.utils.backup_files import load_backups_from_paths
from wafkeeper.utils.confirm import Confirmer, console_confirm
from wafkeeper.utils.resource_id import ResourceID, validate_resource_id

logger = logging.getLogger(__name__)


class RestoreOptions(BaseModel):
    """Options for restoring one or more backups."""
    subscription_id: Optional[str] = None
    backup_paths: List[str] = Field(default_factory=list)
    custom_rules_only: bool = False
    managed_rules_only: bool = False
    target_policy: Optional[str] = None
    resource_group: Optional[str] = None
    force: bool = False
    fail_fast: bool = False


class CopyOptions(BaseModel):
    """Options for copying rules from one policy to another."""
    source: str
    target: str
    custom_rules_only: bool = False
    managed_rules_only: bool = False
    force: bool = False
    wait: Optional[bool] = None


@dataclass
class RestoreResult:
    """Outcome of a batch restore."""
    applied: List[WrappedPolicy] = field(default_factory=list)
    skipped: List[Tuple[WrappedPolicy, str]] = field(default_factory=list)
    errors: List[Tuple[WrappedPolicy, Exception]] = field(default_factory=list)


class RestoreService:
    """Service for restore and copy operations."""

    def __init__(self, store: PolicyStore, confirm: Confirmer = console_confirm):
        """
        Initialize restore service.

        Args:
            store: Policy store used to look up and push policies
            confirm: Asked before an existing policy is replaced
        """
        self.store = store
        self.confirm = confirm

    def restore_policies(
        self,
        options: RestoreOptions,
        backups: Optional[List[WrappedPolicy]] = None,
    ) -> RestoreResult:
        """
        Restore backups, adding or overwriting policies.

        Every backup is reconciled first and only then are the resulting
        policies pushed, in input order. With fail_fast the first error aborts
        the batch before anything is pushed; otherwise failing backups are
        recorded and skipped.

        Args:
            options: Restore options
            backups: Already loaded backups; read from options.backup_paths if omitted

        Returns:
            RestoreResult listing applied, skipped and failed backups

        Raises:
            InvalidScope: conflicting scope flags, no backups, or several
                backups for one target policy
            InvalidResourceID: malformed target policy id
        """
        scope = RestoreScope.from_flags(options.custom_rules_only, options.managed_rules_only)
        if options.target_policy:
            validate_resource_id(options.target_policy)

        if backups is None:
            backups = load_backups_from_paths(options.backup_paths)
        if not backups:
            raise InvalidScope(f"no backup files could be found in paths: {', '.join(options.backup_paths)}")

        if options.target_policy and len(backups) > 1:
            raise InvalidScope("restoring more than one backup to a single policy is not supported")

        result = RestoreResult()
        to_push: List[Tuple[WrappedPolicy, WrappedPolicy]] = []

        for backup in backups:
            try:
                decision = self._reconcile_backup(backup, options, scope)
            except Exception as e:
                if options.fail_fast:
                    raise
                logger.warning(f"failed to restore backup {backup.policy_id or backup.name}: {e}")
                result.errors.append((backup, e))
                continue

            if decision.outcome == Outcome.SKIP:
                result.skipped.append((backup, decision.reason))
                continue

            policy = decision.policy
            if options.target_policy:
                rid = ResourceID.parse(options.target_policy)
                policy.subscription_id = rid.subscription_id
                policy.resource_group = rid.resource_group
                policy.name = rid.name
                policy.policy_id = rid.raw
            to_push.append((backup, policy))

        for backup, policy in to_push:
            try:
                push_wrapped_policy(self.store, policy)
            except Exception as e:
                if options.fail_fast:
                    raise
                logger.warning(f"failed to push policy {policy.name}: {e}")
                result.errors.append((backup, e))
                continue
            result.applied.append(policy)

        logger.info(
            f"restore complete: {len(result.applied)} applied, "
            f"{len(result.skipped)} skipped, {len(result.errors)} failed"
        )
        return result

    def _reconcile_backup(
        self,
        backup: WrappedPolicy,
        options: RestoreOptions,
        scope: RestoreScope,
    ) -> ReconcileDecision:
        match_policy_id = options.target_policy or backup.policy_id
        existing = None
        if match_policy_id:
            logger.debug(f"retrieving target policy: {match_policy_id}")
            try:
                existing = fetch_wrapped_policy(self.store, match_policy_id)
            except InvalidResourceID:
                if options.target_policy:
                    raise
                logger.debug(f"backup policy id {match_policy_id} is not a valid resource id, treating as unmatched")

        return reconcile(
            candidate=backup,
            existing=existing,
            confirm=self.confirm,
            scope=scope,
            target_policy_id=options.target_policy,
            subscription_id=options.subscription_id,
            resource_group=options.resource_group,
            force=options.force,
        )

    def copy_rules(self, options: CopyOptions) -> ReconcileDecision:
        """
        Copy custom and/or managed rules from one policy to another.

        Returns:
            The decision taken; the target is pushed only when it is APPLY

        Raises:
            InvalidScope: source and target are the same policy, or conflicting flags
            InvalidResourceID: malformed source or target id
            TargetNotFound: source or target does not exist
        """
        scope = RestoreScope.from_flags(options.custom_rules_only, options.managed_rules_only)
        validate_resource_id(options.source)
        validate_resource_id(options.target)
        if options.source.lower() == options.target.lower():
            raise InvalidScope("source and target must be different")

        logger.debug(f"copy source: {options.source}")
        logger.debug(f"copy target: {options.target}")

        source = fetch_wrapped_policy(self.store, options.source)
        if source is None:
            raise TargetNotFound(options.source, "source policy not found")

        target = fetch_wrapped_policy(self.store, options.target)
        if target is None:
            raise TargetNotFound(options.target, "target policy not found")

        decision = reconcile(
            candidate=source,
            existing=target,
            confirm=self.confirm,
            scope=scope,
            target_policy_id=options.target,
            force=options.force,
            source_label="policy",
        )

        if decision.outcome == Outcome.APPLY:
            push_wrapped_policy(self.store, decision.policy, wait=options.wait)
        return decision

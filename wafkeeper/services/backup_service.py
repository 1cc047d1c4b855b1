"""
Service for fetching policies and writing them to backup files.
"""
import logging
from pathlib import Path
from typing import List, Optional, Union

from wafkeeper.core.config import settings
from wafkeeper.core.exceptions import InvalidScope, TargetNotFound
from wafkeeper.schemas.backup import WrappedPolicy
from wafkeeper.services.policy_store import PolicyStore, fetch_wrapped_policy
from wafkeeper.utils.backup_files import write_backup
from wafkeeper.utils.resource_id import validate_resource_ids

logger = logging.getLogger(__name__)


class BackupService:
    """Service for policy backups."""

    def __init__(self, store: PolicyStore, app_version: Optional[str] = None):
        """
        Initialize backup service.

        Args:
            store: Policy store used to list and fetch policies
            app_version: Recorded in every backup; defaults to the running version
        """
        self.store = store
        self.app_version = app_version or settings.APP_VERSION

    def get_wrapped_policies(
        self,
        subscription_id: Optional[str] = None,
        resource_ids: Optional[List[str]] = None,
        max_results: Optional[int] = None,
    ) -> List[WrappedPolicy]:
        """
        Fetch policies by id, or every policy in a subscription.

        Explicit resource ids take precedence over the subscription.

        Args:
            subscription_id: Subscription to list when no ids are given
            resource_ids: Policies to fetch
            max_results: Listing cap; defaults to MAX_POLICIES_TO_FETCH

        Returns:
            List of wrapped policies in fetch order

        Raises:
            InvalidScope: neither ids nor a subscription given, or a non-positive cap
            InvalidResourceID: malformed id
            TargetNotFound: a named policy does not exist
        """
        subscription_id = subscription_id or settings.DEFAULT_SUBSCRIPTION_ID
        if not resource_ids and not subscription_id:
            raise InvalidScope("subscription id or resource ids required")

        if max_results is None:
            max_results = settings.MAX_POLICIES_TO_FETCH
        if max_results <= 0:
            raise InvalidScope("invalid maximum number of policies to return")

        if resource_ids:
            validate_resource_ids(resource_ids)
        else:
            resource_ids = self.store.list_policies(subscription_id, max_results)
            logger.info(f"found {len(resource_ids)} policies in subscription {subscription_id}")

        wrapped_policies = []
        for resource_id in resource_ids:
            wrapped = fetch_wrapped_policy(self.store, resource_id, app_version=self.app_version)
            if wrapped is None:
                raise TargetNotFound(resource_id, "policy not found")
            wrapped_policies.append(wrapped)
        return wrapped_policies

    def backup_policies(
        self,
        path: Optional[Union[str, Path]] = None,
        subscription_id: Optional[str] = None,
        resource_ids: Optional[List[str]] = None,
        max_results: Optional[int] = None,
        fail_fast: bool = False,
    ) -> List[Path]:
        """
        Write one backup file per policy.

        A failed write is logged and skipped unless fail_fast is set.

        Returns:
            Paths of the files written
        """
        directory = path or settings.BACKUP_DIR
        wrapped_policies = self.get_wrapped_policies(subscription_id, resource_ids, max_results)

        written = []
        for wrapped in wrapped_policies:
            try:
                written.append(write_backup(wrapped, directory))
            except OSError as e:
                if fail_fast:
                    raise
                logger.error(f"failed to back up policy {wrapped.policy_id}: {e}")

        logger.info(f"backed up {len(written)} of {len(wrapped_policies)} policies to {directory}")
        return written

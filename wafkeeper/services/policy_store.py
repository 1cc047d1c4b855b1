"""
Policy store interface.

The reconciliation services talk to the upstream resource API only through this
protocol. Implementations own authentication, client caching, retries and
timeouts; the services hold no clients of their own.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from wafkeeper.core.config import settings
from wafkeeper.schemas.backup import WrappedPolicy
from wafkeeper.schemas.policy import WafPolicy
from wafkeeper.utils.resource_id import ResourceID

logger = logging.getLogger(__name__)


class PolicyStore(Protocol):
    """Fetches, persists and lists WAF policies."""

    def get_policy(self, subscription_id: str, resource_group: str, name: str) -> Optional[WafPolicy]:
        """Return the named policy, or None if it does not exist."""
        ...

    def put_policy(
        self,
        subscription_id: str,
        resource_group: str,
        name: str,
        policy: WafPolicy,
        wait: bool = True,
        timeout: Optional[int] = None,
    ) -> None:
        """
        Create or update a policy.

        With wait=False the push is started and not awaited. Errors are raised
        to the caller unchanged.
        """
        ...

    def list_policies(self, subscription_id: str, max_results: int) -> List[str]:
        """Return up to max_results policy resource ids in a subscription."""
        ...


def fetch_wrapped_policy(store: PolicyStore, policy_id: str, app_version: Optional[str] = None) -> Optional[WrappedPolicy]:
    """
    Fetch a policy by resource id and wrap it with its origin.

    Returns:
        WrappedPolicy, or None if the store has no such policy

    Raises:
        InvalidResourceID: if policy_id is malformed
    """
    rid = ResourceID.parse(policy_id)
    logger.debug(f"retrieving policy with: {rid.subscription_id} {rid.resource_group} {rid.name}")
    policy = store.get_policy(rid.subscription_id, rid.resource_group, rid.name)
    if policy is None:
        return None
    return WrappedPolicy(
        date=datetime.now(timezone.utc),
        subscription_id=rid.subscription_id,
        resource_group=rid.resource_group,
        name=rid.name,
        policy=policy,
        policy_id=rid.raw,
        app_version=app_version,
    )


def push_wrapped_policy(store: PolicyStore, wrapped: WrappedPolicy, wait: Optional[bool] = None) -> None:
    """Create or update the policy a WrappedPolicy points at."""
    if wait is None:
        wait = not settings.PUSH_POLICY_ASYNC
    logger.info(f"updating policy {wrapped.name}")
    store.put_policy(
        wrapped.subscription_id,
        wrapped.resource_group,
        wrapped.name,
        wrapped.policy,
        wait=wait,
        timeout=settings.PUSH_POLICY_TIMEOUT,
    )
    if wait:
        logger.info(f"policy {wrapped.name} successfully pushed")
    else:
        logger.info(f"policy {wrapped.name} push started asynchronously")

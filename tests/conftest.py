"""
Pytest configuration and fixtures.
"""
import ipaddress
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from wafkeeper.schemas.backup import WrappedPolicy
from wafkeeper.schemas.policy import CustomRule, MatchCondition, WafPolicy
from wafkeeper.utils.backup_files import load_wrapped_policy_from_file
from wafkeeper.utils.resource_id import build_policy_id

TESTDATA_DIR = Path(__file__).parent / "testdata"

SUBSCRIPTION_ID = "0a914e76-4921-4c19-b460-a2d36003525a"
RESOURCE_GROUP = "flying"
POLICY_ONE_ID = build_policy_id(SUBSCRIPTION_ID, RESOURCE_GROUP, "mypolicyone")


class FakePolicyStore:
    """In-memory policy store keyed by (subscription, resource group, name)."""

    def __init__(self):
        self.policies: Dict[Tuple[str, str, str], WafPolicy] = {}
        self.puts: List[dict] = []
        self.fail_puts_for: set = set()

    def add(self, subscription_id: str, resource_group: str, name: str, policy: WafPolicy):
        self.policies[(subscription_id, resource_group, name)] = policy.model_copy(deep=True)

    def get_policy(self, subscription_id: str, resource_group: str, name: str) -> Optional[WafPolicy]:
        policy = self.policies.get((subscription_id, resource_group, name))
        return policy.model_copy(deep=True) if policy is not None else None

    def put_policy(self, subscription_id, resource_group, name, policy, wait=True, timeout=None):
        if name in self.fail_puts_for:
            raise RuntimeError(f"push of {name} rejected")
        self.puts.append({
            "subscription_id": subscription_id,
            "resource_group": resource_group,
            "name": name,
            "policy": policy.model_copy(deep=True),
            "wait": wait,
            "timeout": timeout,
        })
        self.policies[(subscription_id, resource_group, name)] = policy.model_copy(deep=True)

    def list_policies(self, subscription_id: str, max_results: int) -> List[str]:
        ids = [
            build_policy_id(sub, rg, name)
            for (sub, rg, name) in self.policies
            if sub == subscription_id
        ]
        return ids[:max_results]


def make_rule(name: str, priority: int, values: Optional[List[str]] = None, action: str = "Block") -> CustomRule:
    """Build a RemoteAddr/IPMatch rule for tests."""
    return CustomRule(
        name=name,
        priority=priority,
        match_conditions=[
            MatchCondition(
                match_variable="RemoteAddr",
                operator="IPMatch",
                match_value=values or ["192.0.2.1/32"],
            )
        ],
        action=action,
    )


def make_policy(rules: Optional[List[CustomRule]] = None, name: str = "mypolicy") -> WafPolicy:
    policy = WafPolicy(name=name, location="Global")
    policy.set_rules(rules or [])
    return policy


def host_networks(cidr: str) -> List[str]:
    """Every usable host address of a network as a /32 (or /128) string."""
    network = ipaddress.ip_network(cidr)
    return [f"{host}/{network.max_prefixlen}" for host in network.hosts()]


@pytest.fixture
def store():
    """Empty in-memory policy store."""
    return FakePolicyStore()


@pytest.fixture
def policy_one() -> WrappedPolicy:
    return load_wrapped_policy_from_file(TESTDATA_DIR / "wrapped-policy-one.json")


@pytest.fixture
def policy_two() -> WrappedPolicy:
    return load_wrapped_policy_from_file(TESTDATA_DIR / "wrapped-policy-two.json")


@pytest.fixture
def store_with_policy_one(store, policy_one):
    """Store holding the live version of mypolicyone."""
    store.add(SUBSCRIPTION_ID, RESOURCE_GROUP, "mypolicyone", policy_one.policy)
    return store


@pytest.fixture
def always_yes():
    calls = []

    def confirm(headline, detail):
        calls.append((headline, detail))
        return True

    confirm.calls = calls
    return confirm


@pytest.fixture
def always_no():
    calls = []

    def confirm(headline, detail):
        calls.append((headline, detail))
        return False

    confirm.calls = calls
    return confirm

"""
Resource id parsing and validation.

Resource ids look like:
/subscriptions/<subscription>/resourceGroups/<group>/providers/<namespace>/<type>/<name>

An extended id addresses one custom rule inside a policy: <resource id>|<rule name>
"""
import re
from typing import List, NamedTuple, Optional, Tuple

from wafkeeper.core.exceptions import InvalidResourceID

POLICY_RESOURCE_TYPE = "Microsoft.Network/frontdoorWebApplicationFirewallPolicies"

RESOURCE_ID_PATTERN = re.compile(
    r"(?i)/subscriptions/(.+?)/resourcegroups/(.+?)/providers/(.+?)/(.+?)/(.+)"
)


class ResourceID(NamedTuple):
    subscription_id: str
    resource_group: str
    provider: str
    name: str
    raw: str

    @classmethod
    def parse(cls, raw_id: str) -> "ResourceID":
        """
        Split a resource id into its components.

        Raises:
            InvalidResourceID: if the id does not have nine slash-separated sections
        """
        components = raw_id.split("/")
        if len(components) != 9:
            raise InvalidResourceID(raw_id, "resource id has incorrect number of sections")
        return cls(
            subscription_id=components[2],
            resource_group=components[4],
            provider=components[6],
            name=components[8],
            raw=raw_id,
        )

    def matches(self, other: Optional[str]) -> bool:
        """Case-insensitive comparison with another raw id."""
        return other is not None and self.raw.lower() == other.lower()


def build_policy_id(subscription_id: str, resource_group: str, name: str) -> str:
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/{POLICY_RESOURCE_TYPE}/{name}"
    )


def validate_resource_id(raw_id: str, extended: bool = False) -> None:
    """
    Check the format of a resource id.

    Args:
        raw_id: The id to check
        extended: Whether a |<rule name> suffix is required

    Raises:
        InvalidResourceID: describing the first problem found
    """
    resource_part = raw_id.split("|", 1)[0] if extended else raw_id

    if len(resource_part.split("/")) != 9:
        raise InvalidResourceID(raw_id, "resource id has incorrect number of sections")

    if not RESOURCE_ID_PATTERN.match(resource_part):
        raise InvalidResourceID(raw_id, "resource id has invalid format")

    if not extended and "|" in raw_id:
        raise InvalidResourceID(raw_id, "invalid format for resource id")

    if extended and "|" not in raw_id:
        raise InvalidResourceID(raw_id, "invalid format for extended resource id")


def validate_resource_ids(raw_ids: List[str]) -> None:
    for raw_id in raw_ids:
        validate_resource_id(raw_id)


def split_extended_id(extended_id: str) -> Tuple[str, str]:
    """
    Split <resource id>|<rule name> into its two parts.

    Raises:
        InvalidResourceID: if there is not exactly one separator
    """
    components = extended_id.split("|")
    if len(components) != 2:
        raise InvalidResourceID(extended_id, "invalid format")
    return components[0], components[1]

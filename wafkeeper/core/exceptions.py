"""
Error taxonomy for policy reconciliation.

Every error carries the context an operator needs to act on it (offending line,
target id, counts).
"""
from typing import Optional


class WafKeeperError(Exception):
    """Base class for all wafkeeper errors."""


class ParseError(WafKeeperError):
    """A line in an IP source is not a valid address or CIDR."""

    def __init__(self, line: str, source: str = "<input>", line_number: Optional[int] = None):
        self.line = line
        self.source = source
        self.line_number = line_number
        location = source if line_number is None else f"{source}:{line_number}"
        super().__init__(f"invalid address or CIDR '{line}' ({location})")


class UnsupportedAction(WafKeeperError):
    """The requested action is not Block, Allow or Log."""

    def __init__(self, action):
        self.action = action
        super().__init__(f"unsupported action: {action}")


class RuleLimitExceeded(WafKeeperError):
    """A merged policy would hold more custom rules than the upstream ceiling."""

    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(f"operation exceeds custom rules limit of {limit} ({count} rules)")


class TargetNotFound(WafKeeperError):
    """A policy id does not resolve to an existing policy."""

    def __init__(self, policy_id: str, message: str = "target policy does not exist"):
        self.policy_id = policy_id
        super().__init__(f"{message}: {policy_id}")


class InvalidScope(WafKeeperError):
    """The requested combination of sources, targets and flags cannot be reconciled."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class DiffError(WafKeeperError):
    """Either side of a policy comparison is not a valid document."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"failed to compare policies: {reason}")


class InvalidResourceID(WafKeeperError):
    """A resource id does not have the expected format."""

    def __init__(self, resource_id: str, reason: str):
        self.resource_id = resource_id
        self.reason = reason
        super().__init__(f"{reason}: {resource_id}")


class BackupFileError(WafKeeperError):
    """A backup file exists but does not hold a valid wrapped policy."""

    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"invalid backup file {path}: {reason}")

"""
Structural comparison of policy documents.

Documents are compared as JSON trees: objects key by key and arrays index by
index, so element order matters. Each resulting add/remove/replace operation is
attributed to a rule category by the path prefix table below; operations
outside every category (name, provisioning state, ...) only count towards the
overall total.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from wafkeeper.core.exceptions import DiffError
from wafkeeper.schemas.backup import WrappedPolicy
from wafkeeper.schemas.patch import PatchOp, PatchOperation, PatchSummary, RuleCategory
from wafkeeper.schemas.policy import WafPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleCategoryMatcher:
    """Maps a document subtree to the rule category its changes count towards."""
    root: str
    category: RuleCategory

    def matches(self, path: str) -> bool:
        return path == self.root or path.startswith(self.root + "/")


CATEGORY_MATCHERS: Tuple[RuleCategoryMatcher, ...] = (
    RuleCategoryMatcher("/properties/customRules", RuleCategory.CUSTOM_RULE),
    RuleCategoryMatcher("/properties/managedRules", RuleCategory.MANAGED_RULE),
)


def classify_path(path: str) -> Optional[RuleCategory]:
    """Return the rule category a JSON pointer falls under, if any."""
    for matcher in CATEGORY_MATCHERS:
        if matcher.matches(path):
            return matcher.category
    return None


def _escape(token: Any) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def _same_value(a: Any, b: Any) -> bool:
    # bool is an int subclass; True must not equal 1 here
    return type(a) is type(b) and a == b


def compare_documents(original: Any, candidate: Any, path: str = "") -> List[PatchOperation]:
    """
    Compute the operations that turn original into candidate.

    Surplus array items are removed from the end backwards, so every removal
    path is valid when the operations are applied in order.
    """
    if isinstance(original, dict) and isinstance(candidate, dict):
        operations = []
        for key, value in original.items():
            child = f"{path}/{_escape(key)}"
            if key not in candidate:
                operations.append(PatchOperation(op=PatchOp.REMOVE, path=child))
            else:
                operations.extend(compare_documents(value, candidate[key], child))
        for key in candidate:
            if key not in original:
                operations.append(PatchOperation(op=PatchOp.ADD, path=f"{path}/{_escape(key)}"))
        return operations

    if isinstance(original, list) and isinstance(candidate, list):
        operations = []
        common = min(len(original), len(candidate))
        for index in range(common):
            operations.extend(compare_documents(original[index], candidate[index], f"{path}/{index}"))
        for index in range(len(original) - 1, common - 1, -1):
            operations.append(PatchOperation(op=PatchOp.REMOVE, path=f"{path}/{index}"))
        for index in range(common, len(candidate)):
            operations.append(PatchOperation(op=PatchOp.ADD, path=f"{path}/{index}"))
        return operations

    if _same_value(original, candidate):
        return []
    return [PatchOperation(op=PatchOp.REPLACE, path=path)]


def _to_document(value: Any, side: str) -> dict:
    """Normalize a policy, backup, dict or JSON text into a plain JSON object."""
    if isinstance(value, WrappedPolicy):
        value = value.policy
    if isinstance(value, WafPolicy):
        return value.to_document()

    try:
        if isinstance(value, (str, bytes, bytearray)):
            document = json.loads(value)
        elif isinstance(value, dict):
            document = json.loads(json.dumps(value))
        else:
            raise DiffError(f"unexpected {side} type: {type(value).__name__}")
    except (TypeError, ValueError) as e:
        raise DiffError(f"{side} is not a valid JSON document: {e}") from e

    if not isinstance(document, dict):
        raise DiffError(f"{side} is not a JSON object")
    return document


def _sort_custom_rules(document: dict) -> None:
    properties = document.get("properties")
    custom_rules = properties.get("customRules") if isinstance(properties, dict) else None
    rules = custom_rules.get("rules") if isinstance(custom_rules, dict) else None
    if not isinstance(rules, list) or not rules:
        return
    try:
        rules.sort(key=lambda rule: int(rule["priority"]))
    except (KeyError, TypeError, ValueError) as e:
        raise DiffError(f"candidate custom rule without a valid priority: {e}") from e


def generate_policy_patch(original: Any, candidate: Any) -> PatchSummary:
    """
    Summarize the differences between two policies.

    The candidate's custom rules are sorted by ascending priority before the
    comparison, so appending rules shows up as additions rather than as
    replacements of misaligned array items. Neither argument is modified.

    Args:
        original: Current policy as WafPolicy, WrappedPolicy, dict or JSON text
        candidate: Proposed policy, same accepted types

    Returns:
        PatchSummary with per-category counts

    Raises:
        DiffError: if either side is not a valid policy document
    """
    original_document = _to_document(original, "original")
    candidate_document = _to_document(candidate, "candidate")
    _sort_custom_rules(candidate_document)

    operations = compare_documents(original_document, candidate_document)
    logger.debug(f"patch: {[f'{o.op.value} {o.path}' for o in operations]}")

    summary = PatchSummary(total_differences=len(operations))
    for operation in operations:
        category = classify_path(operation.path)
        if category is not None:
            summary.record(category, operation.op)

    logger.debug(f"patch summary: {summary.model_dump()}")
    return summary

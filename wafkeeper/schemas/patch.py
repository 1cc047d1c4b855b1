"""Schemas for policy comparison results."""
from enum import Enum

from pydantic import BaseModel, computed_field


class PatchOp(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class RuleCategory(str, Enum):
    CUSTOM_RULE = "customRule"
    MANAGED_RULE = "managedRule"


class PatchOperation(BaseModel):
    """An elementary change at a JSON pointer path."""
    op: PatchOp
    path: str


class PatchSummary(BaseModel):
    """Counts of changes between two policy documents, by category and kind."""
    total_differences: int = 0
    custom_rule_additions: int = 0
    custom_rule_removals: int = 0
    custom_rule_replacements: int = 0
    managed_rule_additions: int = 0
    managed_rule_removals: int = 0
    managed_rule_replacements: int = 0

    @computed_field
    @property
    def custom_rule_changes(self) -> int:
        return self.custom_rule_additions + self.custom_rule_removals + self.custom_rule_replacements

    @computed_field
    @property
    def managed_rule_changes(self) -> int:
        return self.managed_rule_additions + self.managed_rule_removals + self.managed_rule_replacements

    @computed_field
    @property
    def total_rule_differences(self) -> int:
        return self.custom_rule_changes + self.managed_rule_changes

    def record(self, category: RuleCategory, op: PatchOp) -> None:
        """Count one operation against a rule category."""
        if category == RuleCategory.CUSTOM_RULE:
            field = f"custom_rule_{_KIND[op]}"
        else:
            field = f"managed_rule_{_KIND[op]}"
        setattr(self, field, getattr(self, field) + 1)


_KIND = {
    PatchOp.ADD: "additions",
    PatchOp.REMOVE: "removals",
    PatchOp.REPLACE: "replacements",
}

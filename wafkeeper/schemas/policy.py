"""
Pydantic models for WAF policy documents.

Field aliases mirror the upstream JSON so a document round-trips unchanged.
Unknown upstream fields are kept (extra="allow") and managed rule sets are
treated as opaque dictionaries.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class MatchCondition(_Document):
    """A single match condition of a custom rule."""
    match_variable: str = Field(..., alias="matchVariable")  # e.g. RemoteAddr
    selector: Optional[str] = None
    operator: str  # e.g. IPMatch
    negate_condition: bool = Field(False, alias="negateCondition")
    match_value: List[str] = Field(default_factory=list, alias="matchValue")
    transforms: List[str] = Field(default_factory=list)


class CustomRule(_Document):
    """Custom rule with an explicit priority and action."""
    name: str
    priority: int
    enabled_state: str = Field("Enabled", alias="enabledState")
    rule_type: str = Field("MatchRule", alias="ruleType")
    rate_limit_duration_in_minutes: Optional[int] = Field(None, alias="rateLimitDurationInMinutes")
    rate_limit_threshold: Optional[int] = Field(None, alias="rateLimitThreshold")
    match_conditions: List[MatchCondition] = Field(default_factory=list, alias="matchConditions")
    action: str


class CustomRuleList(_Document):
    rules: List[CustomRule] = Field(default_factory=list)


class ManagedRuleSetList(_Document):
    managed_rule_sets: List[Dict[str, Any]] = Field(default_factory=list, alias="managedRuleSets")


class PolicyProperties(_Document):
    policy_settings: Optional[Dict[str, Any]] = Field(None, alias="policySettings")
    custom_rules: Optional[CustomRuleList] = Field(None, alias="customRules")
    managed_rules: Optional[ManagedRuleSetList] = Field(None, alias="managedRules")
    provisioning_state: Optional[str] = Field(None, alias="provisioningState")
    resource_state: Optional[str] = Field(None, alias="resourceState")


class WafPolicy(_Document):
    """A WAF policy document as returned by the policy store."""
    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    location: Optional[str] = None
    etag: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    sku: Optional[Dict[str, Any]] = None
    properties: PolicyProperties = Field(default_factory=PolicyProperties)

    @property
    def rules(self) -> List[CustomRule]:
        """Custom rules of the policy, empty if the section is absent."""
        if self.properties.custom_rules is None:
            return []
        return self.properties.custom_rules.rules

    def set_rules(self, rules: List[CustomRule]) -> None:
        """Replace the custom rules, creating the section if needed."""
        if self.properties.custom_rules is None:
            self.properties.custom_rules = CustomRuleList()
        self.properties.custom_rules.rules = list(rules)

    def sort_rules(self) -> None:
        """Order custom rules by ascending priority; equal priorities keep their order."""
        if self.properties.custom_rules is not None:
            self.properties.custom_rules.rules.sort(key=lambda rule: rule.priority)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the upstream JSON shape, omitting absent sections."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

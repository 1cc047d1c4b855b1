"""Schemas for IP list actions."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wafkeeper.models.action import Action


class ActionSpec(BaseModel):
    """One entry of an actions file: apply the networks in paths to a policy."""
    model_config = ConfigDict(populate_by_name=True)

    action: Action
    policy: str
    paths: List[str] = Field(default_factory=list)
    max_rules: Optional[int] = Field(None, alias="max-rules", ge=0)
    networks: List[str] = Field(default_factory=list)

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, v):
        """Accept any casing of the action name."""
        return Action.from_value(v)


class ApplyIPsRequest(BaseModel):
    """Request to replace the generated rules of one action in a policy."""
    resource_id: str
    action: Action
    nets: List[str] = Field(default_factory=list)
    paths: List[str] = Field(default_factory=list)
    max_rules: Optional[int] = Field(None, ge=0, description="None uses the action's default cap, 0 is unbounded")
    dry_run: bool = False
    output_only: bool = False

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, v):
        """Accept any casing of the action name."""
        return Action.from_value(v)

"""
Policy backup (wrapped policy) schema.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from wafkeeper.schemas.policy import WafPolicy


class WrappedPolicy(BaseModel):
    """
    A policy captured together with the identity of its origin.

    Serialized with the keys Date, SubscriptionID, ResourceGroup, Name, Policy,
    PolicyID and AppVersion, one document per backup file.
    """
    model_config = ConfigDict(populate_by_name=True)

    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="Date")
    subscription_id: str = Field("", alias="SubscriptionID")
    resource_group: str = Field("", alias="ResourceGroup")
    name: str = Field("", alias="Name")
    policy: WafPolicy = Field(default_factory=WafPolicy, alias="Policy")
    policy_id: str = Field("", alias="PolicyID")
    app_version: Optional[str] = Field(None, alias="AppVersion")

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the backup file shape."""
        document = self.model_dump(by_alias=True, mode="json", exclude={"policy"})
        document["Policy"] = self.policy.to_document()
        return document

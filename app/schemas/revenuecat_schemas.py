from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class RevenueCatEvent(BaseModel):
    """Subset of the RevenueCat webhook event the reconciler depends on."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    type: str
    app_user_id: str
    product_id: Optional[str] = None
    period_type: Optional[str] = None  # TRIAL | INTRO | NORMAL
    purchased_at_ms: Optional[int] = None
    expiration_at_ms: Optional[int] = None
    store: Optional[str] = None
    environment: Optional[str] = None
    entitlement_ids: Optional[List[str]] = None
    is_trial_conversion: Optional[bool] = None


class RevenueCatWebhook(BaseModel):
    model_config = ConfigDict(extra="ignore")

    api_version: Optional[str] = None
    event: RevenueCatEvent

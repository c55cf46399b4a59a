# thermogestion/schemas/webhooks.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StripeEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: Dict[str, Any] = Field(default_factory=dict)


class StripeEvent(BaseModel):
    """The part of a Stripe event envelope the dispatcher reads."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    livemode: bool = False
    created: Optional[int] = None
    data: StripeEventData = Field(default_factory=StripeEventData)

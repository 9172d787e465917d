from typing import Optional

from pydantic import BaseModel, ConfigDict


class PayoutCallback(BaseModel):
    """Payout status notification sent by the processor."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    reference_id: Optional[str] = None
    status: str
    failure_code: Optional[str] = None


class PayoutCallbackEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: Optional[str] = None
    data: PayoutCallback

from datetime import datetime
from typing import Union

from pydantic import BaseModel, ConfigDict


class RevenueShareUpdate(BaseModel):
    member_id: str
    percent_to_member: Union[int, float]


class RevenueShareRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    percent_to_member: int
    percent_to_organization: int
    updated_at: datetime

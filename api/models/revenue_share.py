from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

DEFAULT_PERCENT_TO_MEMBER = 80


class RevenueShare(Base):
    __tablename__ = "revenue_shares"

    organization_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    percent_to_member: Mapped[int] = mapped_column(Integer, default=DEFAULT_PERCENT_TO_MEMBER, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def percent_to_organization(self) -> int:
        return 100 - self.percent_to_member

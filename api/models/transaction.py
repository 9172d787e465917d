import enum
import uuid
from datetime import datetime

from sqlalchemy import UUID, DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class TransactionStatus(enum.Enum):
    PAID = "PAID"
    SETTLED = "SETTLED"
    PENDING = "PENDING"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"


REVENUE_STATUSES = (TransactionStatus.PAID, TransactionStatus.SETTLED)


class Transaction(Base):
    """Completed sale written by the payment webhook. Read-only here."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    booth_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("booths.id"), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(Enum(TransactionStatus, name="transactionstatus"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)

    booth = relationship("Booth")

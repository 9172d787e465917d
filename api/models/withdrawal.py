import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import UUID, Boolean, DateTime, Enum, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ApprovalStatus(enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class PayoutStatus(enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


# Amounts in these states no longer count against the requester's balance
RELEASED_APPROVAL_STATUSES = (ApprovalStatus.REJECTED, ApprovalStatus.CANCELLED)


def new_reference_id() -> str:
    return f"WD-{uuid.uuid4().hex[:20].upper()}"


class Withdrawal(Base):
    __tablename__ = "withdrawals"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    requester_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    is_admin_withdrawal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    bank_code: Mapped[str] = mapped_column(String, nullable=False)
    account_number_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    account_holder_name_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    account_number_last4: Mapped[str] = mapped_column(String(4), nullable=False)

    reference_id: Mapped[str] = mapped_column(String, default=new_reference_id, nullable=False, unique=True)
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approvalstatus"),
        default=ApprovalStatus.PENDING_APPROVAL,
        nullable=False,
    )
    payout_status: Mapped[PayoutStatus] = mapped_column(
        Enum(PayoutStatus, name="withdrawalpayoutstatus"),
        default=PayoutStatus.PENDING,
        nullable=False,
    )
    payout_attempt: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    batch_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    external_payout_id: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    failure_code: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def idempotency_key(self) -> str:
        # Stable for every call of one attempt, new for each operator retry.
        # Also sent as the processor-side reference so callbacks name their attempt.
        return f"{self.reference_id}-{self.payout_attempt}"

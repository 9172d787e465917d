import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from api.models import ApprovalStatus, PayoutStatus
from services.settlement.disbursement import OutcomeKind


class WithdrawalCreate(BaseModel):
    amount: int
    bank_code: str
    account_number: str
    account_holder_name: str


class WithdrawalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reference_id: str
    requester_id: str
    is_admin_withdrawal: bool
    amount: int
    bank_code: str
    account_number_last4: str
    approval_status: ApprovalStatus
    payout_status: PayoutStatus
    payout_attempt: int
    batch_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    external_payout_id: Optional[str] = None
    failure_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class WithdrawalCreated(BaseModel):
    withdrawal: WithdrawalRead
    remaining_balance: int
    message: str = "Withdrawal request submitted. Awaiting admin approval."


class BalanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gross_revenue: int
    net_revenue: int
    already_withdrawn: int
    available: int


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class DisburseRequest(BaseModel):
    withdrawal_ids: List[uuid.UUID] = Field(..., min_length=1)


class DisbursementOutcomeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    withdrawal_id: uuid.UUID
    outcome: OutcomeKind
    payout_status: Optional[PayoutStatus] = None
    external_payout_id: Optional[str] = None
    error: Optional[str] = None


class BatchRead(BaseModel):
    batch_id: str
    success_count: int
    failure_count: int
    pending_count: int
    skipped_count: int
    results: List[DisbursementOutcomeRead]

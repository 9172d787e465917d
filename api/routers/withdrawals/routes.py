import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_disbursement_coordinator, get_withdrawal_service, http_error
from api.models import ApprovalStatus, PayoutStatus
from api.security import get_caller, require_admin
from services.settlement import Caller, DisbursementCoordinator, SettlementError, WithdrawalService
from .schemas import (
    BalanceRead,
    BatchRead,
    DisbursementOutcomeRead,
    DisburseRequest,
    RejectRequest,
    WithdrawalCreate,
    WithdrawalCreated,
    WithdrawalRead,
)

router = APIRouter()
admin_router = APIRouter()


@router.get("/balance", response_model=BalanceRead, summary="Withdrawable balance of the caller's role")
async def get_balance(
    caller: Caller = Depends(get_caller),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    return await service.get_balance(caller)


@router.get("", response_model=list[WithdrawalRead], summary="Withdrawal history")
async def list_withdrawals(
    approval_status: Optional[ApprovalStatus] = Query(None),
    payout_status: Optional[PayoutStatus] = Query(None),
    caller: Caller = Depends(get_caller),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    """Admins see every withdrawal of the organization, members only their own."""
    return await service.list_withdrawals(caller, approval_status, payout_status)


@router.post("", response_model=WithdrawalCreated, status_code=201, summary="Request a withdrawal")
async def create_withdrawal(
    dto: WithdrawalCreate,
    caller: Caller = Depends(get_caller),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    """
    Request status codes:
    - 201 Created - request stored, awaiting admin approval
    - 400 Bad Request - invalid amount, bank details or insufficient balance
    - 409 Conflict - another withdrawal for the same role is in progress, retry
    """
    try:
        requested = await service.request_withdrawal(
            caller,
            amount=dto.amount,
            bank_code=dto.bank_code,
            account_number=dto.account_number,
            account_holder_name=dto.account_holder_name,
        )
    except SettlementError as e:
        raise http_error(e)
    return WithdrawalCreated(
        withdrawal=WithdrawalRead.model_validate(requested.withdrawal),
        remaining_balance=requested.remaining_balance,
    )


@router.post("/{withdrawal_id}/cancel", response_model=WithdrawalRead, summary="Cancel own pending withdrawal")
async def cancel_withdrawal(
    withdrawal_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    try:
        return await service.cancel(caller, withdrawal_id)
    except SettlementError as e:
        raise http_error(e)


@admin_router.patch("/{withdrawal_id}/approve", response_model=WithdrawalRead, summary="Approve a withdrawal")
async def approve_withdrawal(
    withdrawal_id: uuid.UUID,
    admin: Caller = Depends(require_admin),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    try:
        return await service.approve(admin.organization_id, withdrawal_id, admin.user_id)
    except SettlementError as e:
        raise http_error(e)


@admin_router.patch("/{withdrawal_id}/reject", response_model=WithdrawalRead, summary="Reject a withdrawal")
async def reject_withdrawal(
    withdrawal_id: uuid.UUID,
    dto: RejectRequest,
    admin: Caller = Depends(require_admin),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    try:
        return await service.reject(admin.organization_id, withdrawal_id, admin.user_id, dto.reason)
    except SettlementError as e:
        raise http_error(e)


@admin_router.post("/disburse", response_model=BatchRead, summary="Send approved withdrawals to the payout processor")
async def disburse_batch(
    dto: DisburseRequest,
    admin: Caller = Depends(require_admin),
    coordinator: DisbursementCoordinator = Depends(get_disbursement_coordinator),
):
    """
    Always answers 200 once the batch ran: every id gets its own outcome
    (submitted, rejected, indeterminate, skipped, not_found, error).
    """
    try:
        batch = await coordinator.disburse(admin.organization_id, dto.withdrawal_ids, admin.user_id)
    except SettlementError as e:
        raise http_error(e)
    return BatchRead(
        batch_id=batch.batch_id,
        success_count=batch.success_count,
        failure_count=batch.failure_count,
        pending_count=batch.pending_count,
        skipped_count=batch.skipped_count,
        results=[DisbursementOutcomeRead.model_validate(o) for o in batch.outcomes],
    )


@admin_router.post("/{withdrawal_id}/retry", response_model=WithdrawalRead, summary="Queue a failed payout again")
async def retry_payout(
    withdrawal_id: uuid.UUID,
    admin: Caller = Depends(require_admin),
    coordinator: DisbursementCoordinator = Depends(get_disbursement_coordinator),
):
    try:
        return await coordinator.retry_payout(admin.organization_id, withdrawal_id, admin.user_id)
    except SettlementError as e:
        raise http_error(e)


@admin_router.post("/{withdrawal_id}/refresh", response_model=WithdrawalRead, summary="Fetch payout status from the processor")
async def refresh_payout(
    withdrawal_id: uuid.UUID,
    admin: Caller = Depends(require_admin),
    coordinator: DisbursementCoordinator = Depends(get_disbursement_coordinator),
):
    try:
        return await coordinator.refresh_payout(admin.organization_id, withdrawal_id)
    except SettlementError as e:
        raise http_error(e)

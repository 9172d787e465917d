from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Withdrawal, ApprovalStatus, PayoutStatus
from api.models.withdrawal import new_reference_id
from services.crypto import AccountCipher, mask_account
from .audit import record_audit
from .balance import Balance, BalanceCalculator
from .banks import validate_destination
from .errors import (
    Forbidden,
    InsufficientBalance,
    InvalidTransition,
    ValidationError,
    WithdrawalNotFound,
)
from .guard import RoleLockGuard
from .roles import Caller

# action -> (required current status, new status)
APPROVAL_TRANSITIONS = {
    "approve": (ApprovalStatus.PENDING_APPROVAL, ApprovalStatus.APPROVED),
    "reject": (ApprovalStatus.PENDING_APPROVAL, ApprovalStatus.REJECTED),
    "cancel": (ApprovalStatus.PENDING_APPROVAL, ApprovalStatus.CANCELLED),
}


@dataclass(frozen=True)
class WithdrawalRequested:
    withdrawal: Withdrawal
    remaining_balance: int


class WithdrawalService:
    def __init__(
        self,
        session: AsyncSession,
        guard: RoleLockGuard,
        cipher: AccountCipher,
        calculator: BalanceCalculator | None = None,
    ):
        self.session = session
        self.guard = guard
        self.cipher = cipher
        self.calculator = calculator or BalanceCalculator(session)

    async def get_balance(self, caller: Caller) -> Balance:
        return await self.calculator.compute_balance(caller.organization_id, caller.role)

    async def request_withdrawal(
        self,
        caller: Caller,
        amount: int,
        bank_code: str | None,
        account_number: str | None,
        account_holder_name: str | None,
    ) -> WithdrawalRequested:
        """
        Create a PENDING_APPROVAL withdrawal for the caller's role.

        The balance is recomputed and the row inserted and committed while the
        role's lock is held, so two concurrent requests can never both spend
        the same funds.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("Invalid amount")
        destination = validate_destination(bank_code, account_number, account_holder_name)

        role = caller.role
        async with self.guard.hold(caller.organization_id, role) as lease:
            try:
                balance = await self.calculator.compute_balance(caller.organization_id, role)
                if amount > balance.available:
                    raise InsufficientBalance(balance.available, amount)

                withdrawal = Withdrawal(
                    organization_id=caller.organization_id,
                    requester_id=caller.user_id,
                    is_admin_withdrawal=role.is_admin,
                    amount=amount,
                    bank_code=destination.bank_code,
                    account_number_encrypted=self.cipher.encrypt(destination.account_number),
                    account_holder_name_encrypted=self.cipher.encrypt(destination.account_holder_name),
                    account_number_last4=destination.last4,
                    reference_id=new_reference_id(),
                    approval_status=ApprovalStatus.PENDING_APPROVAL,
                    payout_status=PayoutStatus.PENDING,
                    payout_attempt=1,
                )
                self.session.add(withdrawal)
                await self.session.flush()
                await lease.ensure_held()
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        await self.session.refresh(withdrawal)
        logging.info(
            f"Withdrawal {withdrawal.id} requested by {caller.user_id} ({role.key}) in {caller.organization_id}: "
            f"amount {amount} to {destination.bank_code} {mask_account(destination.account_number)}, available before {balance.available}"
        )
        return WithdrawalRequested(withdrawal=withdrawal, remaining_balance=balance.available - amount)

    async def approve(self, organization_id: str, withdrawal_id: uuid.UUID, actor_id: str) -> Withdrawal:
        """Mark a pending request ready for batching. No money moves here."""
        return await self._transition(organization_id, withdrawal_id, "approve", actor_id)

    async def reject(self, organization_id: str, withdrawal_id: uuid.UUID, actor_id: str, reason: str | None) -> Withdrawal:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason required")
        # Rejected amounts drop out of already_withdrawn, which restores the balance
        return await self._transition(
            organization_id, withdrawal_id, "reject", actor_id, rejection_reason=reason
        )

    async def cancel(self, caller: Caller, withdrawal_id: uuid.UUID) -> Withdrawal:
        withdrawal = await self.get(caller.organization_id, withdrawal_id)
        if withdrawal.requester_id != caller.user_id or withdrawal.is_admin_withdrawal != caller.is_admin:
            raise Forbidden("Only the requester can cancel a withdrawal")
        return await self._transition(caller.organization_id, withdrawal_id, "cancel", caller.user_id)

    async def get(self, organization_id: str, withdrawal_id: uuid.UUID) -> Withdrawal:
        result = await self.session.execute(
            select(Withdrawal)
            .where(Withdrawal.id == withdrawal_id, Withdrawal.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        withdrawal = result.scalar_one_or_none()
        if not withdrawal:
            raise WithdrawalNotFound("Withdrawal not found")
        return withdrawal

    async def list_withdrawals(
        self,
        caller: Caller,
        approval_status: ApprovalStatus | None = None,
        payout_status: PayoutStatus | None = None,
    ) -> list[Withdrawal]:
        query = select(Withdrawal).where(Withdrawal.organization_id == caller.organization_id)
        if not caller.is_admin:
            query = query.where(Withdrawal.requester_id == caller.user_id)
        if approval_status:
            query = query.where(Withdrawal.approval_status == approval_status)
        if payout_status:
            query = query.where(Withdrawal.payout_status == payout_status)
        query = query.order_by(Withdrawal.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _transition(self, organization_id: str, withdrawal_id: uuid.UUID, action: str, actor_id: str, **values) -> Withdrawal:
        expected, target = APPROVAL_TRANSITIONS[action]
        if action != "cancel":
            values.update(reviewed_by=actor_id, reviewed_at=func.now())

        # Compare-and-swap on approval_status: a concurrent approve/reject loses here
        stmt = (
            update(Withdrawal)
            .where(
                Withdrawal.id == withdrawal_id,
                Withdrawal.organization_id == organization_id,
                Withdrawal.approval_status == expected,
            )
            .values(approval_status=target, updated_at=func.now(), **values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                await self.session.rollback()
                current = await self.get(organization_id, withdrawal_id)
                raise InvalidTransition(withdrawal_id, current.approval_status.value, action)

            record_audit(
                self.session,
                organization_id,
                actor_id,
                f"withdrawal_{action}",
                entity_id=withdrawal_id,
                payload={"reason": values.get("rejection_reason")} if action == "reject" else None,
            )
            await self.session.commit()
        except InvalidTransition:
            raise
        except Exception:
            await self.session.rollback()
            raise

        logging.info(f"Withdrawal {withdrawal_id} {target.value} by {actor_id}")
        return await self.get(organization_id, withdrawal_id)

from __future__ import annotations
import asyncio
import enum
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Withdrawal, ApprovalStatus, PayoutStatus
from services.crypto import AccountCipher, DecryptionError
from services.payouts import PayoutProcessor
from .audit import record_audit
from .banks import channel_code_for
from .errors import ExternalPayoutError, InvalidDestination, InvalidTransition, ValidationError, WithdrawalNotFound

PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.ACCEPTED, PayoutStatus.SUCCEEDED, PayoutStatus.FAILED},
    PayoutStatus.ACCEPTED: {PayoutStatus.SUCCEEDED, PayoutStatus.FAILED},
    PayoutStatus.SUCCEEDED: set(),
    # operator retry
    PayoutStatus.FAILED: {PayoutStatus.PENDING},
}

# Processor statuses that are not listed map to ACCEPTED: the processor has the payout
PROCESSOR_STATUS_MAP = {
    "SUCCEEDED": PayoutStatus.SUCCEEDED,
    "COMPLETED": PayoutStatus.SUCCEEDED,
    "FAILED": PayoutStatus.FAILED,
    "CANCELLED": PayoutStatus.FAILED,
    "REVERSED": PayoutStatus.FAILED,
}


def map_processor_status(status: str | None) -> PayoutStatus:
    return PROCESSOR_STATUS_MAP.get((status or "").upper(), PayoutStatus.ACCEPTED)


def split_payout_reference(reference: str) -> tuple[str, int] | None:
    """Split a processor-side reference `<reference_id>-<attempt>` into its parts."""
    base, sep, attempt = reference.rpartition("-")
    if not sep or not base or not attempt.isdigit():
        return None
    return base, int(attempt)


class OutcomeKind(str, enum.Enum):
    SUBMITTED = "submitted"
    REJECTED = "rejected"
    INDETERMINATE = "indeterminate"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class DisbursementOutcome:
    withdrawal_id: uuid.UUID
    outcome: OutcomeKind
    payout_status: PayoutStatus | None = None
    external_payout_id: str | None = None
    error: str | None = None


@dataclass
class BatchResult:
    batch_id: str
    outcomes: list[DisbursementOutcome] = field(default_factory=list)

    def _count(self, *kinds: OutcomeKind) -> int:
        return sum(1 for o in self.outcomes if o.outcome in kinds)

    @property
    def success_count(self) -> int:
        return self._count(OutcomeKind.SUBMITTED)

    @property
    def failure_count(self) -> int:
        return self._count(OutcomeKind.REJECTED, OutcomeKind.ERROR)

    @property
    def pending_count(self) -> int:
        return self._count(OutcomeKind.INDETERMINATE)

    @property
    def skipped_count(self) -> int:
        return self._count(OutcomeKind.SKIPPED, OutcomeKind.NOT_FOUND)

    def by_id(self) -> dict[uuid.UUID, DisbursementOutcome]:
        return {o.withdrawal_id: o for o in self.outcomes}


class DisbursementCoordinator:
    """
    Pushes approved withdrawals through the payout processor, one call per
    withdrawal. Each item is committed on its own; one failing item never
    fails the batch.
    """

    def __init__(self, session: AsyncSession, processor: PayoutProcessor, cipher: AccountCipher, call_timeout: float = 15.0):
        self.session = session
        self.processor = processor
        self.cipher = cipher
        self.call_timeout = call_timeout

    async def disburse(self, organization_id: str, withdrawal_ids: Iterable[uuid.UUID], actor_id: str) -> BatchResult:
        ids = list(dict.fromkeys(withdrawal_ids))
        if not ids:
            raise ValidationError("Withdrawal IDs array required")

        batch = BatchResult(batch_id=f"BATCH-{int(time.time() * 1000)}")
        result = await self.session.execute(
            select(Withdrawal)
            .where(Withdrawal.id.in_(ids), Withdrawal.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        found = {w.id: w for w in result.scalars().all()}

        for withdrawal_id in ids:
            withdrawal = found.get(withdrawal_id)
            if withdrawal is None:
                batch.outcomes.append(
                    DisbursementOutcome(withdrawal_id, OutcomeKind.NOT_FOUND, error="Withdrawal not found")
                )
                continue
            if not self._is_disbursable(withdrawal):
                batch.outcomes.append(self._skipped(withdrawal))
                continue
            batch.outcomes.append(await self._disburse_one(withdrawal, batch.batch_id))

        record_audit(
            self.session,
            organization_id,
            actor_id,
            "withdrawal_disburse_batch",
            entity="batch",
            entity_id=batch.batch_id,
            payload={
                "withdrawal_ids": [str(i) for i in ids],
                "success": batch.success_count,
                "failed": batch.failure_count,
                "pending": batch.pending_count,
                "skipped": batch.skipped_count,
            },
        )
        await self.session.commit()

        logging.info(
            f"Batch {batch.batch_id} in {organization_id}: {batch.success_count} submitted, "
            f"{batch.failure_count} failed, {batch.pending_count} indeterminate, {batch.skipped_count} skipped"
        )
        return batch

    @staticmethod
    def _is_disbursable(withdrawal: Withdrawal) -> bool:
        return (
            withdrawal.approval_status == ApprovalStatus.APPROVED
            and withdrawal.payout_status == PayoutStatus.PENDING
        )

    @staticmethod
    def _skipped(withdrawal: Withdrawal) -> DisbursementOutcome:
        return DisbursementOutcome(
            withdrawal.id,
            OutcomeKind.SKIPPED,
            payout_status=withdrawal.payout_status,
            external_payout_id=withdrawal.external_payout_id,
            error=(
                f"Not disbursable: approval_status={withdrawal.approval_status.value}, "
                f"payout_status={withdrawal.payout_status.value}"
            ),
        )

    async def _disburse_one(self, withdrawal: Withdrawal, batch_id: str) -> DisbursementOutcome:
        try:
            channel_code_for(withdrawal.bank_code)
        except InvalidDestination as e:
            await self._record(withdrawal, PayoutStatus.FAILED, batch_id=batch_id, failure_code="INVALID_BANK_CODE")
            return DisbursementOutcome(withdrawal.id, OutcomeKind.REJECTED, PayoutStatus.FAILED, error=str(e))

        try:
            account_number = self.cipher.decrypt(withdrawal.account_number_encrypted)
            account_holder_name = self.cipher.decrypt(withdrawal.account_holder_name_encrypted)
        except DecryptionError as e:
            # Nothing was sent; leave PENDING so it can go out once the key is fixed
            return DisbursementOutcome(withdrawal.id, OutcomeKind.ERROR, PayoutStatus.PENDING, error=str(e))

        key = withdrawal.idempotency_key
        logging.info(f"Submitting payout for withdrawal {withdrawal.id}: amount {withdrawal.amount}, key {key}")
        try:
            payout = await asyncio.wait_for(
                self.processor.submit_payout(
                    idempotency_key=key,
                    amount=withdrawal.amount,
                    bank_code=withdrawal.bank_code,
                    account_number=account_number,
                    account_holder_name=account_holder_name,
                    reference_id=key,
                ),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError:
            logging.warning(f"Payout call for withdrawal {withdrawal.id} timed out after {self.call_timeout}s, left PENDING")
            return DisbursementOutcome(
                withdrawal.id,
                OutcomeKind.INDETERMINATE,
                PayoutStatus.PENDING,
                error="Payout processor timed out; retry with the same idempotency key",
            )
        except ExternalPayoutError as e:
            if e.indeterminate:
                logging.warning(f"Payout outcome for withdrawal {withdrawal.id} unknown, left PENDING: {e}")
                return DisbursementOutcome(withdrawal.id, OutcomeKind.INDETERMINATE, PayoutStatus.PENDING, error=str(e))
            await self._record(withdrawal, PayoutStatus.FAILED, batch_id=batch_id, failure_code=e.failure_code)
            logging.warning(f"Payout for withdrawal {withdrawal.id} rejected by processor: {e}")
            return DisbursementOutcome(withdrawal.id, OutcomeKind.REJECTED, PayoutStatus.FAILED, error=str(e))
        except Exception as e:
            # Unknown failure: the payout may exist, so it stays PENDING for the same key
            logging.exception(f"Unexpected error submitting payout for withdrawal {withdrawal.id}, left PENDING")
            return DisbursementOutcome(withdrawal.id, OutcomeKind.ERROR, PayoutStatus.PENDING, error=f"{type(e).__name__}: {e}")

        new_status = map_processor_status(payout.status)
        updated = await self._record(
            withdrawal,
            new_status,
            batch_id=batch_id,
            external_payout_id=payout.external_id,
            failure_code=payout.failure_code if new_status == PayoutStatus.FAILED else None,
        )
        if not updated:
            current = await self._reload(withdrawal)
            return DisbursementOutcome(
                withdrawal.id,
                OutcomeKind.SKIPPED,
                current.payout_status,
                current.external_payout_id,
                error="Updated concurrently by another disbursement",
            )

        logging.info(f"Withdrawal {withdrawal.id} payout {payout.external_id} -> {new_status.value}")
        kind = OutcomeKind.REJECTED if new_status == PayoutStatus.FAILED else OutcomeKind.SUBMITTED
        return DisbursementOutcome(withdrawal.id, kind, new_status, payout.external_id)

    async def _record(self, withdrawal: Withdrawal, new_status: PayoutStatus, **values) -> bool:
        """Compare-and-swap payout_status from the value held in memory. Commits on success."""
        expected = withdrawal.payout_status
        if new_status not in PAYOUT_TRANSITIONS[expected]:
            raise InvalidTransition(withdrawal.id, expected.value, f"move payout to {new_status.value}")

        stmt = (
            update(Withdrawal)
            .where(
                Withdrawal.id == withdrawal.id,
                Withdrawal.approval_status == ApprovalStatus.APPROVED,
                Withdrawal.payout_status == expected,
                Withdrawal.payout_attempt == withdrawal.payout_attempt,
            )
            .values(payout_status=new_status, updated_at=func.now(), **values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            updated = result.rowcount == 1
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return updated

    async def _reload(self, withdrawal: Withdrawal) -> Withdrawal:
        return await self.get(withdrawal.organization_id, withdrawal.id)

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

    async def retry_payout(self, organization_id: str, withdrawal_id: uuid.UUID, actor_id: str) -> Withdrawal:
        """
        Put a FAILED payout back in the queue. The attempt counter moves on so the
        next call carries a fresh idempotency key.
        """
        withdrawal = await self.get(organization_id, withdrawal_id)
        if withdrawal.approval_status != ApprovalStatus.APPROVED or withdrawal.payout_status != PayoutStatus.FAILED:
            raise InvalidTransition(withdrawal_id, withdrawal.payout_status.value, "retry payout for")

        attempt = withdrawal.payout_attempt
        updated = await self._record(
            withdrawal,
            PayoutStatus.PENDING,
            payout_attempt=attempt + 1,
            external_payout_id=None,
            failure_code=None,
            batch_id=None,
        )
        if not updated:
            current = await self.get(organization_id, withdrawal_id)
            raise InvalidTransition(withdrawal_id, current.payout_status.value, "retry payout for")

        record_audit(self.session, organization_id, actor_id, "withdrawal_retry_payout", entity_id=withdrawal_id,
                     payload={"attempt": attempt + 1})
        await self.session.commit()
        logging.info(f"Withdrawal {withdrawal_id} queued for payout attempt {attempt + 1} by {actor_id}")
        return await self.get(organization_id, withdrawal_id)

    async def refresh_payout(self, organization_id: str, withdrawal_id: uuid.UUID) -> Withdrawal:
        """Ask the processor for the current state of an ACCEPTED payout and apply terminal states."""
        withdrawal = await self.get(organization_id, withdrawal_id)
        if withdrawal.payout_status != PayoutStatus.ACCEPTED or not withdrawal.external_payout_id:
            raise InvalidTransition(withdrawal_id, withdrawal.payout_status.value, "refresh payout for")

        payout = await self.processor.get_payout(withdrawal.external_payout_id)
        if payout is None:
            logging.warning(f"Payout {withdrawal.external_payout_id} of withdrawal {withdrawal_id} not found at processor")
            return withdrawal

        await self._apply(withdrawal, map_processor_status(payout.status), payout.failure_code)
        return await self.get(organization_id, withdrawal_id)

    async def refresh_accepted(self, organization_id: str) -> list[Withdrawal]:
        result = await self.session.execute(
            select(Withdrawal.id).where(
                Withdrawal.organization_id == organization_id,
                Withdrawal.approval_status == ApprovalStatus.APPROVED,
                Withdrawal.payout_status == PayoutStatus.ACCEPTED,
            )
        )
        refreshed = []
        for withdrawal_id in result.scalars().all():
            try:
                refreshed.append(await self.refresh_payout(organization_id, withdrawal_id))
            except (ExternalPayoutError, InvalidTransition) as e:
                logging.warning(f"Could not refresh payout of withdrawal {withdrawal_id}: {e}")
        return refreshed

    async def apply_status_update(
        self,
        status: str,
        external_payout_id: str | None = None,
        reference_id: str | None = None,
        failure_code: str | None = None,
    ) -> Withdrawal | None:
        """Apply a processor callback. Returns None when the payout is not ours."""
        if not external_payout_id and not reference_id:
            raise ValidationError("Payout id or reference id required")

        clauses = []
        if external_payout_id:
            clauses.append(Withdrawal.external_payout_id == external_payout_id)
        parsed = split_payout_reference(reference_id) if reference_id else None
        if parsed:
            base, attempt = parsed
            clauses.append(and_(Withdrawal.reference_id == base, Withdrawal.payout_attempt == attempt))
        if not clauses:
            logging.warning(f"Payout callback with unrecognised reference {reference_id}")
            return None
        result = await self.session.execute(
            select(Withdrawal)
            .where(or_(*clauses), Withdrawal.approval_status == ApprovalStatus.APPROVED)
            .execution_options(populate_existing=True)
        )
        withdrawal = result.scalars().first()
        if withdrawal is None:
            logging.warning(f"Payout callback for unknown payout {external_payout_id or reference_id}")
            return None
        if external_payout_id and withdrawal.external_payout_id and withdrawal.external_payout_id != external_payout_id:
            logging.warning(
                f"Ignoring callback for payout {external_payout_id}: withdrawal {withdrawal.id} "
                f"is on payout {withdrawal.external_payout_id}"
            )
            return None

        await self._apply(withdrawal, map_processor_status(status), failure_code, external_payout_id)
        return await self.get(withdrawal.organization_id, withdrawal.id)

    async def _apply(
        self,
        withdrawal: Withdrawal,
        new_status: PayoutStatus,
        failure_code: str | None = None,
        external_payout_id: str | None = None,
    ) -> None:
        if new_status == withdrawal.payout_status:
            return
        if new_status not in PAYOUT_TRANSITIONS[withdrawal.payout_status] or new_status == PayoutStatus.PENDING:
            logging.warning(
                f"Ignoring payout update {withdrawal.payout_status.value} -> {new_status.value} "
                f"for withdrawal {withdrawal.id}"
            )
            return

        values = {}
        if external_payout_id and not withdrawal.external_payout_id:
            values["external_payout_id"] = external_payout_id
        if new_status == PayoutStatus.FAILED:
            values["failure_code"] = failure_code
        if await self._record(withdrawal, new_status, **values):
            logging.info(f"Withdrawal {withdrawal.id} payout -> {new_status.value}")

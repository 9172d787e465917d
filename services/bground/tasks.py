from __future__ import annotations
from typing import Any, Dict, List
import asyncio
import logging
import uuid

from celery import states
from sqlalchemy.ext.asyncio import async_sessionmaker

from api.database import async_session_maker
from config import ENV
from services.bground import CeleryManager
from services.crypto import AccountCipher
from services.payouts import PayoutProcessor
from services.payouts.xendit import XenditPayoutClient
from services.settlement import BatchResult, DisbursementCoordinator

celery_app = CeleryManager()


def batch_to_dict(batch: BatchResult) -> Dict[str, Any]:
    return {
        "batch_id": batch.batch_id,
        "success_count": batch.success_count,
        "failure_count": batch.failure_count,
        "pending_count": batch.pending_count,
        "skipped_count": batch.skipped_count,
        "results": [
            {
                "withdrawal_id": str(o.withdrawal_id),
                "outcome": o.outcome.value,
                "payout_status": o.payout_status.value if o.payout_status else None,
                "external_payout_id": o.external_payout_id,
                "error": o.error,
            }
            for o in batch.outcomes
        ],
    }


async def run_disbursement(
    session_factory: async_sessionmaker,
    processor: PayoutProcessor,
    cipher: AccountCipher,
    organization_id: str,
    withdrawal_ids: List[str],
    actor_id: str,
    call_timeout: float = 15.0,
) -> BatchResult:
    async with session_factory() as session:
        coordinator = DisbursementCoordinator(session, processor, cipher, call_timeout=call_timeout)
        return await coordinator.disburse(organization_id, [uuid.UUID(i) for i in withdrawal_ids], actor_id)


async def run_refresh(
    session_factory: async_sessionmaker,
    processor: PayoutProcessor,
    cipher: AccountCipher,
    organization_id: str,
) -> List[str]:
    async with session_factory() as session:
        coordinator = DisbursementCoordinator(session, processor, cipher)
        refreshed = await coordinator.refresh_accepted(organization_id)
        return [str(w.id) for w in refreshed]


@celery_app.celery_app.task(bind=True, max_retries=3, name="withdrawals.disburse_batch")
def disburse_batch(self, organization_id: str, withdrawal_ids: List[str], actor_id: str) -> Dict[str, Any]:
    """
    Disburses a batch of approved withdrawals outside the request cycle.
    Items with an unknown outcome stay PENDING and go out again with the
    same idempotency key on the next batch.
    """
    env = ENV()
    self.update_state(state=states.STARTED, meta={"withdrawals": len(withdrawal_ids)})
    try:
        batch = asyncio.run(run_disbursement(
            async_session_maker,
            XenditPayoutClient(),
            AccountCipher(),
            organization_id,
            withdrawal_ids,
            actor_id,
            call_timeout=env.PAYOUT_TIMEOUT_SECONDS,
        ))
    except Exception as e:
        self.update_state(state=states.FAILURE, meta={"error": str(e)})
        raise
    return batch_to_dict(batch)


@celery_app.celery_app.task(name="withdrawals.refresh_payouts")
def refresh_payouts(organization_id: str) -> Dict[str, Any]:
    refreshed = asyncio.run(run_refresh(async_session_maker, XenditPayoutClient(), AccountCipher(), organization_id))
    logging.info(f"Refreshed {len(refreshed)} accepted payouts in {organization_id}")
    return {"refreshed": refreshed}

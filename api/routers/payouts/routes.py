import logging

from fastapi import APIRouter, Depends, Header, HTTPException, status

from api.deps import get_disbursement_coordinator, http_error
from config import ENV
from services.settlement import DisbursementCoordinator, SettlementError
from .schemas import PayoutCallbackEnvelope

router = APIRouter()
env = ENV()


@router.post("/payouts", status_code=200, summary="Payout status webhook")
async def payout_webhook(
    notification: PayoutCallbackEnvelope,
    x_callback_token: str | None = Header(None),
    coordinator: DisbursementCoordinator = Depends(get_disbursement_coordinator),
):
    """
    Receives payout status changes from the processor and moves
    ACCEPTED/PENDING payouts to SUCCEEDED or FAILED.
    """
    if not x_callback_token or x_callback_token != env.XENDIT_CALLBACK_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid callback token")

    payout = notification.data
    logging.info(f"Received payout webhook: event={notification.event}, id={payout.id}, status={payout.status}")
    try:
        withdrawal = await coordinator.apply_status_update(
            payout.status,
            external_payout_id=payout.id,
            reference_id=payout.reference_id,
            failure_code=payout.failure_code,
        )
    except SettlementError as e:
        raise http_error(e)

    if withdrawal is None:
        return {"status": "ignored"}
    return {"status": "ok", "payout_status": withdrawal.payout_status.value}

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.database import get_session
from config import ENV
from services.crypto import AccountCipher
from services.payouts import PayoutProcessor
from services.payouts.xendit import XenditPayoutClient
from services.redis import RedisClient
from services.settlement import (
    BalanceCalculator,
    LedgerReader,
    DisbursementCoordinator,
    RevenueShareService,
    RoleLockGuard,
    WithdrawalService,
)
from services.settlement.errors import (
    ConcurrencyConflict,
    ExternalPayoutError,
    Forbidden,
    InsufficientBalance,
    InvalidTransition,
    SettlementError,
    ValidationError,
    WithdrawalNotFound,
)


@lru_cache
def get_redis_client() -> RedisClient:
    return RedisClient()


def get_role_guard() -> RoleLockGuard:
    return get_redis_client().role_guard()


@lru_cache
def get_cipher() -> AccountCipher:
    return AccountCipher()


def get_payout_processor() -> PayoutProcessor:
    return XenditPayoutClient()


def get_withdrawal_service(
    session: AsyncSession = Depends(get_session),
    guard: RoleLockGuard = Depends(get_role_guard),
    cipher: AccountCipher = Depends(get_cipher),
) -> WithdrawalService:
    ledger = LedgerReader(session, default_percent=ENV().DEFAULT_MEMBER_SHARE_PERCENT)
    return WithdrawalService(session, guard, cipher, BalanceCalculator(session, ledger))


def get_disbursement_coordinator(
    session: AsyncSession = Depends(get_session),
    processor: PayoutProcessor = Depends(get_payout_processor),
    cipher: AccountCipher = Depends(get_cipher),
) -> DisbursementCoordinator:
    return DisbursementCoordinator(session, processor, cipher, call_timeout=ENV().PAYOUT_TIMEOUT_SECONDS)


def get_revenue_share_service(session: AsyncSession = Depends(get_session)) -> RevenueShareService:
    return RevenueShareService(session)


# Order matters: subclasses before their bases
_STATUS_CODES = (
    (InsufficientBalance, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (WithdrawalNotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (ConcurrencyConflict, status.HTTP_409_CONFLICT),
    (ExternalPayoutError, status.HTTP_502_BAD_GATEWAY),
)


def http_error(error: SettlementError) -> HTTPException:
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(status_code=code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))

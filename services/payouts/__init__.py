from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PayoutResult:
    external_id: str
    # Processor-side status, e.g. ACCEPTED, PENDING, SUCCEEDED, FAILED
    status: str
    reference_id: str | None = None
    failure_code: str | None = None


class PayoutProcessor(ABC):
    """
    External money movement. submit_payout must be idempotent on
    idempotency_key: repeating a call with the same key never creates a
    second payout.

    Implementations raise ExternalPayoutError; indeterminate=True whenever the
    outcome of the call is unknown.
    """

    @abstractmethod
    async def submit_payout(
        self,
        idempotency_key: str,
        amount: int,
        bank_code: str,
        account_number: str,
        account_holder_name: str,
        reference_id: str | None = None,
    ) -> PayoutResult:
        pass

    @abstractmethod
    async def get_payout(self, external_id: str) -> PayoutResult | None:
        pass

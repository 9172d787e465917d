class SettlementError(Exception):
    """Base class for every error this service reports to its callers."""


class ValidationError(SettlementError): ...
class InvalidDestination(ValidationError): ...
class WithdrawalNotFound(SettlementError): ...
class Forbidden(SettlementError): ...


class InsufficientBalance(SettlementError):
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient balance. Available: {available}, Requested: {requested}")


class InvalidTransition(SettlementError):
    def __init__(self, withdrawal_id, current: str, action: str):
        self.withdrawal_id = withdrawal_id
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} withdrawal {withdrawal_id} with status: {current}")


class ConcurrencyConflict(SettlementError):
    """Another balance-affecting operation holds the role. Safe to retry."""


class ExternalPayoutError(SettlementError):
    """
    Payout processor call did not succeed.

    indeterminate=True means the processor may or may not have received the
    call (timeout, network, 5xx). Such a payout must be retried with the same
    idempotency key and never be marked FAILED.
    """

    def __init__(self, message: str, indeterminate: bool, failure_code: str | None = None):
        self.indeterminate = indeterminate
        self.failure_code = failure_code
        super().__init__(message)

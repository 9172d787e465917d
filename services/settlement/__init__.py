from .roles import AdminRole, MemberRole, Role, Caller
from .errors import (
    SettlementError,
    ValidationError,
    InvalidDestination,
    InsufficientBalance,
    InvalidTransition,
    WithdrawalNotFound,
    Forbidden,
    ConcurrencyConflict,
    ExternalPayoutError,
)
from .balance import Balance, BalanceCalculator
from .ledger import LedgerEntry, LedgerReader
from .guard import RoleLockGuard
from .withdrawals import WithdrawalService, WithdrawalRequested
from .disbursement import DisbursementCoordinator, BatchResult, DisbursementOutcome, OutcomeKind
from .revenue_share import RevenueShareService

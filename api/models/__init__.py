from .base import Base
from .booth import Booth
from .transaction import Transaction, TransactionStatus, REVENUE_STATUSES
from .revenue_share import RevenueShare, DEFAULT_PERCENT_TO_MEMBER
from .withdrawal import (
    Withdrawal,
    ApprovalStatus,
    PayoutStatus,
    RELEASED_APPROVAL_STATUSES,
)
from .audit import AuditLog

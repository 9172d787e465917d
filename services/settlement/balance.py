from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Withdrawal, RELEASED_APPROVAL_STATUSES
from .ledger import LedgerEntry, LedgerReader
from .roles import Role, MemberRole


@dataclass(frozen=True)
class Balance:
    gross_revenue: int
    net_revenue: int
    already_withdrawn: int
    available: int


def net_revenue(entries: Iterable[LedgerEntry]) -> int:
    # Exact integer sum first, then a single floor division: no per-row drift
    return sum(e.amount * e.share_percent for e in entries) // 100


def summarize(entries: list[LedgerEntry], already_withdrawn: int) -> Balance:
    net = net_revenue(entries)
    return Balance(
        gross_revenue=sum(e.amount for e in entries),
        net_revenue=net,
        already_withdrawn=already_withdrawn,
        available=max(0, net - already_withdrawn),
    )


def outstanding_filter(organization_id: str, role: Role) -> list:
    """WHERE clauses selecting a role's withdrawals that still count against its balance."""
    clauses = [
        Withdrawal.organization_id == organization_id,
        Withdrawal.is_admin_withdrawal == role.is_admin,
        Withdrawal.approval_status.not_in(RELEASED_APPROVAL_STATUSES),
    ]
    if isinstance(role, MemberRole):
        clauses.append(Withdrawal.requester_id == role.user_id)
    return clauses


class BalanceCalculator:
    def __init__(self, session: AsyncSession, ledger: LedgerReader | None = None):
        self.session = session
        self.ledger = ledger or LedgerReader(session)

    async def already_withdrawn(self, organization_id: str, role: Role) -> int:
        total = await self.session.scalar(
            select(func.coalesce(func.sum(Withdrawal.amount), 0))
            .where(*outstanding_filter(organization_id, role))
        )
        return int(total or 0)

    async def compute_balance(self, organization_id: str, role: Role) -> Balance:
        entries = await self.ledger.attributable(organization_id, role)
        withdrawn = await self.already_withdrawn(organization_id, role)
        return summarize(entries, withdrawn)

from __future__ import annotations
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Booth, RevenueShare, Transaction, REVENUE_STATUSES, DEFAULT_PERCENT_TO_MEMBER
from .roles import Role, MemberRole


@dataclass(frozen=True)
class LedgerEntry:
    transaction_id: str
    amount: int
    assigned_to: str | None
    # Percent of amount that belongs to the role the entry was read for
    share_percent: int


def average_percent(percents: list[int], default: int = DEFAULT_PERCENT_TO_MEMBER) -> int:
    """Mean of configured member percents, rounded half up. Falls back to default when none are set."""
    if not percents:
        return default
    n = len(percents)
    return (2 * sum(percents) + n) // (2 * n)


class LedgerReader:
    def __init__(self, session: AsyncSession, default_percent: int = DEFAULT_PERCENT_TO_MEMBER):
        self.session = session
        self.default_percent = default_percent

    async def member_shares(self, organization_id: str) -> dict[str, int]:
        result = await self.session.execute(
            select(RevenueShare.user_id, RevenueShare.percent_to_member)
            .where(RevenueShare.organization_id == organization_id)
        )
        return {user_id: percent for user_id, percent in result.all()}

    async def attributable(self, organization_id: str, role: Role) -> list[LedgerEntry]:
        stmt = (
            select(Transaction.id, Transaction.amount, Booth.assigned_to)
            .join(Booth, Transaction.booth_id == Booth.id)
            .where(
                Booth.organization_id == organization_id,
                Transaction.status.in_(REVENUE_STATUSES),
            )
            .order_by(Transaction.created_at, Transaction.id)
        )
        if isinstance(role, MemberRole):
            stmt = stmt.where(Booth.assigned_to == role.user_id)

        rows = (await self.session.execute(stmt)).all()
        shares = await self.member_shares(organization_id)
        fallback = average_percent(list(shares.values()), self.default_percent)

        entries = []
        for transaction_id, amount, assigned_to in rows:
            if assigned_to is not None:
                member_percent = shares.get(assigned_to, self.default_percent)
            else:
                member_percent = fallback
            share = 100 - member_percent if role.is_admin else member_percent
            entries.append(LedgerEntry(transaction_id, amount, assigned_to, share))
        return entries

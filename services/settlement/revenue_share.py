from __future__ import annotations
import logging
import math

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import RevenueShare
from .audit import record_audit
from .errors import ConcurrencyConflict, ValidationError


def normalize_percent(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise ValidationError("Invalid percentage value")
    if value < 0 or value > 100:
        raise ValidationError("Invalid percentage value")
    return int(math.floor(value + 0.5))


class RevenueShareService:
    """
    One current percentage per member. Changing it re-prices the member's
    past transactions as well, since balances are always recomputed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_shares(self, organization_id: str) -> list[RevenueShare]:
        result = await self.session.execute(
            select(RevenueShare)
            .where(RevenueShare.organization_id == organization_id)
            .order_by(RevenueShare.user_id)
        )
        return list(result.scalars().all())

    async def set_share(self, organization_id: str, member_id: str, percent, actor_id: str) -> RevenueShare:
        member_id = (member_id or "").strip()
        if not member_id:
            raise ValidationError("Member ID required")
        percent = normalize_percent(percent)

        share = await self.session.get(RevenueShare, (organization_id, member_id))
        previous = share.percent_to_member if share else None
        if share is None:
            share = RevenueShare(organization_id=organization_id, user_id=member_id, percent_to_member=percent)
            self.session.add(share)
        else:
            share.percent_to_member = percent

        record_audit(
            self.session,
            organization_id,
            actor_id,
            "revenue_share_update",
            entity="revenue_share",
            entity_id=member_id,
            payload={"previous": previous, "percent_to_member": percent},
        )
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConcurrencyConflict("Revenue share was changed concurrently, retry") from None

        await self.session.refresh(share)
        logging.info(f"Revenue share of {member_id} in {organization_id} set to {percent}% by {actor_id} (was {previous})")
        return share

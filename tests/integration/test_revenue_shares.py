"""Integration tests for revenue share configuration."""

import pytest
from sqlalchemy import select

from api.models import AuditLog
from services.settlement import RevenueShareService, WithdrawalService
from services.settlement.errors import ValidationError

ORG = "org_1"


@pytest.fixture
def shares(session):
    return RevenueShareService(session)


class TestRevenueShares:

    async def test_create_and_update(self, shares, admin):
        created = await shares.set_share(ORG, "member_1", 75, admin.user_id)
        assert created.percent_to_member == 75
        assert created.percent_to_organization == 25

        updated = await shares.set_share(ORG, "member_1", 82.5, admin.user_id)
        assert updated.percent_to_member == 83

        listed = await shares.list_shares(ORG)
        assert [(s.user_id, s.percent_to_member) for s in listed] == [("member_1", 83)]

    async def test_change_is_audited(self, shares, session, admin):
        await shares.set_share(ORG, "member_1", 75, admin.user_id)
        await shares.set_share(ORG, "member_1", 60, admin.user_id)

        entries = (await session.execute(select(AuditLog).where(AuditLog.entity == "revenue_share"))).scalars().all()

        payloads = sorted((e.payload_json["previous"] or 0, e.payload_json["percent_to_member"]) for e in entries)
        assert payloads == [(0, 75), (75, 60)]

    async def test_invalid_percent(self, shares, admin):
        with pytest.raises(ValidationError):
            await shares.set_share(ORG, "member_1", 120, admin.user_id)

    async def test_member_required(self, shares, admin):
        with pytest.raises(ValidationError, match="Member ID required"):
            await shares.set_share(ORG, " ", 50, admin.user_id)

    async def test_shares_are_per_organization(self, shares, admin):
        await shares.set_share(ORG, "member_1", 70, admin.user_id)
        await shares.set_share("org_2", "member_1", 90, admin.user_id)

        assert [s.percent_to_member for s in await shares.list_shares(ORG)] == [70]

    async def test_change_reprices_past_sales(self, shares, seed, session, guard, cipher, member, admin):
        booth = await seed.booth(assigned_to=member.user_id)
        await seed.sale(booth, 100000)
        withdrawals = WithdrawalService(session, guard, cipher)
        assert (await withdrawals.get_balance(member)).net_revenue == 80000

        await shares.set_share(ORG, member.user_id, 50, admin.user_id)

        assert (await withdrawals.get_balance(member)).net_revenue == 50000
        assert (await withdrawals.get_balance(admin)).net_revenue == 50000

"""Unit tests for revenue attribution and balance arithmetic."""

import pytest

from services.settlement.balance import net_revenue, summarize
from services.settlement.ledger import LedgerEntry, average_percent


def entry(amount, percent, assigned_to="member_1"):
    return LedgerEntry(transaction_id=f"TX-{amount}-{percent}", amount=amount, share_percent=percent, assigned_to=assigned_to)


class TestNetRevenue:
    """Tests for the single floor division over exact integer sums."""

    def test_member_share_of_one_sale(self):
        assert net_revenue([entry(1000, 83)]) == 830

    def test_admin_share_of_one_sale(self):
        assert net_revenue([entry(1000, 17)]) == 170

    def test_rounds_once_over_the_sum(self):
        """Three sales of 1 at 50% are worth 1, not 0 + 0 + 0."""
        entries = [entry(1, 50), entry(1, 50), entry(1, 50)]

        assert net_revenue(entries) == 1

    def test_member_and_admin_never_exceed_gross(self):
        amounts = [33333, 10001, 7, 99999]
        member = net_revenue([entry(a, 83) for a in amounts])
        org = net_revenue([entry(a, 17) for a in amounts])

        assert member + org <= sum(amounts)
        assert sum(amounts) - (member + org) <= 1

    def test_empty_ledger(self):
        assert net_revenue([]) == 0

    def test_zero_percent(self):
        assert net_revenue([entry(50000, 0)]) == 0


class TestSummarize:
    """Tests for balance snapshots."""

    def test_balance_fields(self):
        balance = summarize([entry(100000, 80), entry(50000, 80)], already_withdrawn=50000)

        assert balance.gross_revenue == 150000
        assert balance.net_revenue == 120000
        assert balance.already_withdrawn == 50000
        assert balance.available == 70000

    def test_available_never_negative(self):
        """Lowering a share after withdrawals can leave net below withdrawn."""
        balance = summarize([entry(100000, 50)], already_withdrawn=80000)

        assert balance.available == 0


class TestAveragePercent:
    """Tests for the share used on booths with no assigned member."""

    def test_default_without_shares(self):
        assert average_percent([]) == 80

    def test_custom_default(self):
        assert average_percent([], default=70) == 70

    @pytest.mark.parametrize(
        "percents,expected",
        [
            ([80], 80),
            ([70, 90], 80),
            ([70, 75], 73),
            ([70, 71], 71),
            ([60, 61, 61], 61),
        ],
    )
    def test_mean_rounded_half_up(self, percents, expected):
        assert average_percent(percents) == expected

"""Unit tests for processor status mapping and batch counters."""

import uuid

import pytest

from api.models import PayoutStatus
from services.settlement.disbursement import (
    PAYOUT_TRANSITIONS,
    BatchResult,
    DisbursementOutcome,
    OutcomeKind,
    map_processor_status,
)


class TestMapProcessorStatus:

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("SUCCEEDED", PayoutStatus.SUCCEEDED),
            ("completed", PayoutStatus.SUCCEEDED),
            ("FAILED", PayoutStatus.FAILED),
            ("CANCELLED", PayoutStatus.FAILED),
            ("REVERSED", PayoutStatus.FAILED),
            ("ACCEPTED", PayoutStatus.ACCEPTED),
            ("REQUESTED", PayoutStatus.ACCEPTED),
            (None, PayoutStatus.ACCEPTED),
        ],
    )
    def test_mapping(self, status, expected):
        assert map_processor_status(status) == expected


class TestPayoutTransitions:

    def test_succeeded_is_terminal(self):
        assert PAYOUT_TRANSITIONS[PayoutStatus.SUCCEEDED] == set()

    def test_failed_only_goes_back_to_pending(self):
        assert PAYOUT_TRANSITIONS[PayoutStatus.FAILED] == {PayoutStatus.PENDING}

    def test_accepted_cannot_go_back(self):
        assert PayoutStatus.PENDING not in PAYOUT_TRANSITIONS[PayoutStatus.ACCEPTED]


class TestBatchResult:

    def test_counts(self):
        kinds = [
            OutcomeKind.SUBMITTED,
            OutcomeKind.SUBMITTED,
            OutcomeKind.REJECTED,
            OutcomeKind.ERROR,
            OutcomeKind.INDETERMINATE,
            OutcomeKind.SKIPPED,
            OutcomeKind.NOT_FOUND,
        ]
        batch = BatchResult("BATCH-1", [DisbursementOutcome(uuid.uuid4(), k) for k in kinds])

        assert batch.success_count == 2
        assert batch.failure_count == 2
        assert batch.pending_count == 1
        assert batch.skipped_count == 2
        assert len(batch.by_id()) == 7

"""Unit tests for the Xendit payout client."""

import json

import httpx
import pytest

from services.payouts.xendit import XenditPayoutClient
from services.settlement.errors import ExternalPayoutError


def make_client(handler):
    return XenditPayoutClient(transport=httpx.MockTransport(handler))


async def submit(client):
    return await client.submit_payout(
        idempotency_key="WD-ABC-1",
        amount=50000,
        bank_code="BCA",
        account_number="1234567890",
        account_holder_name="Budi Santoso",
        reference_id="WD-ABC",
    )


class TestSubmitPayout:

    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "disb-1", "status": "ACCEPTED", "reference_id": "WD-ABC"})

        result = await submit(make_client(handler))

        assert result.external_id == "disb-1"
        assert result.status == "ACCEPTED"
        assert seen["method"] == "POST"
        assert seen["url"] == "https://api.xendit.co/v2/payouts"
        assert seen["headers"]["idempotency-key"] == "WD-ABC-1"
        assert seen["headers"]["authorization"].startswith("Basic ")
        assert seen["body"] == {
            "reference_id": "WD-ABC",
            "channel_code": "ID_BCA",
            "channel_properties": {"account_holder_name": "Budi Santoso", "account_number": "1234567890"},
            "amount": 50000,
            "currency": "IDR",
            "description": "Withdrawal WD-ABC",
        }

    async def test_client_error_is_rejection(self):
        def handler(request):
            return httpx.Response(400, json={"error_code": "INVALID_DESTINATION", "message": "bad account"})

        with pytest.raises(ExternalPayoutError) as exc:
            await submit(make_client(handler))

        assert exc.value.indeterminate is False
        assert exc.value.failure_code == "INVALID_DESTINATION"

    @pytest.mark.parametrize("status_code", [500, 503, 429])
    async def test_server_error_is_indeterminate(self, status_code):
        def handler(request):
            return httpx.Response(status_code, json={"error_code": "SERVER_ERROR"})

        with pytest.raises(ExternalPayoutError) as exc:
            await submit(make_client(handler))

        assert exc.value.indeterminate is True

    async def test_timeout_is_indeterminate(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ExternalPayoutError) as exc:
            await submit(make_client(handler))

        assert exc.value.indeterminate is True

    async def test_network_error_is_indeterminate(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExternalPayoutError) as exc:
            await submit(make_client(handler))

        assert exc.value.indeterminate is True

    @pytest.mark.parametrize("response", [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json={"status": "ACCEPTED"}),
        httpx.Response(200, json=["disb-1"]),
    ])
    async def test_unreadable_success_is_indeterminate(self, response):
        def handler(request):
            return response

        with pytest.raises(ExternalPayoutError) as exc:
            await submit(make_client(handler))

        assert exc.value.indeterminate is True


class TestGetPayout:

    async def test_found(self):
        def handler(request):
            assert request.url.path == "/v2/payouts/disb-1"
            return httpx.Response(200, json={"id": "disb-1", "status": "FAILED", "failure_code": "REJECTED_BY_BANK"})

        result = await make_client(handler).get_payout("disb-1")

        assert result.status == "FAILED"
        assert result.failure_code == "REJECTED_BY_BANK"

    async def test_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"error_code": "DATA_NOT_FOUND"})

        assert await make_client(handler).get_payout("disb-x") is None

    async def test_missing_id_is_indeterminate(self):
        def handler(request):
            return httpx.Response(200, json={"status": "SUCCEEDED"})

        with pytest.raises(ExternalPayoutError) as exc:
            await make_client(handler).get_payout("disb-1")

        assert exc.value.indeterminate is True

from __future__ import annotations
import logging

import httpx

from config import ENV
from services.settlement.banks import channel_code_for
from services.settlement.errors import ExternalPayoutError
from . import PayoutProcessor, PayoutResult


def _error_code(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("error_code")
    return None


def _parse_payout(response: httpx.Response) -> PayoutResult:
    # A 2xx we cannot read still means Xendit may hold the payout
    try:
        data = response.json()
        return PayoutResult(
            external_id=data["id"],
            status=data.get("status", "ACCEPTED"),
            reference_id=data.get("reference_id"),
            failure_code=data.get("failure_code"),
        )
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ExternalPayoutError(
            f"Unreadable Xendit response: {response.status_code} {response.text[:200]}",
            indeterminate=True,
        ) from e


class XenditPayoutClient(PayoutProcessor):
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.env = ENV()
        self.api_key = self.env.XENDIT_API_KEY
        self.url = self.env.XENDIT_PAYOUTS_URL
        self.currency = self.env.PAYOUT_CURRENCY
        self.timeout = httpx.Timeout(self.env.PAYOUT_TIMEOUT_SECONDS)
        self.transport = transport

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                auth=(self.api_key, ""),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ExternalPayoutError(f"Xendit request timed out: {e!r}", indeterminate=True) from e
        except httpx.TransportError as e:
            raise ExternalPayoutError(f"Xendit network error: {e!r}", indeterminate=True) from e

        # Xendit may or may not have acted on the request when it answers 5xx or 429
        if response.status_code >= 500 or response.status_code == 429:
            raise ExternalPayoutError(
                f"Xendit Payout API error: {response.status_code} {response.text}",
                indeterminate=True,
                failure_code=_error_code(response),
            )
        return response

    async def submit_payout(
        self,
        idempotency_key: str,
        amount: int,
        bank_code: str,
        account_number: str,
        account_holder_name: str,
        reference_id: str | None = None,
    ) -> PayoutResult:
        reference_id = reference_id or idempotency_key
        payload = {
            "reference_id": reference_id,
            "channel_code": channel_code_for(bank_code),
            "channel_properties": {
                "account_holder_name": account_holder_name,
                "account_number": account_number,
            },
            "amount": amount,
            "currency": self.currency,
            "description": f"Withdrawal {reference_id}",
        }
        headers = {"Idempotency-key": idempotency_key}
        response = await self._request("POST", self.url, json=payload, headers=headers)

        if response.status_code >= 400:
            code = _error_code(response)
            logging.warning(f"Xendit rejected payout {idempotency_key}: {response.status_code} {response.text}")
            raise ExternalPayoutError(
                f"Xendit Payout API error: {response.status_code} {response.text}",
                indeterminate=False,
                failure_code=code,
            )

        return _parse_payout(response)

    async def get_payout(self, external_id: str) -> PayoutResult | None:
        response = await self._request("GET", f"{self.url}/{external_id}")
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ExternalPayoutError(
                f"Xendit Payout API error: {response.status_code} {response.text}",
                indeterminate=True,
                failure_code=_error_code(response),
            )
        return _parse_payout(response)

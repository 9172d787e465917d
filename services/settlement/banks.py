from __future__ import annotations
import re
from dataclasses import dataclass

from .errors import InvalidDestination

BANK_CHANNEL_CODES = {
    "BCA": "ID_BCA",
    "BNI": "ID_BNI",
    "BRI": "ID_BRI",
    "MANDIRI": "ID_MANDIRI",
    "CIMB": "ID_CIMB",
    "PERMATA": "ID_PERMATA",
    "DANAMON": "ID_DANAMON",
    "BSI": "ID_BSI",
    "OCBC": "ID_OCBC",
    "MAYBANK": "ID_MAYBANK",
}

EWALLET_CHANNEL_CODES = {
    "OVO": "ID_OVO",
    "DANA": "ID_DANA",
    "LINKAJA": "ID_LINKAJA",
    "GOPAY": "ID_GOPAY",
}

CHANNEL_CODES = {**BANK_CHANNEL_CODES, **EWALLET_CHANNEL_CODES}

# (min digits, max digits, display name)
ACCOUNT_LENGTH_RULES: dict[str, tuple[int, int, str]] = {
    "BCA": (10, 10, "BCA"),
    "BNI": (7, 11, "BNI"),
    "BRI": (13, 17, "BRI"),
    "MANDIRI": (12, 17, "Mandiri"),
    "CIMB": (10, 14, "CIMB Niaga"),
    "PERMATA": (7, 16, "Permata"),
    "DANAMON": (10, 10, "Danamon"),
    "BSI": (10, 10, "BSI"),
    "OVO": (10, 12, "OVO"),
    "DANA": (10, 12, "DANA"),
    "GOPAY": (10, 12, "GoPay"),
}

_DIGITS = re.compile(r"^\d+$")


@dataclass(frozen=True)
class Destination:
    bank_code: str
    account_number: str
    account_holder_name: str

    @property
    def channel_code(self) -> str:
        return CHANNEL_CODES[self.bank_code]

    @property
    def last4(self) -> str:
        return self.account_number[-4:]


def channel_code_for(bank_code: str) -> str:
    try:
        return CHANNEL_CODES[bank_code]
    except KeyError:
        raise InvalidDestination(f"Invalid bank code: {bank_code}") from None


def account_number_error(bank_code: str, account_number: str) -> str | None:
    """Return a human readable problem with the account number, or None if it looks valid."""
    if not _DIGITS.match(account_number):
        return "Account number must contain only digits"

    rules = ACCOUNT_LENGTH_RULES.get(bank_code)
    if rules is None:
        return None
    min_len, max_len, name = rules
    if len(account_number) < min_len:
        return f"{name} account number must be at least {min_len} digits"
    if len(account_number) > max_len:
        return f"{name} account number must be at most {max_len} digits"
    return None


def validate_destination(bank_code: str | None, account_number: str | None, account_holder_name: str | None) -> Destination:
    bank_code = (bank_code or "").strip().upper()
    account_number = (account_number or "").strip()
    account_holder_name = (account_holder_name or "").strip()

    if not bank_code or not account_number or not account_holder_name:
        raise InvalidDestination("Bank details required")

    channel_code_for(bank_code)

    problem = account_number_error(bank_code, account_number)
    if problem:
        raise InvalidDestination(problem)

    return Destination(bank_code=bank_code, account_number=account_number, account_holder_name=account_holder_name)

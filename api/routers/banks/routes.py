from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.security import get_caller
from services.settlement.banks import ACCOUNT_LENGTH_RULES, CHANNEL_CODES, account_number_error

router = APIRouter()


class AccountCheck(BaseModel):
    bank_code: str
    account_number: str


@router.get("/validate-account", summary="Supported bank codes and account length rules")
def get_account_rules():
    return {
        "bank_codes": sorted(CHANNEL_CODES),
        "rules": {code: {"min": lo, "max": hi, "name": name} for code, (lo, hi, name) in ACCOUNT_LENGTH_RULES.items()},
    }


@router.post("/validate-account", summary="Check an account number's format")
def validate_account(dto: AccountCheck, caller=Depends(get_caller)):
    bank_code = dto.bank_code.strip().upper()
    if bank_code not in CHANNEL_CODES:
        return {"valid": False, "error": f"Invalid bank code: {dto.bank_code}"}
    problem = account_number_error(bank_code, dto.account_number.strip())
    if problem:
        return {"valid": False, "error": problem}
    return {"valid": True, "message": "Account format is valid"}

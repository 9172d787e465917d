from fastapi import Depends, Header, HTTPException, status
from config import ENV
from services.settlement.roles import Caller

env = ENV()
API_KEY = env.service_api_token


async def require_service_key(x_api_key: str | None = Header(None)):
    if not API_KEY:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="API key not configured")
    if not x_api_key or x_api_key != API_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid service key")
    return True


async def get_caller(
    x_organization_id: str | None = Header(None),
    x_user_id: str | None = Header(None),
    x_org_role: str | None = Header(None),
) -> Caller:
    """Identity resolved upstream by the membership provider."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if not x_organization_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No organization selected")
    return Caller.from_org_role(x_organization_id, x_user_id, x_org_role)


async def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return caller

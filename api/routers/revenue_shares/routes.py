from fastapi import APIRouter, Depends

from api.deps import get_revenue_share_service, http_error
from api.security import require_admin
from services.settlement import Caller, RevenueShareService, SettlementError
from .schemas import RevenueShareRead, RevenueShareUpdate

router = APIRouter()


@router.get("", response_model=list[RevenueShareRead], summary="Revenue share of every configured member")
async def list_revenue_shares(
    admin: Caller = Depends(require_admin),
    service: RevenueShareService = Depends(get_revenue_share_service),
):
    """Members without a row earn the default share (80%)."""
    return await service.list_shares(admin.organization_id)


@router.put("", response_model=RevenueShareRead, summary="Set a member's revenue share")
async def set_revenue_share(
    dto: RevenueShareUpdate,
    admin: Caller = Depends(require_admin),
    service: RevenueShareService = Depends(get_revenue_share_service),
):
    try:
        return await service.set_share(admin.organization_id, dto.member_id, dto.percent_to_member, admin.user_id)
    except SettlementError as e:
        raise http_error(e)

from fastapi import Depends, FastAPI
import uvicorn
from api.routers.system import routes as SystemRoutes
from api.routers.withdrawals import routes as WithdrawalRoutes
from api.routers.revenue_shares import routes as RevenueShareRoutes
from api.routers.banks import routes as BankRoutes
from api.routers.payouts import routes as PayoutRoutes
from api.security import require_service_key


class FastAPIManager:
    def __init__(self):
        # version format: version.subversion:month.year.day:stage (beta, stable)
        self.api = FastAPI(
            version="1.0:10.26.19:beta",
            title="Booth Settlement API",
            description=(
                "Revenue settlement and withdrawals for photobooth organizations. "
                "Computes each member's and the organization's withdrawable balance from paid booth transactions, "
                "runs withdrawal requests through admin approval and disburses approved ones to bank accounts "
                "and e-wallets through the payout processor. "
                "Protected routes require the service API key and the caller's organization headers."
            ),
        )
        self.add_routers()

    def add_routers(self):
        self.api.include_router(
            SystemRoutes.router
        )
        self.api.include_router(
            WithdrawalRoutes.router,
            prefix="/withdrawals",
            dependencies=[Depends(require_service_key)],
            tags=["Withdrawals"]
        )
        self.api.include_router(
            WithdrawalRoutes.admin_router,
            prefix="/admin/withdrawals",
            dependencies=[Depends(require_service_key)],
            tags=["Withdrawal review and payouts"]
        )
        self.api.include_router(
            RevenueShareRoutes.router,
            prefix="/revenue-shares",
            dependencies=[Depends(require_service_key)],
            tags=["Revenue sharing"]
        )
        self.api.include_router(
            BankRoutes.router,
            prefix="/banks",
            dependencies=[Depends(require_service_key)],
            tags=["Banks"]
        )
        self.api.include_router(
            PayoutRoutes.router,
            prefix="/webhooks",
            tags=["Processor callbacks"]
        )

    def start_server(self):
        uvicorn.run(self.api, host="0.0.0.0", port=8000)

    def get_app(self) -> FastAPI:
        return self.api

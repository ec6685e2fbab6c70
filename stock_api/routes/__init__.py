from stock_api.routes.approvals import router as approvals_router
from stock_api.routes.periods import router as periods_router
from stock_api.routes.reconciliations import router as reconciliations_router

__all__ = ["approvals_router", "periods_router", "reconciliations_router"]

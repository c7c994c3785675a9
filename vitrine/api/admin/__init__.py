from fastapi import APIRouter

from vitrine.api.admin.routes.orders import router as orders_router
from vitrine.api.admin.routes.commissions import router as commissions_router
from vitrine.api.admin.routes.reconciliation import router as reconciliation_router

router = APIRouter()

router.include_router(orders_router)
router.include_router(commissions_router)
router.include_router(reconciliation_router)

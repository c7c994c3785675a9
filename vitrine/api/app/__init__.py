from fastapi import APIRouter

from vitrine.api.app.routes.orders import router as orders_router

router = APIRouter(prefix="/app")

router.include_router(orders_router)

from fastapi import APIRouter

from app.pharmops.core.config import settings
from app.pharmops.routers.expired_sales import router as expired_sales_router
from app.pharmops.routers.health import router as health_router
from app.pharmops.routers.metrics import router as metrics_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(expired_sales_router, tags=["expired-sales"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])

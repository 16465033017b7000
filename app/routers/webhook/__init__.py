from fastapi import APIRouter

from .revenuecat import revenuecat_router

webhook_router = APIRouter()

webhook_router.include_router(
    revenuecat_router, prefix="/revenuecat", tags=["RevenueCat Webhook"]
)

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.db.session import get_async_session
from app.schemas.revenuecat_schemas import RevenueCatWebhook
from app.services.subscriptions.reconciler import (
    SubscriptionReconciler,
    verify_webhook_authorization,
)
from app.utils.responses import ResponseBuilder

revenuecat_router = APIRouter()


@revenuecat_router.post("")
async def process_revenuecat_webhook(
    request: Request,
    payload: RevenueCatWebhook,
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_async_session),
):
    """Reconcile a RevenueCat subscription event into the store"""
    verify_webhook_authorization(authorization, settings.REVENUECAT_WEBHOOK_SECRET)

    reconciler = SubscriptionReconciler(db)
    action = await reconciler.handle_event(payload.event)

    return ResponseBuilder.success(
        request=request,
        data={"eventType": payload.event.type, "action": action},
        message="Event processed successfully.",
    )

import asyncio
from typing import Dict, List

from sqlalchemy import select

from app.celery import celery
from app.db.models import Profile
from app.schemas.notification_schemas import JobRunResult
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.eligibility import (
    LapsedSubscription,
    select_lapsed_subscriptions,
)
from app.services.subscriptions.reconciler import SubscriptionReconciler
from .job_runner import execute_job


class SubscriptionExpirySweeperJob(BaseReminderJob):
    """Expires subscriptions whose end date passed without an EXPIRATION webhook."""

    name = "subscription_expiry_sweeper"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.reconciler = SubscriptionReconciler(self.db, self.now)
        self.expired = 0
        self.flags_cleared = 0

    async def select_candidates(self) -> List[LapsedSubscription]:
        return await select_lapsed_subscriptions(self.db, self.now, self.limit)

    def describe(self, candidate: LapsedSubscription) -> Dict[str, str]:
        return {"subscription_id": str(candidate.subscription_id)}

    async def process(self, candidate: LapsedSubscription) -> None:
        result = await self.db.execute(
            select(Profile).where(Profile.id == candidate.profile_id)
        )
        profile = result.scalar_one()
        if await self.reconciler.expire(profile):
            self.expired += 1

    async def finalize(self) -> None:
        self.flags_cleared = await self.reconciler.clear_orphaned_premium_flags()
        if self.flags_cleared:
            self.logger.info(
                "Cleared premium flags without a live subscription",
                profiles=self.flags_cleared,
            )

    def build_result(self) -> JobRunResult:
        return JobRunResult(
            success=True,
            job=self.name,
            processed=self.expired,
            errors=self.errors,
            request_id=self.request_id,
        )


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def subscription_expiry_sweeper_task(self, request_id: str):
    """
    Hourly safety net for missed or delayed EXPIRATION webhooks.

    Args:
        request_id: Request ID for tracking purposes
    """

    return asyncio.run(_async_subscription_expiry_sweeper(request_id))


async def _async_subscription_expiry_sweeper(request_id: str):
    return await execute_job(SubscriptionExpirySweeperJob, request_id)

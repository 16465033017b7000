import asyncio
from typing import Dict, List

from app.celery import celery
from app.db.models import NotificationKind
from app.schemas.notification_schemas import JobRunResult, TrialExpiringPayload
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.eligibility import TrialCandidate, select_expiring_trials
from app.services.notifications.renderer import render_push
from app.services.notifications.rules import TRIAL_EXPIRATION_RULE
from .job_runner import execute_job

TRIAL_EXPIRATION_KINDS: Dict[str, NotificationKind] = {
    "today": NotificationKind.TRIAL_EXPIRING_TODAY,
    "1_day": NotificationKind.TRIAL_EXPIRING_1_DAY,
    "3_days": NotificationKind.TRIAL_EXPIRING_3_DAYS,
}

DAYS_REMAINING: Dict[str, int] = {"today": 0, "1_day": 1, "3_days": 3}


class TrialExpirationReminderJob(BaseReminderJob):
    """Push reminders 3 days, 1 day and hours before a free trial ends."""

    name = "trial_expiration_reminders"

    async def select_candidates(self) -> List[TrialCandidate]:
        return await select_expiring_trials(self.db, self.now)

    def describe(self, candidate: TrialCandidate) -> Dict[str, str]:
        return {
            "subscription_id": str(candidate.subscription_id),
            "tier": candidate.tier,
        }

    async def process(self, candidate: TrialCandidate) -> None:
        recipient = candidate.recipient
        kind = TRIAL_EXPIRATION_KINDS[candidate.tier]

        if not await self.gate.is_eligible(recipient.profile_id, kind):
            return

        content = render_push(kind, recipient.locale)
        payload = TrialExpiringPayload(
            days_remaining=DAYS_REMAINING[candidate.tier],
            subscription_id=candidate.subscription_id,
            tier=candidate.subscription_tier,
            expires_at=candidate.expires_at,
        )

        if not recipient.allows_push("push_trial_reminders"):
            reason = "push_disabled" if not recipient.push_enabled else "preference_disabled"
            await self.queue.record_skip(recipient, kind, content, payload, reason)
            return

        await self.queue.enqueue(recipient, kind, content, payload)
        self.queued += 1
        self.count_tier(candidate.tier)

    def build_result(self) -> JobRunResult:
        result = super().build_result()
        result.results = self.tier_results(TRIAL_EXPIRATION_RULE.keys)
        return result


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def trial_expiration_reminders_task(self, request_id: str):
    """
    Daily task queueing trial expiration reminders.

    Tiers, measured until subscriptions.expires_at:
    - today: less than 12 hours left
    - 1_day: 12 to 36 hours left
    - 3_days: 60 to 84 hours left

    Args:
        request_id: Request ID for tracking purposes
    """

    return asyncio.run(_async_trial_expiration_reminders(request_id))


async def _async_trial_expiration_reminders(request_id: str):
    return await execute_job(TrialExpirationReminderJob, request_id)

import asyncio
from typing import Dict, List

from app.celery import celery
from app.db.models import NotificationKind
from app.schemas.notification_schemas import JobRunResult, TrialEngagementPayload
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.eligibility import (
    TrialCandidate,
    select_trials_for_engagement,
)
from app.services.notifications.renderer import render_push
from app.services.notifications.rules import TRIAL_ENGAGEMENT_RULE
from app.services.notifications.stats import collect_engagement_stats
from .job_runner import execute_job

TRIAL_ENGAGEMENT_KINDS: Dict[str, NotificationKind] = {
    "day_1": NotificationKind.TRIAL_DAY1_WELCOME,
    "day_3": NotificationKind.TRIAL_DAY3_LIKES,
    "day_5": NotificationKind.TRIAL_DAY5_VALUE,
    "day_6": NotificationKind.TRIAL_DAY6_DISCOUNT,
}


class TrialEngagementJob(BaseReminderJob):
    """Trial day 1/3/5/6 pushes built from the recipient's activity so far."""

    name = "trial_engagement_notifications"

    async def select_candidates(self) -> List[TrialCandidate]:
        return await select_trials_for_engagement(self.db, self.now)

    def describe(self, candidate: TrialCandidate) -> Dict[str, str]:
        return {
            "subscription_id": str(candidate.subscription_id),
            "tier": candidate.tier,
        }

    async def process(self, candidate: TrialCandidate) -> None:
        recipient = candidate.recipient
        kind = TRIAL_ENGAGEMENT_KINDS[candidate.tier]

        if not await self.gate.is_eligible(recipient.profile_id, kind):
            return

        stats = await collect_engagement_stats(
            self.db, recipient.profile_id, candidate.started_at
        )
        content = render_push(kind, recipient.locale, stats=stats)
        payload = TrialEngagementPayload(
            day_number=int(candidate.tier.split("_")[1]),
            subscription_id=candidate.subscription_id,
            stats=stats,
        )

        if not recipient.allows_push("push_trial_engagement"):
            reason = "push_disabled" if not recipient.push_enabled else "preference_disabled"
            await self.queue.record_skip(recipient, kind, content, payload, reason)
            return

        await self.queue.enqueue(recipient, kind, content, payload)
        self.queued += 1
        self.count_tier(candidate.tier)

    def build_result(self) -> JobRunResult:
        result = super().build_result()
        result.results = self.tier_results(TRIAL_ENGAGEMENT_RULE.keys)
        return result


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def trial_engagement_notifications_task(self, request_id: str):
    """
    Daily task queueing trial engagement pushes.

    Trial day N covers [N-1, N) days since subscriptions.started_at:
    - day 1: welcome
    - day 3: likes received so far
    - day 5: value recap (likes, super likes, matches)
    - day 6: discount offer before the trial ends

    Args:
        request_id: Request ID for tracking purposes
    """

    return asyncio.run(_async_trial_engagement_notifications(request_id))


async def _async_trial_engagement_notifications(request_id: str):
    return await execute_job(TrialEngagementJob, request_id)

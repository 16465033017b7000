import asyncio
from typing import Dict, List

from app.celery import celery
from app.db.models import EmailCategory, EmailStatus
from app.schemas.notification_schemas import JobRunResult
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.eligibility import (
    ProfileCandidate,
    select_inactive_profiles,
)
from app.services.notifications.email_sender import EmailRequest
from app.services.notifications.renderer import build_inactive_email, render_email
from app.services.notifications.rules import INACTIVITY_RULE
from app.services.notifications.stats import collect_absence_stats
from .job_runner import execute_job


class InactiveUserEmailJob(BaseReminderJob):
    """Win-back emails after 3, 7 and 14 days away, with what was missed."""

    name = "inactive_user_emails"

    async def select_candidates(self) -> List[ProfileCandidate]:
        return await select_inactive_profiles(self.db, self.now)

    def describe(self, candidate: ProfileCandidate) -> Dict[str, str]:
        return {
            "profile_id": str(candidate.recipient.profile_id),
            "tier": candidate.tier,
        }

    async def process(self, candidate: ProfileCandidate) -> None:
        recipient = candidate.recipient
        category = EmailCategory.INACTIVE_REMINDER

        if not await self.gate.is_email_eligible(recipient.user_id, category):
            return

        stats = await collect_absence_stats(
            self.db, recipient.profile_id, candidate.reference_at
        )
        email = render_email(
            build_inactive_email(
                recipient.display_name, candidate.tier, stats, recipient.locale
            )
        )

        result = await self.email_sender.send(
            EmailRequest(
                user_id=recipient.user_id,
                to=recipient.email,
                category=category,
                email=email,
            )
        )
        if result.sent:
            self.emails_sent += 1
            self.count_tier(candidate.tier)
        elif result.status is EmailStatus.FAILED:
            self.errors += 1

    def build_result(self) -> JobRunResult:
        return JobRunResult(
            success=True,
            job=self.name,
            emails_sent=self.emails_sent,
            errors=self.errors,
            results=self.tier_results(INACTIVITY_RULE.keys),
            request_id=self.request_id,
        )


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def inactive_user_emails_task(self, request_id: str):
    """
    Daily task emailing completed profiles that stopped opening the app.

    Tiers, measured since profiles.last_active_at:
    - 3_days: [3, 5) days
    - 7_days: [7, 10) days
    - 14_days: [14, 21) days

    Args:
        request_id: Request ID for tracking purposes
    """

    return asyncio.run(_async_inactive_user_emails(request_id))


async def _async_inactive_user_emails(request_id: str):
    return await execute_job(InactiveUserEmailJob, request_id)

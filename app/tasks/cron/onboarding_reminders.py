import asyncio
from typing import Dict, List

from app.celery import celery
from app.db.models import EmailCategory, EmailStatus
from app.schemas.notification_schemas import JobRunResult
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.eligibility import (
    ProfileCandidate,
    select_incomplete_onboarding,
)
from app.services.notifications.email_sender import EmailRequest
from app.services.notifications.renderer import build_onboarding_email, render_email
from app.services.notifications.rules import ONBOARDING_RULE
from .job_runner import execute_job


class OnboardingReminderJob(BaseReminderJob):
    name = "onboarding_reminders"

    async def select_candidates(self) -> List[ProfileCandidate]:
        return await select_incomplete_onboarding(self.db, self.now)

    def describe(self, candidate: ProfileCandidate) -> Dict[str, str]:
        return {
            "profile_id": str(candidate.recipient.profile_id),
            "tier": candidate.tier,
        }

    async def process(self, candidate: ProfileCandidate) -> None:
        recipient = candidate.recipient
        category = EmailCategory.ONBOARDING_REMINDER

        if not await self.gate.is_email_eligible(recipient.user_id, category):
            return

        email = render_email(
            build_onboarding_email(
                recipient.display_name,
                candidate.tier,
                candidate.onboarding_step,
                recipient.locale,
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
            results=self.tier_results(ONBOARDING_RULE.keys),
            request_id=self.request_id,
        )


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def onboarding_reminders_task(self, request_id: str):
    """
    Emails users who signed up but never finished their profile.

    Tiers, measured since profiles.created_at: 24-30 hours, 72-84 hours
    and 168-192 hours. Runs every 6 hours so each window is hit once.

    Args:
        request_id: Request ID for tracking purposes
    """

    return asyncio.run(_async_onboarding_reminders(request_id))


async def _async_onboarding_reminders(request_id: str):
    return await execute_job(OnboardingReminderJob, request_id)

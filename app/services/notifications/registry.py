from typing import Dict, List, Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from app.tasks.cron.expiring_match_checker import ExpiringMatchCheckerJob
from app.tasks.cron.inactive_user_emails import InactiveUserEmailJob
from app.tasks.cron.onboarding_reminders import OnboardingReminderJob
from app.tasks.cron.subscription_expiry_sweeper import SubscriptionExpirySweeperJob
from app.tasks.cron.swipe_refresh_notifier import SwipeRefreshNotifierJob
from app.tasks.cron.trial_engagement_notifications import TrialEngagementJob
from app.tasks.cron.trial_expiration_reminders import TrialExpirationReminderJob
from app.tasks.cron.unread_message_emails import UnreadMessageEmailJob
from app.utils.logging import get_logger
from .base import BaseReminderJob

logger = get_logger()


class JobRegistry:
    """Registry of reminder jobs that can be triggered by name"""

    # Map job names to job classes
    _jobs: Dict[str, Type[BaseReminderJob]] = {
        # Push reminders
        TrialExpirationReminderJob.name: TrialExpirationReminderJob,
        TrialEngagementJob.name: TrialEngagementJob,
        ExpiringMatchCheckerJob.name: ExpiringMatchCheckerJob,
        SwipeRefreshNotifierJob.name: SwipeRefreshNotifierJob,
        # Emails
        InactiveUserEmailJob.name: InactiveUserEmailJob,
        OnboardingReminderJob.name: OnboardingReminderJob,
        UnreadMessageEmailJob.name: UnreadMessageEmailJob,
        # Subscription maintenance
        SubscriptionExpirySweeperJob.name: SubscriptionExpirySweeperJob,
    }

    @classmethod
    def create_job(
        cls, job_name: str, db_session: AsyncSession, **kwargs
    ) -> Optional[BaseReminderJob]:
        """Create job instance for job name"""
        job_class = cls._jobs.get(job_name)
        if job_class:
            return job_class(db_session, **kwargs)

        logger.warning(f"No job registered for name: {job_name}")
        return None

    @classmethod
    def list_registered_jobs(cls) -> List[str]:
        """List all registered job names"""
        return list(cls._jobs.keys())

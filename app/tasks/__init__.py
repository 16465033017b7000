from .cron import *

__all__ = [
    # Scheduled/Cron Tasks
    "trial_expiration_reminders_task",
    "trial_engagement_notifications_task",
    "inactive_user_emails_task",
    "onboarding_reminders_task",
    "unread_message_emails_task",
    "expiring_match_checker_task",
    "swipe_refresh_notifier_task",
    "subscription_expiry_sweeper_task",
]

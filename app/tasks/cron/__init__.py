from .expiring_match_checker import expiring_match_checker_task
from .inactive_user_emails import inactive_user_emails_task
from .onboarding_reminders import onboarding_reminders_task
from .subscription_expiry_sweeper import subscription_expiry_sweeper_task
from .swipe_refresh_notifier import swipe_refresh_notifier_task
from .trial_engagement_notifications import trial_engagement_notifications_task
from .trial_expiration_reminders import trial_expiration_reminders_task
from .unread_message_emails import unread_message_emails_task

__all__ = [
    "trial_expiration_reminders_task",
    "trial_engagement_notifications_task",
    "inactive_user_emails_task",
    "onboarding_reminders_task",
    "unread_message_emails_task",
    "expiring_match_checker_task",
    "swipe_refresh_notifier_task",
    "subscription_expiry_sweeper_task",
]

from celery.schedules import crontab
from .settings import settings

# Basic Celery Configuration
broker_url = f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"
result_backend = f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"

# Task Discovery
include = ["app.tasks"]

# Timezone Configuration
timezone = settings.SERVER_TIMEZONE
enable_utc = True

# Task Result Configuration
result_expires = 3600

# Task Serialization
task_serializer = "json"
accept_content = ["json"]
result_serializer = "json"

# Task Execution Configuration
task_track_started = True
task_time_limit = 10 * 60  # 10 minutes
task_soft_time_limit = 8 * 60  # 8 minutes

# Worker Configuration
worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 1000

# Task Retry Configuration
task_acks_late = True
task_reject_on_worker_lost = True
task_default_retry_delay = 60  # 60 seconds
task_max_retries = 3

# Jobs are one-shot; eligibility windows absorb a late or skipped beat
beat_schedule = {
    "trial-expiration-reminders": {
        "task": "app.tasks.cron.trial_expiration_reminders.trial_expiration_reminders_task",
        "schedule": crontab(hour=10, minute=0),
        "args": ("trial_expiration_reminders_cron",),
    },
    "trial-engagement-notifications": {
        "task": "app.tasks.cron.trial_engagement_notifications.trial_engagement_notifications_task",
        "schedule": crontab(hour=11, minute=0),
        "args": ("trial_engagement_notifications_cron",),
    },
    "inactive-user-emails": {
        "task": "app.tasks.cron.inactive_user_emails.inactive_user_emails_task",
        "schedule": crontab(hour=15, minute=0),
        "args": ("inactive_user_emails_cron",),
    },
    "onboarding-reminders": {
        "task": "app.tasks.cron.onboarding_reminders.onboarding_reminders_task",
        "schedule": crontab(minute=0, hour="*/6"),
        "args": ("onboarding_reminders_cron",),
    },
    "unread-message-emails": {
        "task": "app.tasks.cron.unread_message_emails.unread_message_emails_task",
        "schedule": crontab(minute=30, hour="*/2"),
        "args": ("unread_message_emails_cron",),
    },
    # Hourly; each match milestone is flagged once sent
    "expiring-match-checker": {
        "task": "app.tasks.cron.expiring_match_checker.expiring_match_checker_task",
        "schedule": crontab(minute=0),
        "args": ("expiring_match_checker_cron",),
    },
    "swipe-refresh-notifier": {
        "task": "app.tasks.cron.swipe_refresh_notifier.swipe_refresh_notifier_task",
        "schedule": crontab(minute="*/15"),
        "args": ("swipe_refresh_notifier_cron",),
    },
    "subscription-expiry-sweeper": {
        "task": "app.tasks.cron.subscription_expiry_sweeper.subscription_expiry_sweeper_task",
        "schedule": crontab(minute=5),
        "args": ("subscription_expiry_sweeper_cron",),
    },
}

# Default Queue
task_default_queue = "accord-notifications"

# Beat Scheduler Configuration
beat_schedule_filename = "tmp/celerybeat-schedule"

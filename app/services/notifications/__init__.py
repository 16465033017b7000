from .base import BaseReminderJob
from .dedup import DeduplicationGate
from .dispatch import NotificationQueueWriter
from .email_sender import EmailSender

__all__ = [
    "BaseReminderJob",
    "DeduplicationGate",
    "NotificationQueueWriter",
    "EmailSender",
]

import asyncio
from typing import Dict, List

from app.celery import celery
from app.db.models import EmailCategory, EmailStatus
from app.schemas.notification_schemas import JobRunResult
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.eligibility import (
    UnreadDigest,
    select_unread_message_digests,
)
from app.services.notifications.email_sender import EmailRequest
from app.services.notifications.renderer import (
    build_unread_messages_email,
    render_email,
)
from .job_runner import execute_job


class UnreadMessageEmailJob(BaseReminderJob):
    """One digest email per receiver of messages left unread for 2 to 48 hours."""

    name = "unread_message_emails"

    async def select_candidates(self) -> List[UnreadDigest]:
        return await select_unread_message_digests(self.db, self.now)

    def describe(self, candidate: UnreadDigest) -> Dict[str, str]:
        return {"profile_id": str(candidate.recipient.profile_id)}

    async def process(self, candidate: UnreadDigest) -> None:
        recipient = candidate.recipient
        category = EmailCategory.UNREAD_MESSAGES

        if not await self.gate.is_email_eligible(recipient.user_id, category):
            return

        email = render_email(
            build_unread_messages_email(
                recipient.display_name,
                candidate.unread_count,
                candidate.sender_names,
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
        elif result.status is EmailStatus.FAILED:
            self.errors += 1

    def build_result(self) -> JobRunResult:
        return JobRunResult(
            success=True,
            job=self.name,
            emails_sent=self.emails_sent,
            errors=self.errors,
            request_id=self.request_id,
        )


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def unread_message_emails_task(self, request_id: str):
    return asyncio.run(_async_unread_message_emails(request_id))


async def _async_unread_message_emails(request_id: str):
    return await execute_job(UnreadMessageEmailJob, request_id)

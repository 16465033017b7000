import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import EmailCategory, EmailLog, EmailPreference, EmailStatus
from app.providers.email_provider import OutgoingEmail, ResendEmailProvider
from app.utils.errors import EmailDeliveryError
from app.utils.logging import get_logger
from .renderer import RenderedEmail

logger = get_logger()

CATEGORY_PREFERENCE_FIELDS: Dict[EmailCategory, str] = {
    EmailCategory.NEW_MATCH: "match_notifications",
    EmailCategory.UNREAD_MESSAGES: "message_notifications",
    EmailCategory.INACTIVE_REMINDER: "inactive_reminders",
    EmailCategory.WEEKLY_DIGEST: "weekly_digest",
    EmailCategory.ONBOARDING_REMINDER: "onboarding_reminders",
}

COOLDOWN_HOURS: Dict[EmailCategory, int] = {
    EmailCategory.NEW_MATCH: 0,
    EmailCategory.UNREAD_MESSAGES: 24,
    EmailCategory.INACTIVE_REMINDER: 72,
    EmailCategory.WEEKLY_DIGEST: 168,
    EmailCategory.ONBOARDING_REMINDER: 48,
}

SKIP_OPTED_OUT = "user_opted_out"
SKIP_COOLDOWN = "cooldown_active"


@dataclass(frozen=True)
class EmailRequest:
    user_id: uuid.UUID
    to: str
    category: EmailCategory
    email: RenderedEmail


@dataclass(frozen=True)
class EmailSendResult:
    status: EmailStatus
    reason: Optional[str] = None
    provider_message_id: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status is EmailStatus.SENT


class EmailSender:
    """
    Opt-out and cooldown aware email delivery.

    Every attempt leaves exactly one `email_logs` row: `sent`, `failed` or
    `skipped` with the reason.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        now: datetime,
        provider: Optional[ResendEmailProvider] = None,
    ):
        self.db = db_session
        self.now = now
        self.provider = provider or ResendEmailProvider()

    async def is_opted_out(self, user_id: uuid.UUID, category: EmailCategory) -> bool:
        result = await self.db.execute(
            select(EmailPreference).where(EmailPreference.user_id == user_id)
        )
        preference = result.scalar_one_or_none()
        if preference is None:
            return False
        return getattr(preference, CATEGORY_PREFERENCE_FIELDS[category]) is False

    async def in_cooldown(self, user_id: uuid.UUID, category: EmailCategory) -> bool:
        hours = COOLDOWN_HOURS[category]
        if hours <= 0:
            return False

        try:
            result = await self.db.execute(
                select(EmailLog.id)
                .where(
                    EmailLog.user_id == user_id,
                    EmailLog.email_type == category,
                    EmailLog.status == EmailStatus.SENT,
                    EmailLog.sent_at >= self.now - timedelta(hours=hours),
                )
                .limit(1)
            )
        except SQLAlchemyError as e:
            # a failed cooldown lookup allows the send
            logger.warning(
                "Email cooldown check failed",
                user_id=str(user_id),
                category=category.value,
                error=str(e),
            )
            await self.db.rollback()
            return False
        return result.first() is not None

    def _log(
        self,
        request: EmailRequest,
        status: EmailStatus,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> EmailLog:
        row = EmailLog(
            user_id=request.user_id,
            email_type=request.category,
            recipient_email=request.to,
            subject=request.email.subject,
            status=status,
            provider_message_id=provider_message_id,
            error_message=error_message,
            created_at=self.now,
            sent_at=self.now if status is EmailStatus.SENT else None,
        )
        self.db.add(row)
        return row

    async def send(self, request: EmailRequest) -> EmailSendResult:
        if await self.is_opted_out(request.user_id, request.category):
            self._log(request, EmailStatus.SKIPPED, error_message=SKIP_OPTED_OUT)
            await self.db.flush()
            return EmailSendResult(EmailStatus.SKIPPED, reason=SKIP_OPTED_OUT)

        if await self.in_cooldown(request.user_id, request.category):
            self._log(request, EmailStatus.SKIPPED, error_message=SKIP_COOLDOWN)
            await self.db.flush()
            return EmailSendResult(EmailStatus.SKIPPED, reason=SKIP_COOLDOWN)

        try:
            message_id = await self.provider.send(
                OutgoingEmail(
                    to=request.to,
                    subject=request.email.subject,
                    html=request.email.html,
                    text=request.email.text,
                )
            )
        except EmailDeliveryError as e:
            logger.error(
                "Email delivery failed",
                user_id=str(request.user_id),
                category=request.category.value,
                error=e.message,
            )
            self._log(request, EmailStatus.FAILED, error_message=e.message)
            await self.db.flush()
            return EmailSendResult(EmailStatus.FAILED, reason=e.message)

        self._log(request, EmailStatus.SENT, provider_message_id=message_id)
        await self.db.flush()

        logger.info(
            "Email sent",
            user_id=str(request.user_id),
            category=request.category.value,
            provider_message_id=message_id,
        )
        return EmailSendResult(EmailStatus.SENT, provider_message_id=message_id)

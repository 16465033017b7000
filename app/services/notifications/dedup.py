import uuid
from datetime import datetime
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.db.models import (
    DeliveryStatus,
    EmailCategory,
    EmailLog,
    EmailStatus,
    NotificationKind,
    NotificationQueue,
)
from app.utils.datetime_utils import start_of_day
from app.utils.logging import get_logger

logger = get_logger()

# Match expiration tiers are deduplicated by per-match flags, not by the ledger
MATCH_MILESTONE_FLAGS: Dict[str, str] = {
    "5_days": "notified_5_days",
    "3_days": "notified_3_days",
    "1_day": "notified_1_day",
}


class DeduplicationGate:
    """
    Decides whether a recipient may be notified again.

    Calendar kinds are checked against the ledgers (`notification_queue` for
    push, `email_logs` for email) since local midnight in SERVER_TIMEZONE.
    Milestone kinds are checked against flags stored on the entity itself.
    Ledger checks fail closed: a query error means "not eligible".
    """

    def __init__(
        self,
        db_session: AsyncSession,
        now: datetime,
        timezone_name: Optional[str] = None,
    ):
        self.db = db_session
        self.now = now
        self.zone = ZoneInfo(timezone_name or settings.SERVER_TIMEZONE)

    @property
    def window_start(self) -> datetime:
        return start_of_day(self.now, self.zone)

    async def is_eligible(self, recipient_id: uuid.UUID, kind: NotificationKind) -> bool:
        # failed deliveries do not count, so the next run may try again
        query = (
            select(NotificationQueue.id)
            .where(
                NotificationQueue.recipient_profile_id == recipient_id,
                NotificationQueue.notification_type == kind,
                NotificationQueue.created_at >= self.window_start,
                NotificationQueue.status != DeliveryStatus.FAILED,
            )
            .limit(1)
        )
        return await self._no_rows(query, recipient_id=str(recipient_id), kind=kind.value)

    async def is_email_eligible(
        self, user_id: uuid.UUID, category: EmailCategory
    ) -> bool:
        query = (
            select(EmailLog.id)
            .where(
                EmailLog.user_id == user_id,
                EmailLog.email_type == category,
                EmailLog.created_at >= self.window_start,
                EmailLog.status != EmailStatus.FAILED,
            )
            .limit(1)
        )
        return await self._no_rows(query, user_id=str(user_id), kind=category.value)

    async def _no_rows(self, query, **context) -> bool:
        try:
            result = await self.db.execute(query)
            return result.first() is None
        except Exception as e:
            logger.warning(
                "Deduplication check failed, skipping recipient",
                error=str(e),
                **context,
            )
            await self.db.rollback()
            return False

    @staticmethod
    def milestone_pending(notified_flags: Dict[str, bool], tier: str) -> bool:
        """True when the match has not been notified for `tier` yet."""
        return not notified_flags.get(MATCH_MILESTONE_FLAGS[tier], False)

    @staticmethod
    def swipe_refresh_pending(
        last_swipe_limit_hit_at: Optional[datetime],
        swipe_refresh_notified_at: Optional[datetime],
    ) -> bool:
        """One refresh notice per swipe-limit hit."""
        if last_swipe_limit_hit_at is None:
            return False
        return (
            swipe_refresh_notified_at is None
            or swipe_refresh_notified_at < last_swipe_limit_hit_at
        )

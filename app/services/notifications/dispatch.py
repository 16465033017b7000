import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import DeliveryStatus, DeviceToken, NotificationKind, NotificationQueue
from app.schemas.notification_schemas import (
    PAYLOAD_TYPE_BY_KIND,
    NotificationPayload,
    RenderedContent,
)
from app.utils.logging import get_logger
from .eligibility import Recipient

logger = get_logger()


class NotificationQueueWriter:
    """Writes push notifications onto the `notification_queue` ledger."""

    def __init__(self, db_session: AsyncSession, now: datetime):
        self.db = db_session
        self.now = now

    async def resolve_tokens(self, recipient: Recipient) -> List[str]:
        """Primary token first, then device tokens, without duplicates."""
        result = await self.db.execute(
            select(DeviceToken.push_token)
            .where(DeviceToken.profile_id == recipient.profile_id)
            .order_by(DeviceToken.created_at)
        )
        tokens: List[str] = []
        for token in [recipient.push_token, *result.scalars().all()]:
            if token and token not in tokens:
                tokens.append(token)
        return tokens

    def _row(
        self,
        recipient_id: uuid.UUID,
        kind: NotificationKind,
        content: RenderedContent,
        payload: NotificationPayload,
        push_token: Optional[str],
        status: DeliveryStatus,
        reason: Optional[str] = None,
    ) -> NotificationQueue:
        expected = PAYLOAD_TYPE_BY_KIND.get(kind)
        if expected is None or payload.type != expected:
            raise ValueError(
                f"Payload type {payload.type!r} does not belong to {kind.value}"
            )
        return NotificationQueue(
            recipient_profile_id=recipient_id,
            notification_type=kind,
            push_token=push_token,
            title=content.title,
            body=content.body,
            data=payload.model_dump(mode="json"),
            status=status,
            reason=reason,
            attempts=0 if status is DeliveryStatus.PENDING else 1,
            created_at=self.now,
            processed_at=None if status is DeliveryStatus.PENDING else self.now,
        )

    async def enqueue(
        self,
        recipient: Recipient,
        kind: NotificationKind,
        content: RenderedContent,
        payload: NotificationPayload,
    ) -> int:
        """
        Insert one pending row per push token of `recipient`.

        A recipient without tokens still gets a single row with a NULL token
        so the occurrence is recorded for deduplication.

        Returns:
            int: number of rows written
        """
        tokens = await self.resolve_tokens(recipient)
        rows = [
            self._row(
                recipient.profile_id, kind, content, payload, token, DeliveryStatus.PENDING
            )
            for token in (tokens or [None])
        ]
        self.db.add_all(rows)
        await self.db.flush()

        logger.debug(
            "Queued push notification",
            recipient_id=str(recipient.profile_id),
            kind=kind.value,
            rows=len(rows),
        )
        return len(rows)

    async def record_skip(
        self,
        recipient: Recipient,
        kind: NotificationKind,
        content: RenderedContent,
        payload: NotificationPayload,
        reason: str,
    ) -> NotificationQueue:
        row = self._row(
            recipient.profile_id,
            kind,
            content,
            payload,
            None,
            DeliveryStatus.SKIPPED,
            reason,
        )
        self.db.add(row)
        await self.db.flush()

        logger.debug(
            "Recorded skipped notification",
            recipient_id=str(recipient.profile_id),
            kind=kind.value,
            reason=reason,
        )
        return row

    async def record_delivery(
        self,
        recipient: Recipient,
        kind: NotificationKind,
        content: RenderedContent,
        payload: NotificationPayload,
        push_token: str,
        delivered: bool,
        reason: Optional[str] = None,
    ) -> NotificationQueue:
        """Ledger row for a push that was already handed to the provider."""
        row = self._row(
            recipient.profile_id,
            kind,
            content,
            payload,
            push_token,
            DeliveryStatus.SENT if delivered else DeliveryStatus.FAILED,
            reason,
        )
        self.db.add(row)
        await self.db.flush()
        return row

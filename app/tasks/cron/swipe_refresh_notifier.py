import asyncio
import uuid
from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy import update

from app.celery import celery
from app.config.settings import settings
from app.db.models import NotificationKind, NotificationPreference
from app.providers.push_provider import PushMessage
from app.schemas.notification_schemas import RenderedContent, SwipesRefreshedPayload
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.eligibility import (
    Recipient,
    SwipeRefreshCandidate,
    select_swipe_refresh_candidates,
)
from app.services.notifications.renderer import render_push
from app.utils.errors import PushDeliveryError
from .job_runner import execute_job


@dataclass(frozen=True)
class OutgoingPush:
    recipient: Recipient
    push_token: str
    content: RenderedContent
    payload: SwipesRefreshedPayload

    def to_message(self) -> PushMessage:
        return PushMessage(
            to=self.push_token,
            title=self.content.title,
            body=self.content.body,
            data={
                "type": self.payload.type,
                "profileId": str(self.payload.profile_id),
                "screen": self.payload.screen,
            },
            channel_id=settings.PUSH_CHANNEL_ID,
        )


class SwipeRefreshNotifierJob(BaseReminderJob):
    """
    Tells users who hit their daily swipe limit that swipes are available again.

    Unlike the queued reminders these pushes go straight to the provider in
    one batch; every ticket is written to the ledger as sent or failed.
    """

    name = "swipe_refresh_notifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._outbox: List[OutgoingPush] = []
        self._notified_profiles: List[uuid.UUID] = []

    async def select_candidates(self) -> List[SwipeRefreshCandidate]:
        return await select_swipe_refresh_candidates(self.db, self.now, self.limit)

    def describe(self, candidate: SwipeRefreshCandidate) -> Dict[str, str]:
        return {"profile_id": str(candidate.recipient.profile_id)}

    async def process(self, candidate: SwipeRefreshCandidate) -> None:
        if not self.gate.swipe_refresh_pending(
            candidate.last_swipe_limit_hit_at, candidate.swipe_refresh_notified_at
        ):
            return

        recipient = candidate.recipient
        tokens = await self.queue.resolve_tokens(recipient)
        if not tokens:
            return

        content = render_push(NotificationKind.SWIPES_REFRESHED, recipient.locale)
        payload = SwipesRefreshedPayload(profile_id=recipient.profile_id)
        self._outbox.extend(
            OutgoingPush(recipient, token, content, payload) for token in tokens
        )
        self._notified_profiles.append(recipient.profile_id)

    async def finalize(self) -> None:
        if not self._outbox:
            return

        kind = NotificationKind.SWIPES_REFRESHED
        try:
            tickets = await self.push_provider.send_batch(
                [item.to_message() for item in self._outbox]
            )
        except PushDeliveryError as e:
            # swipe_refresh_notified_at stays untouched so the next run retries
            self.errors += 1
            self.logger.error("Swipe refresh batch failed", error=e.message)
            for item in self._outbox:
                await self.queue.record_delivery(
                    item.recipient,
                    kind,
                    item.content,
                    item.payload,
                    item.push_token,
                    delivered=False,
                    reason=e.message,
                )
            return

        # the batch is out; stamp before recording so a ledger failure cannot resend it
        await self.db.execute(
            update(NotificationPreference)
            .where(NotificationPreference.profile_id.in_(self._notified_profiles))
            .values(swipe_refresh_notified_at=self.now)
        )
        await self.db.commit()

        for item, ticket in zip(self._outbox, tickets):
            try:
                await self.queue.record_delivery(
                    item.recipient,
                    kind,
                    item.content,
                    item.payload,
                    item.push_token,
                    delivered=ticket.ok,
                    reason=None if ticket.ok else ticket.message,
                )
                await self.db.commit()

            except Exception as e:
                self.errors += 1
                await self.db.rollback()
                self.logger.error(
                    "Error recording swipe refresh delivery",
                    error=str(e),
                    exc_info=True,
                    profile_id=str(item.recipient.profile_id),
                )
                continue

            if ticket.ok:
                self.queued += 1
            else:
                self.logger.warning(
                    "Swipe refresh push rejected",
                    profile_id=str(item.recipient.profile_id),
                    message=ticket.message,
                )


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def swipe_refresh_notifier_task(self, request_id: str):
    """
    Runs every 15 minutes; one notice per swipe-limit hit in the last 24 hours.

    Args:
        request_id: Request ID for tracking purposes
    """

    return asyncio.run(_async_swipe_refresh_notifier(request_id))


async def _async_swipe_refresh_notifier(request_id: str):
    return await execute_job(SwipeRefreshNotifierJob, request_id)

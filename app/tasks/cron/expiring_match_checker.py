import asyncio
from typing import Dict, List

from sqlalchemy import update

from app.celery import celery
from app.db.models import Match, NotificationKind
from app.schemas.notification_schemas import JobRunResult, MatchExpiringPayload
from app.services.notifications.base import BaseReminderJob
from app.services.notifications.dedup import MATCH_MILESTONE_FLAGS
from app.services.notifications.eligibility import (
    MatchCandidate,
    Recipient,
    select_expiring_matches,
)
from app.services.notifications.renderer import render_push
from app.services.notifications.rules import MATCH_EXPIRATION_RULE
from .job_runner import execute_job

DAYS_REMAINING: Dict[str, int] = {"5_days": 5, "3_days": 3, "1_day": 1}


class ExpiringMatchCheckerJob(BaseReminderJob):
    """
    Warns both people in a silent match before it expires.

    Each tier is sent at most once per match: the matching `notified_*`
    flag is set in the same transaction as the queue rows.
    """

    name = "expiring_match_checker"

    async def select_candidates(self) -> List[MatchCandidate]:
        return await select_expiring_matches(self.db, self.now, self.limit)

    def describe(self, candidate: MatchCandidate) -> Dict[str, str]:
        return {"match_id": str(candidate.match_id), "tier": candidate.tier}

    async def process(self, candidate: MatchCandidate) -> None:
        if not self.gate.milestone_pending(candidate.notified_flags, candidate.tier):
            return

        days_remaining = DAYS_REMAINING[candidate.tier]
        payload = MatchExpiringPayload(
            match_id=candidate.match_id, days_remaining=days_remaining
        )

        for recipient, other in (
            (candidate.profile1, candidate.profile2),
            (candidate.profile2, candidate.profile1),
        ):
            await self._notify(recipient, other, days_remaining, payload)

        self.count_tier(candidate.tier)

        await self.db.execute(
            update(Match)
            .where(Match.id == candidate.match_id)
            .values({MATCH_MILESTONE_FLAGS[candidate.tier]: True})
        )

    async def _notify(
        self,
        recipient: Recipient,
        other: Recipient,
        days_remaining: int,
        payload: MatchExpiringPayload,
    ) -> None:
        if recipient.is_banned:
            self.logger.debug(
                "Skipping banned match participant",
                profile_id=str(recipient.profile_id),
                match_id=str(payload.match_id),
            )
            return

        kind = NotificationKind.MATCH_EXPIRING
        content = render_push(
            kind,
            recipient.locale,
            days_remaining=days_remaining,
            other_name=other.display_name,
        )

        if not recipient.allows_push("push_match_expiring"):
            reason = "push_disabled" if not recipient.push_enabled else "preference_disabled"
            await self.queue.record_skip(recipient, kind, content, payload, reason)
            return

        await self.queue.enqueue(recipient, kind, content, payload)
        self.queued += 1

    def build_result(self) -> JobRunResult:
        result = super().build_result()
        result.results = self.tier_results(MATCH_EXPIRATION_RULE.keys)
        return result


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def expiring_match_checker_task(self, request_id: str):
    """
    Hourly task warning matches with no first message before they expire.

    Tiers, measured until matches.expires_at:
    - 5_days: 4.5 to 5.5 days left
    - 3_days: 2.5 to 3.5 days left
    - 1_day: less than 1.5 days left

    Args:
        request_id: Request ID for tracking purposes
    """

    return asyncio.run(_async_expiring_match_checker(request_id))


async def _async_expiring_match_checker(request_id: str):
    return await execute_job(ExpiringMatchCheckerJob, request_id)

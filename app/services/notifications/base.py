import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.providers.push_provider import ExpoPushProvider
from app.schemas.notification_schemas import JobRunResult, TierResult
from app.utils.datetime_utils import naive_utc_now, to_naive_utc
from app.utils.logging import get_logger
from .dedup import DeduplicationGate
from .dispatch import NotificationQueueWriter
from .email_sender import EmailSender


class BaseReminderJob(ABC):
    """
    One-shot reminder job: select, gate, render, dispatch.

    A run is stateless. Candidates are processed one at a time and each
    candidate's writes are committed before the next one starts; a failing
    candidate is rolled back, counted in `errors` and skipped.
    """

    name: str = ""

    def __init__(
        self,
        db_session: AsyncSession,
        now: Optional[datetime] = None,
        request_id: Optional[str] = None,
        push_provider: Optional[ExpoPushProvider] = None,
        email_sender: Optional[EmailSender] = None,
        limit: Optional[int] = None,
    ):
        self.db = db_session
        self.now = to_naive_utc(now) if now else naive_utc_now()
        self.request_id = request_id or str(uuid.uuid4())
        self.limit = limit or settings.JOB_BATCH_LIMIT
        self.logger = get_logger().bind(request_id=self.request_id, job=self.name)

        self.gate = DeduplicationGate(db_session, self.now)
        self.queue = NotificationQueueWriter(db_session, self.now)
        self._push_provider = push_provider
        self.email_sender = email_sender or EmailSender(db_session, self.now)

        self.processed = 0
        self.queued = 0
        self.emails_sent = 0
        self.errors = 0
        self.tier_counts: Dict[str, int] = {}

    @property
    def push_provider(self) -> ExpoPushProvider:
        if self._push_provider is None:
            self._push_provider = ExpoPushProvider()
        return self._push_provider

    @property
    def dispatched(self) -> int:
        """Recipients queued or emailed so far; skipped candidates do not count."""
        return self.queued + self.emails_sent

    @abstractmethod
    async def select_candidates(self) -> Sequence[Any]:
        """Eligible entities for this run; store errors abort the run."""

    @abstractmethod
    async def process(self, candidate: Any) -> None:
        """Gate, render and dispatch a single candidate."""

    async def finalize(self) -> None:
        """Work that runs once after every candidate was processed."""

    def describe(self, candidate: Any) -> Dict[str, str]:
        return {}

    def count_tier(self, tier: str, amount: int = 1) -> None:
        self.tier_counts[tier] = self.tier_counts.get(tier, 0) + amount

    def tier_results(self, tiers: Sequence[str]) -> List[TierResult]:
        return [TierResult(tier=tier, queued=self.tier_counts.get(tier, 0)) for tier in tiers]

    def build_result(self) -> JobRunResult:
        return JobRunResult(
            success=True,
            job=self.name,
            total_queued=self.queued,
            errors=self.errors,
            request_id=self.request_id,
        )

    async def run(self) -> JobRunResult:
        try:
            candidates = await self.select_candidates()

            self.logger.info(
                "Job started",
                now=self.now.isoformat(),
                candidates=len(candidates),
            )

            for candidate in candidates:
                if self.dispatched >= self.limit:
                    # the rest are reached by later runs once these are deduplicated
                    self.logger.info(
                        "Batch limit reached",
                        limit=self.limit,
                        remaining=len(candidates) - self.processed,
                    )
                    break

                try:
                    self.processed += 1
                    await self.process(candidate)
                    await self.db.commit()

                except Exception as e:
                    self.errors += 1
                    await self.db.rollback()
                    self.logger.error(
                        "Error processing candidate",
                        error=str(e),
                        exc_info=True,
                        **self.describe(candidate),
                    )
                    continue

            await self.finalize()
            await self.db.commit()

            result = self.build_result()
            self.logger.info(
                "Job completed",
                processed=self.processed,
                total_queued=self.queued,
                emails_sent=self.emails_sent,
                errors=self.errors,
            )
            return result

        except Exception as e:
            await self.db.rollback()
            self.logger.error(
                "Job run exception",
                error=str(e),
                exc_info=True,
            )
            return JobRunResult(
                success=False, job=self.name, error=str(e), request_id=self.request_id
            )

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import DeliveryStatus, NotificationPreference, NotificationQueue
from app.tasks.cron.swipe_refresh_notifier import SwipeRefreshNotifierJob
from app.utils.errors import PushDeliveryError
from conftest import NOW, FakePushProvider

LIMIT_HIT_AT = NOW - timedelta(hours=5)


async def _queue_rows(db_session: AsyncSession):
    result = await db_session.execute(select(NotificationQueue))
    return list(result.scalars().all())


async def _notified_at(db_session: AsyncSession, profile):
    result = await db_session.execute(
        select(NotificationPreference.swipe_refresh_notified_at).where(
            NotificationPreference.profile_id == profile.id
        )
    )
    return result.scalar_one()


@pytest.fixture
def limited_profile(make_profile, make_notification_preference):
    async def _make(**preference_overrides):
        profile = await make_profile()
        overrides = dict(last_swipe_limit_hit_at=LIMIT_HIT_AT)
        overrides.update(preference_overrides)
        await make_notification_preference(profile, **overrides)
        return profile

    return _make


class TestSwipeRefreshNotifier:
    @pytest.mark.asyncio
    async def test_sends_batch_and_marks_profile(
        self, db_session: AsyncSession, limited_profile, push_provider, email_sender
    ):
        profile = await limited_profile()

        result = await SwipeRefreshNotifierJob(
            db_session, now=NOW, push_provider=push_provider, email_sender=email_sender
        ).run()

        assert result.success
        assert result.total_queued == 1
        assert len(push_provider.batches) == 1
        message = push_provider.batches[0][0]
        assert message.to == profile.push_token
        assert message.data == {
            "type": "swipes_refreshed",
            "profileId": str(profile.id),
            "screen": "discover",
        }

        rows = await _queue_rows(db_session)
        assert [row.status for row in rows] == [DeliveryStatus.SENT]
        assert await _notified_at(db_session, profile) == NOW

    @pytest.mark.asyncio
    async def test_notifies_once_per_limit_hit(
        self, db_session: AsyncSession, limited_profile, push_provider, email_sender
    ):
        await limited_profile()

        await SwipeRefreshNotifierJob(
            db_session, now=NOW, push_provider=push_provider, email_sender=email_sender
        ).run()
        rerun = await SwipeRefreshNotifierJob(
            db_session,
            now=NOW + timedelta(minutes=15),
            push_provider=push_provider,
            email_sender=email_sender,
        ).run()

        assert rerun.total_queued == 0
        assert len(push_provider.batches) == 1

    @pytest.mark.asyncio
    async def test_new_limit_hit_is_notified_again(
        self, db_session: AsyncSession, limited_profile, push_provider, email_sender
    ):
        await limited_profile(swipe_refresh_notified_at=LIMIT_HIT_AT - timedelta(days=1))

        result = await SwipeRefreshNotifierJob(
            db_session, now=NOW, push_provider=push_provider, email_sender=email_sender
        ).run()

        assert result.total_queued == 1

    @pytest.mark.asyncio
    async def test_rejected_ticket_is_recorded_as_failed(
        self, db_session: AsyncSession, limited_profile, email_sender
    ):
        profile = await limited_profile()
        provider = FakePushProvider(rejected_tokens=[profile.push_token])

        result = await SwipeRefreshNotifierJob(
            db_session, now=NOW, push_provider=provider, email_sender=email_sender
        ).run()

        assert result.total_queued == 0
        rows = await _queue_rows(db_session)
        assert rows[0].status is DeliveryStatus.FAILED
        assert rows[0].reason == "DeviceNotRegistered"
        assert await _notified_at(db_session, profile) == NOW

    @pytest.mark.asyncio
    async def test_batch_failure_leaves_profile_for_retry(
        self, db_session: AsyncSession, limited_profile, email_sender
    ):
        profile = await limited_profile()
        provider = FakePushProvider(error=PushDeliveryError("Expo returned 503", 503))

        result = await SwipeRefreshNotifierJob(
            db_session, now=NOW, push_provider=provider, email_sender=email_sender
        ).run()

        assert result.success
        assert result.errors == 1
        assert result.total_queued == 0
        rows = await _queue_rows(db_session)
        assert [row.status for row in rows] == [DeliveryStatus.FAILED]
        assert await _notified_at(db_session, profile) is None

    @pytest.mark.asyncio
    async def test_ledger_failure_after_send_does_not_resend(
        self, db_session: AsyncSession, limited_profile, push_provider, email_sender
    ):
        profile = await limited_profile()
        job = SwipeRefreshNotifierJob(
            db_session, now=NOW, push_provider=push_provider, email_sender=email_sender
        )

        with patch.object(
            job.queue, "record_delivery", AsyncMock(side_effect=RuntimeError("disk full"))
        ):
            result = await job.run()

        assert result.success
        assert result.errors == 1
        assert await _queue_rows(db_session) == []
        assert await _notified_at(db_session, profile) == NOW

        rerun = await SwipeRefreshNotifierJob(
            db_session,
            now=NOW + timedelta(minutes=15),
            push_provider=push_provider,
            email_sender=email_sender,
        ).run()
        assert rerun.total_queued == 0
        assert len(push_provider.batches) == 1

    @pytest.mark.asyncio
    async def test_stale_or_opted_out_profiles_are_ignored(
        self, db_session: AsyncSession, limited_profile, push_provider, email_sender
    ):
        await limited_profile(last_swipe_limit_hit_at=NOW - timedelta(hours=30))
        await limited_profile(push_swipes_refreshed=False)

        result = await SwipeRefreshNotifierJob(
            db_session, now=NOW, push_provider=push_provider, email_sender=email_sender
        ).run()

        assert result.total_queued == 0
        assert push_provider.batches == []

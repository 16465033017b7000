from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import EmailCategory, EmailLog, EmailStatus
from app.services.notifications.email_sender import EmailSender
from app.tasks.cron.inactive_user_emails import InactiveUserEmailJob
from app.tasks.cron.onboarding_reminders import OnboardingReminderJob
from app.tasks.cron.unread_message_emails import UnreadMessageEmailJob
from app.utils.errors import EmailDeliveryError
from conftest import NOW, FakeEmailProvider


async def _email_logs(db_session: AsyncSession):
    result = await db_session.execute(select(EmailLog))
    return list(result.scalars().all())


def _tier(result, tier):
    return next(item.queued for item in result.results if item.tier == tier)


class TestInactiveUserEmails:
    @pytest.mark.asyncio
    async def test_week_away_email_lists_new_likes(
        self,
        db_session: AsyncSession,
        make_profile,
        make_like,
        email_sender,
        email_provider,
    ):
        last_active = NOW - timedelta(days=8)
        profile = await make_profile(last_active_at=last_active)
        for hours in (4, 30):
            liker = await make_profile()
            await make_like(liker, profile, last_active + timedelta(hours=hours))

        result = await InactiveUserEmailJob(
            db_session, now=NOW, email_sender=email_sender
        ).run()

        assert result.success
        assert result.emails_sent == 1
        assert _tier(result, "7_days") == 1
        assert _tier(result, "3_days") == 0

        sent = email_provider.sent[0]
        assert sent.to == profile.email
        assert "2 new likes" in sent.text

        logs = await _email_logs(db_session)
        assert len(logs) == 1
        assert logs[0].email_type is EmailCategory.INACTIVE_REMINDER
        assert logs[0].status is EmailStatus.SENT

        rerun = await InactiveUserEmailJob(
            db_session, now=NOW + timedelta(hours=6), email_sender=email_sender
        ).run()
        assert rerun.emails_sent == 0
        assert len(email_provider.sent) == 1

    @pytest.mark.asyncio
    async def test_cooling_down_users_do_not_use_up_the_batch(
        self, db_session: AsyncSession, make_profile, email_sender, email_provider
    ):
        long_gone = await make_profile(last_active_at=NOW - timedelta(days=15))
        recent = await make_profile(last_active_at=NOW - timedelta(days=3, hours=1))

        first = await InactiveUserEmailJob(
            db_session, now=NOW, email_sender=email_sender, limit=1
        ).run()
        assert first.emails_sent == 1
        assert [email.to for email in email_provider.sent] == [long_gone.email]

        tomorrow = NOW + timedelta(days=1)
        second = await InactiveUserEmailJob(
            db_session,
            now=tomorrow,
            email_sender=EmailSender(db_session, tomorrow, provider=email_provider),
            limit=1,
        ).run()

        assert second.emails_sent == 1
        assert _tier(second, "3_days") == 1
        assert email_provider.sent[-1].to == recent.email

        logs = await _email_logs(db_session)
        statuses = {(log.recipient_email, log.status) for log in logs}
        assert (recent.email, EmailStatus.SENT) in statuses
        assert (long_gone.email, EmailStatus.SKIPPED) in statuses

    @pytest.mark.asyncio
    async def test_gap_between_tiers_sends_nothing(
        self, db_session: AsyncSession, make_profile, email_sender, email_provider
    ):
        await make_profile(last_active_at=NOW - timedelta(days=6))
        await make_profile(last_active_at=NOW - timedelta(days=4), email=None)
        await make_profile(last_active_at=NOW - timedelta(days=4), profile_complete=False)

        result = await InactiveUserEmailJob(
            db_session, now=NOW, email_sender=email_sender
        ).run()

        assert result.emails_sent == 0
        assert email_provider.sent == []

    @pytest.mark.asyncio
    async def test_opted_out_user_gets_skip_log(
        self,
        db_session: AsyncSession,
        make_profile,
        make_email_preference,
        email_sender,
        email_provider,
    ):
        profile = await make_profile(last_active_at=NOW - timedelta(days=15))
        await make_email_preference(profile, inactive_reminders=False)

        result = await InactiveUserEmailJob(
            db_session, now=NOW, email_sender=email_sender
        ).run()

        assert result.emails_sent == 0
        assert result.errors == 0
        logs = await _email_logs(db_session)
        assert logs[0].status is EmailStatus.SKIPPED
        assert logs[0].error_message == "user_opted_out"

    @pytest.mark.asyncio
    async def test_provider_failure_counts_as_error(
        self, db_session: AsyncSession, make_profile
    ):
        await make_profile(last_active_at=NOW - timedelta(days=4))
        failing = EmailSender(
            db_session,
            NOW,
            provider=FakeEmailProvider(error=EmailDeliveryError("Resend returned 500", 500)),
        )

        result = await InactiveUserEmailJob(
            db_session, now=NOW, email_sender=failing
        ).run()

        assert result.success
        assert result.emails_sent == 0
        assert result.errors == 1
        logs = await _email_logs(db_session)
        assert logs[0].status is EmailStatus.FAILED


class TestOnboardingReminders:
    @pytest.mark.asyncio
    async def test_reminds_incomplete_profile(
        self, db_session: AsyncSession, make_profile, email_sender, email_provider
    ):
        profile = await make_profile(
            profile_complete=False,
            onboarding_step=4,
            created_at=NOW - timedelta(hours=26),
        )

        result = await OnboardingReminderJob(
            db_session, now=NOW, email_sender=email_sender
        ).run()

        assert result.emails_sent == 1
        assert _tier(result, "24_hours") == 1
        assert email_provider.sent[0].to == profile.email
        assert "40% complete" in email_provider.sent[0].text

    @pytest.mark.asyncio
    async def test_complete_or_inactive_profiles_are_skipped(
        self, db_session: AsyncSession, make_profile, email_sender, email_provider
    ):
        await make_profile(created_at=NOW - timedelta(hours=26))
        await make_profile(
            profile_complete=False,
            is_active=False,
            created_at=NOW - timedelta(hours=26),
        )
        await make_profile(profile_complete=False, created_at=NOW - timedelta(hours=50))

        result = await OnboardingReminderJob(
            db_session, now=NOW, email_sender=email_sender
        ).run()

        assert result.emails_sent == 0
        assert email_provider.sent == []


class TestUnreadMessageEmails:
    @pytest.mark.asyncio
    async def test_one_digest_per_receiver(
        self,
        db_session: AsyncSession,
        make_profile,
        make_match,
        make_message,
        email_sender,
        email_provider,
    ):
        layla = await make_profile(display_name="Layla")
        omar = await make_profile(display_name="Omar")
        yusuf = await make_profile(display_name="Yusuf")
        first = await make_match(omar, layla)
        second = await make_match(yusuf, layla)
        await make_message(first, omar, layla, NOW - timedelta(hours=5))
        await make_message(first, omar, layla, NOW - timedelta(hours=4))
        await make_message(second, yusuf, layla, NOW - timedelta(hours=3))
        # too recent, already read, and too old
        await make_message(second, yusuf, layla, NOW - timedelta(minutes=30))
        await make_message(
            second, yusuf, layla, NOW - timedelta(hours=6), read_at=NOW - timedelta(hours=1)
        )
        await make_message(first, omar, layla, NOW - timedelta(hours=60))

        result = await UnreadMessageEmailJob(
            db_session, now=NOW, email_sender=email_sender
        ).run()

        assert result.emails_sent == 1
        sent = email_provider.sent[0]
        assert sent.to == layla.email
        assert sent.subject == "💬 You have 3 unread messages on Accord"
        assert "Omar" in sent.text
        assert "Yusuf" in sent.text

    @pytest.mark.asyncio
    async def test_digest_respects_cooldown(
        self,
        db_session: AsyncSession,
        make_profile,
        make_match,
        make_message,
        email_provider,
    ):
        layla = await make_profile()
        omar = await make_profile(display_name="Omar")
        match = await make_match(omar, layla)
        await make_message(match, omar, layla, NOW - timedelta(hours=21))

        # yesterday evening, so only the cooldown stands in the way today
        yesterday = NOW - timedelta(hours=18)
        first_sender = EmailSender(db_session, yesterday, provider=email_provider)
        await UnreadMessageEmailJob(
            db_session, now=yesterday, email_sender=first_sender
        ).run()

        later_sender = EmailSender(db_session, NOW, provider=email_provider)
        result = await UnreadMessageEmailJob(
            db_session, now=NOW, email_sender=later_sender
        ).run()

        assert result.emails_sent == 0
        assert len(email_provider.sent) == 1
        statuses = sorted(log.status.value for log in await _email_logs(db_session))
        assert statuses == ["sent", "skipped"]

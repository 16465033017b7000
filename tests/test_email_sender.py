from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import EmailCategory, EmailLog, EmailStatus
from app.services.notifications.email_sender import (
    SKIP_COOLDOWN,
    SKIP_OPTED_OUT,
    EmailRequest,
    EmailSender,
)
from app.services.notifications.renderer import RenderedEmail
from app.utils.errors import EmailDeliveryError
from conftest import NOW, FakeEmailProvider


def _request(profile, category=EmailCategory.INACTIVE_REMINDER) -> EmailRequest:
    return EmailRequest(
        user_id=profile.user_id,
        to=profile.email,
        category=category,
        email=RenderedEmail(subject="We Miss You!", html="<p>hi</p>", text="hi"),
    )


async def _logs(db_session: AsyncSession):
    result = await db_session.execute(select(EmailLog).order_by(EmailLog.created_at))
    return list(result.scalars().all())


class TestEmailSender:
    @pytest.mark.asyncio
    async def test_sends_and_logs(
        self, db_session: AsyncSession, make_profile, email_sender, email_provider
    ):
        profile = await make_profile()

        result = await email_sender.send(_request(profile))
        await db_session.commit()

        assert result.sent
        assert result.provider_message_id == "email-1"
        assert email_provider.sent[0].to == profile.email

        logs = await _logs(db_session)
        assert len(logs) == 1
        assert logs[0].status == EmailStatus.SENT
        assert logs[0].sent_at == NOW
        assert logs[0].provider_message_id == "email-1"

    @pytest.mark.asyncio
    async def test_opted_out_user_is_skipped(
        self,
        db_session: AsyncSession,
        make_profile,
        make_email_preference,
        email_sender,
        email_provider,
    ):
        profile = await make_profile()
        await make_email_preference(profile, inactive_reminders=False)

        result = await email_sender.send(_request(profile))

        assert result.status == EmailStatus.SKIPPED
        assert result.reason == SKIP_OPTED_OUT
        assert email_provider.sent == []
        logs = await _logs(db_session)
        assert logs[0].error_message == SKIP_OPTED_OUT

    @pytest.mark.asyncio
    async def test_null_preference_means_allowed(
        self, make_profile, make_email_preference, email_sender
    ):
        profile = await make_profile()
        await make_email_preference(profile, inactive_reminders=None, weekly_digest=False)

        result = await email_sender.send(_request(profile))

        assert result.sent

    @pytest.mark.asyncio
    async def test_cooldown_blocks_second_send(
        self, db_session: AsyncSession, make_profile, email_provider
    ):
        profile = await make_profile()
        db_session.add(
            EmailLog(
                user_id=profile.user_id,
                email_type=EmailCategory.INACTIVE_REMINDER,
                recipient_email=profile.email,
                subject="We Miss You!",
                status=EmailStatus.SENT,
                created_at=NOW - timedelta(hours=48),
                sent_at=NOW - timedelta(hours=48),
            )
        )
        await db_session.commit()

        sender = EmailSender(db_session, NOW, provider=email_provider)
        result = await sender.send(_request(profile))

        assert result.status == EmailStatus.SKIPPED
        assert result.reason == SKIP_COOLDOWN
        assert email_provider.sent == []

    @pytest.mark.asyncio
    async def test_cooldown_expires(
        self, db_session: AsyncSession, make_profile, email_provider
    ):
        profile = await make_profile()
        db_session.add(
            EmailLog(
                user_id=profile.user_id,
                email_type=EmailCategory.INACTIVE_REMINDER,
                recipient_email=profile.email,
                subject="We Miss You!",
                status=EmailStatus.SENT,
                created_at=NOW - timedelta(hours=73),
                sent_at=NOW - timedelta(hours=73),
            )
        )
        await db_session.commit()

        sender = EmailSender(db_session, NOW, provider=email_provider)
        result = await sender.send(_request(profile))

        assert result.sent

    @pytest.mark.asyncio
    async def test_failed_send_does_not_start_cooldown(
        self, db_session: AsyncSession, make_profile
    ):
        profile = await make_profile()
        failing = EmailSender(
            db_session,
            NOW,
            provider=FakeEmailProvider(error=EmailDeliveryError("422 - invalid to", 422)),
        )

        result = await failing.send(_request(profile))
        assert result.status == EmailStatus.FAILED
        assert result.reason == "422 - invalid to"

        retry = EmailSender(db_session, NOW + timedelta(hours=1), provider=FakeEmailProvider())
        assert (await retry.send(_request(profile))).sent

    @pytest.mark.asyncio
    async def test_new_match_has_no_cooldown(
        self, db_session: AsyncSession, make_profile, email_sender
    ):
        profile = await make_profile()
        request = _request(profile, EmailCategory.NEW_MATCH)

        assert (await email_sender.send(request)).sent
        assert (await email_sender.send(request)).sent

    @pytest.mark.asyncio
    async def test_cooldown_query_error_allows_send(
        self, db_session: AsyncSession, make_profile, email_sender
    ):
        profile = await make_profile()
        original_execute = db_session.execute
        calls = {"count": 0}

        async def flaky_execute(statement, *args, **kwargs):
            calls["count"] += 1
            # second query is the cooldown lookup
            if calls["count"] == 2:
                raise OperationalError("SELECT", {}, Exception("timeout"))
            return await original_execute(statement, *args, **kwargs)

        with patch.object(db_session, "execute", AsyncMock(side_effect=flaky_execute)):
            result = await email_sender.send(_request(profile))

        assert result.sent

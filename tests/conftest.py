import uuid
from datetime import datetime, timedelta
from typing import AsyncGenerator, List, Optional, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db.models import (
    Base,
    DeviceToken,
    EmailPreference,
    Like,
    LikeType,
    Match,
    MatchStatus,
    Message,
    MessageContentType,
    NotificationPreference,
    Profile,
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
)
from app.providers.email_provider import OutgoingEmail
from app.providers.push_provider import PushMessage, PushTicket
from app.services.notifications.email_sender import EmailSender
from app.utils.errors import EmailDeliveryError, PushDeliveryError


# Test database setup
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Every job test runs against one fixed clock
NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database per test; jobs commit their writes."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async_session_maker = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


# Fake delivery providers
class FakePushProvider:
    def __init__(
        self,
        rejected_tokens: Sequence[str] = (),
        error: Optional[PushDeliveryError] = None,
    ):
        self.rejected_tokens = set(rejected_tokens)
        self.error = error
        self.batches: List[List[PushMessage]] = []

    async def send_batch(self, messages: Sequence[PushMessage]) -> List[PushTicket]:
        self.batches.append(list(messages))
        if self.error:
            raise self.error
        return [
            PushTicket(status="error", message="DeviceNotRegistered")
            if message.to in self.rejected_tokens
            else PushTicket(status="ok", id=f"ticket-{index}")
            for index, message in enumerate(messages)
        ]


class FakeEmailProvider:
    def __init__(self, error: Optional[EmailDeliveryError] = None):
        self.error = error
        self.sent: List[OutgoingEmail] = []

    async def send(self, email: OutgoingEmail) -> str:
        if self.error:
            raise self.error
        self.sent.append(email)
        return f"email-{len(self.sent)}"


@pytest.fixture
def push_provider() -> FakePushProvider:
    return FakePushProvider()


@pytest.fixture
def email_provider() -> FakeEmailProvider:
    return FakeEmailProvider()


@pytest.fixture
def email_sender(db_session: AsyncSession, email_provider: FakeEmailProvider) -> EmailSender:
    return EmailSender(db_session, NOW, provider=email_provider)


# Test data factories
@pytest.fixture
def make_profile(db_session: AsyncSession):
    async def _make(**overrides) -> Profile:
        profile_id = overrides.pop("id", uuid.uuid4())
        defaults = dict(
            id=profile_id,
            user_id=uuid.uuid4(),
            display_name="Layla",
            email=f"{profile_id.hex[:8]}@example.com",
            preferred_language="en",
            push_token=f"ExponentPushToken[{profile_id.hex[:12]}]",
            push_enabled=True,
            is_active=True,
            profile_complete=True,
            onboarding_step=10,
            created_at=NOW - timedelta(days=60),
            last_active_at=NOW - timedelta(hours=2),
        )
        defaults.update(overrides)
        profile = Profile(**defaults)
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make


@pytest.fixture
def make_subscription(db_session: AsyncSession):
    async def _make(profile: Profile, **overrides) -> Subscription:
        defaults = dict(
            profile_id=profile.id,
            tier=SubscriptionTier.PREMIUM,
            status=SubscriptionStatus.TRIAL,
            started_at=NOW - timedelta(days=1),
            expires_at=NOW + timedelta(days=6),
            auto_renew=True,
        )
        defaults.update(overrides)
        subscription = Subscription(**defaults)
        db_session.add(subscription)
        await db_session.commit()
        return subscription

    return _make


@pytest.fixture
def make_match(db_session: AsyncSession):
    async def _make(profile1: Profile, profile2: Profile, **overrides) -> Match:
        defaults = dict(
            profile1_id=profile1.id,
            profile2_id=profile2.id,
            matched_at=NOW - timedelta(days=6),
            status=MatchStatus.ACTIVE,
            expires_at=NOW + timedelta(days=1),
        )
        defaults.update(overrides)
        match = Match(**defaults)
        db_session.add(match)
        await db_session.commit()
        return match

    return _make


@pytest.fixture
def make_like(db_session: AsyncSession):
    async def _make(
        liker: Profile,
        liked: Profile,
        created_at: datetime,
        like_type: LikeType = LikeType.REGULAR,
    ) -> Like:
        like = Like(
            liker_profile_id=liker.id,
            liked_profile_id=liked.id,
            like_type=like_type,
            created_at=created_at,
        )
        db_session.add(like)
        await db_session.commit()
        return like

    return _make


@pytest.fixture
def make_message(db_session: AsyncSession):
    async def _make(
        match: Match,
        sender: Profile,
        receiver: Profile,
        created_at: datetime,
        read_at: Optional[datetime] = None,
        content_type: MessageContentType = MessageContentType.TEXT,
    ) -> Message:
        message = Message(
            match_id=match.id,
            sender_profile_id=sender.id,
            receiver_profile_id=receiver.id,
            content_type=content_type,
            content="Salaam!",
            created_at=created_at,
            read_at=read_at,
        )
        db_session.add(message)
        await db_session.commit()
        return message

    return _make


@pytest.fixture
def make_notification_preference(db_session: AsyncSession):
    async def _make(profile: Profile, **overrides) -> NotificationPreference:
        preference = NotificationPreference(profile_id=profile.id, **overrides)
        db_session.add(preference)
        await db_session.commit()
        return preference

    return _make


@pytest.fixture
def make_email_preference(db_session: AsyncSession):
    async def _make(profile: Profile, **overrides) -> EmailPreference:
        preference = EmailPreference(user_id=profile.user_id, **overrides)
        db_session.add(preference)
        await db_session.commit()
        return preference

    return _make


@pytest.fixture
def make_device_token(db_session: AsyncSession):
    async def _make(profile: Profile, push_token: str, platform: str = "ios") -> DeviceToken:
        token = DeviceToken(profile_id=profile.id, push_token=push_token, platform=platform)
        db_session.add(token)
        await db_session.commit()
        return token

    return _make

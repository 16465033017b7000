"""
Eligibility selectors.

Each selector bounds its query in SQL by the union of the rule's windows,
re-checks every row in Python against the same rule and returns immutable
snapshots, so job code never touches ORM state after a rollback.

Selectors that can exclude already-notified entities in SQL (match
milestones, swipe refresh, lapsed subscriptions) take a row limit. The others
return every eligible entity and leave the per-run cap to the job, which only
counts recipients it actually dispatched to.
"""

import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from typing import Dict, List, Mapping, Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config.settings import settings
from app.db.models import (
    DeviceToken,
    Match,
    MatchStatus,
    Message,
    NotificationPreference,
    Profile,
    Subscription,
    SubscriptionStatus,
)
from app.utils.errors import EligibilityQueryError
from .dedup import MATCH_MILESTONE_FLAGS
from .rules import (
    INACTIVITY_RULE,
    MATCH_EXPIRATION_RULE,
    ONBOARDING_RULE,
    SWIPE_REFRESH_RULE,
    TRIAL_ENGAGEMENT_RULE,
    TRIAL_EXPIRATION_RULE,
    UNREAD_MESSAGES_RULE,
)
from .translations import t

PUSH_PREFERENCE_FIELDS = (
    "push_trial_reminders",
    "push_trial_engagement",
    "push_match_expiring",
    "push_swipes_refreshed",
)


@dataclass(frozen=True)
class Recipient:
    profile_id: uuid.UUID
    user_id: uuid.UUID
    display_name: str
    email: Optional[str]
    locale: str
    push_token: Optional[str]
    push_enabled: bool
    preferences: Mapping[str, bool] = field(default_factory=dict)
    is_banned: bool = False

    @classmethod
    def from_profile(cls, profile: Profile) -> "Recipient":
        preference = profile.notification_preference
        preferences = (
            {name: getattr(preference, name) for name in PUSH_PREFERENCE_FIELDS}
            if preference is not None
            else {}
        )
        return cls(
            profile_id=profile.id,
            user_id=profile.user_id,
            display_name=profile.display_name,
            email=profile.email,
            locale=profile.preferred_language or settings.DEFAULT_LOCALE,
            push_token=profile.push_token,
            push_enabled=profile.push_enabled,
            preferences=preferences,
            is_banned=profile.is_banned,
        )

    def allows_push(self, preference_field: str) -> bool:
        # a missing preference row means every category is enabled
        return self.push_enabled and self.preferences.get(preference_field, True)


@dataclass(frozen=True)
class TrialCandidate:
    subscription_id: uuid.UUID
    tier: str
    subscription_tier: str
    started_at: Optional[datetime]
    expires_at: Optional[datetime]
    recipient: Recipient


@dataclass(frozen=True)
class ProfileCandidate:
    tier: str
    reference_at: datetime
    onboarding_step: int
    recipient: Recipient


@dataclass(frozen=True)
class MatchCandidate:
    match_id: uuid.UUID
    tier: str
    expires_at: datetime
    notified_flags: Mapping[str, bool]
    profile1: Recipient
    profile2: Recipient


@dataclass(frozen=True)
class SwipeRefreshCandidate:
    last_swipe_limit_hit_at: datetime
    swipe_refresh_notified_at: Optional[datetime]
    recipient: Recipient


@dataclass(frozen=True)
class UnreadDigest:
    unread_count: int
    sender_names: Tuple[str, ...]
    recipient: Recipient


@dataclass(frozen=True)
class LapsedSubscription:
    subscription_id: uuid.UUID
    profile_id: uuid.UUID
    expires_at: datetime


def selector(func):
    """Wrap store errors so a failing selector aborts the run with context."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            raise EligibilityQueryError(
                f"Eligibility query {func.__name__} failed: {e}"
            ) from e

    return wrapper


def _profile_options(relationship_attr=None):
    if relationship_attr is None:
        return selectinload(Profile.notification_preference)
    return selectinload(relationship_attr).selectinload(
        Profile.notification_preference
    )


@selector
async def select_expiring_trials(
    db_session: AsyncSession, now: datetime
) -> List[TrialCandidate]:
    result = await db_session.execute(
        select(Subscription)
        .join(Subscription.profile)
        .options(_profile_options(Subscription.profile))
        .where(
            Subscription.status == SubscriptionStatus.TRIAL,
            Profile.is_banned.is_(False),
            TRIAL_EXPIRATION_RULE.covering_clause(Subscription.expires_at, now),
        )
        .order_by(Subscription.expires_at)
    )

    candidates = []
    for subscription in result.scalars().all():
        tier = TRIAL_EXPIRATION_RULE.match(subscription.expires_at, now)
        if tier is None:
            continue
        candidates.append(_trial_candidate(subscription, tier))
    return candidates


@selector
async def select_trials_for_engagement(
    db_session: AsyncSession, now: datetime
) -> List[TrialCandidate]:
    result = await db_session.execute(
        select(Subscription)
        .join(Subscription.profile)
        .options(_profile_options(Subscription.profile))
        .where(
            Subscription.status == SubscriptionStatus.TRIAL,
            Profile.is_banned.is_(False),
            TRIAL_ENGAGEMENT_RULE.covering_clause(Subscription.started_at, now),
        )
        .order_by(Subscription.started_at)
    )

    candidates = []
    for subscription in result.scalars().all():
        tier = TRIAL_ENGAGEMENT_RULE.match(subscription.started_at, now)
        if tier is None:
            continue
        candidates.append(_trial_candidate(subscription, tier))
    return candidates


def _trial_candidate(subscription: Subscription, tier: str) -> TrialCandidate:
    return TrialCandidate(
        subscription_id=subscription.id,
        tier=tier,
        subscription_tier=subscription.tier.value,
        started_at=subscription.started_at,
        expires_at=subscription.expires_at,
        recipient=Recipient.from_profile(subscription.profile),
    )


@selector
async def select_inactive_profiles(
    db_session: AsyncSession, now: datetime
) -> List[ProfileCandidate]:
    result = await db_session.execute(
        select(Profile)
        .options(_profile_options())
        .where(
            Profile.profile_complete.is_(True),
            Profile.is_banned.is_(False),
            Profile.email.is_not(None),
            INACTIVITY_RULE.covering_clause(Profile.last_active_at, now),
        )
        .order_by(Profile.last_active_at)
    )

    candidates = []
    for profile in result.scalars().all():
        tier = INACTIVITY_RULE.match(profile.last_active_at, now)
        if tier is None:
            continue
        candidates.append(
            ProfileCandidate(
                tier=tier,
                reference_at=profile.last_active_at,
                onboarding_step=profile.onboarding_step,
                recipient=Recipient.from_profile(profile),
            )
        )
    return candidates


@selector
async def select_incomplete_onboarding(
    db_session: AsyncSession, now: datetime
) -> List[ProfileCandidate]:
    result = await db_session.execute(
        select(Profile)
        .options(_profile_options())
        .where(
            Profile.profile_complete.is_(False),
            Profile.is_active.is_(True),
            Profile.is_banned.is_(False),
            Profile.email.is_not(None),
            ONBOARDING_RULE.covering_clause(Profile.created_at, now),
        )
        .order_by(Profile.created_at)
    )

    candidates = []
    for profile in result.scalars().all():
        tier = ONBOARDING_RULE.match(profile.created_at, now)
        if tier is None:
            continue
        candidates.append(
            ProfileCandidate(
                tier=tier,
                reference_at=profile.created_at,
                onboarding_step=profile.onboarding_step,
                recipient=Recipient.from_profile(profile),
            )
        )
    return candidates


def _pending_milestone_clause(now: datetime):
    # a tier only admits matches whose flag for that tier is still unset
    return or_(
        *(
            and_(
                rule.clause(Match.expires_at, now),
                getattr(Match, MATCH_MILESTONE_FLAGS[tier]).is_(False),
            )
            for tier, rule in MATCH_EXPIRATION_RULE
        )
    )


@selector
async def select_expiring_matches(
    db_session: AsyncSession, now: datetime, limit: int
) -> List[MatchCandidate]:
    result = await db_session.execute(
        select(Match)
        .options(
            _profile_options(Match.profile1),
            _profile_options(Match.profile2),
        )
        .where(
            Match.status == MatchStatus.ACTIVE,
            Match.first_message_sent_at.is_(None),
            _pending_milestone_clause(now),
        )
        .order_by(Match.expires_at)
        .limit(limit)
    )

    candidates = []
    for match in result.scalars().all():
        tier = MATCH_EXPIRATION_RULE.match(match.expires_at, now)
        if tier is None:
            continue
        candidates.append(
            MatchCandidate(
                match_id=match.id,
                tier=tier,
                expires_at=match.expires_at,
                notified_flags={
                    "notified_5_days": match.notified_5_days,
                    "notified_3_days": match.notified_3_days,
                    "notified_1_day": match.notified_1_day,
                },
                profile1=Recipient.from_profile(match.profile1),
                profile2=Recipient.from_profile(match.profile2),
            )
        )
    return candidates


@selector
async def select_swipe_refresh_candidates(
    db_session: AsyncSession, now: datetime, limit: int
) -> List[SwipeRefreshCandidate]:
    has_device_token = (
        select(DeviceToken.id)
        .where(DeviceToken.profile_id == Profile.id)
        .exists()
    )
    result = await db_session.execute(
        select(NotificationPreference)
        .join(NotificationPreference.profile)
        .options(_profile_options(NotificationPreference.profile))
        .where(
            NotificationPreference.push_swipes_refreshed.is_(True),
            SWIPE_REFRESH_RULE.clause(
                NotificationPreference.last_swipe_limit_hit_at, now
            ),
            or_(
                NotificationPreference.swipe_refresh_notified_at.is_(None),
                NotificationPreference.swipe_refresh_notified_at
                < NotificationPreference.last_swipe_limit_hit_at,
            ),
            Profile.push_enabled.is_(True),
            Profile.is_banned.is_(False),
            or_(Profile.push_token.is_not(None), has_device_token),
        )
        .order_by(NotificationPreference.last_swipe_limit_hit_at)
        .limit(limit)
    )

    return [
        SwipeRefreshCandidate(
            last_swipe_limit_hit_at=preference.last_swipe_limit_hit_at,
            swipe_refresh_notified_at=preference.swipe_refresh_notified_at,
            recipient=Recipient.from_profile(preference.profile),
        )
        for preference in result.scalars().all()
        if SWIPE_REFRESH_RULE.contains(preference.last_swipe_limit_hit_at, now)
    ]


@selector
async def select_unread_message_digests(
    db_session: AsyncSession, now: datetime
) -> List[UnreadDigest]:
    result = await db_session.execute(
        select(Message)
        .options(selectinload(Message.sender))
        .where(
            Message.read_at.is_(None),
            UNREAD_MESSAGES_RULE.clause(Message.created_at, now),
        )
        .order_by(Message.created_at)
    )

    unread_by_receiver: Dict[uuid.UUID, List[Message]] = OrderedDict()
    for message in result.scalars().all():
        if UNREAD_MESSAGES_RULE.contains(message.created_at, now):
            unread_by_receiver.setdefault(message.receiver_profile_id, []).append(
                message
            )

    if not unread_by_receiver:
        return []

    receiver_ids = list(unread_by_receiver)
    profiles_result = await db_session.execute(
        select(Profile)
        .options(_profile_options())
        .where(
            Profile.id.in_(receiver_ids),
            Profile.is_banned.is_(False),
            Profile.email.is_not(None),
        )
    )
    receivers = {profile.id: profile for profile in profiles_result.scalars().all()}

    digests = []
    for receiver_id in receiver_ids:
        profile = receivers.get(receiver_id)
        if profile is None:
            continue
        messages = unread_by_receiver[receiver_id]
        recipient = Recipient.from_profile(profile)
        sender_names: List[str] = []
        for message in messages:
            name = message.sender.display_name if message.sender else None
            name = name or t(recipient.locale, "emails.unread.someone")
            if name not in sender_names:
                sender_names.append(name)
        digests.append(
            UnreadDigest(
                unread_count=len(messages),
                sender_names=tuple(sender_names),
                recipient=recipient,
            )
        )
    return digests


@selector
async def select_lapsed_subscriptions(
    db_session: AsyncSession, now: datetime, limit: int
) -> List[LapsedSubscription]:
    result = await db_session.execute(
        select(Subscription.id, Subscription.profile_id, Subscription.expires_at)
        .join(Subscription.profile)
        .where(
            Subscription.status.in_(
                [SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL]
            ),
            Subscription.expires_at < now,
            Profile.is_admin.is_(False),
        )
        .order_by(Subscription.expires_at)
    )
    return [
        LapsedSubscription(
            subscription_id=row.id, profile_id=row.profile_id, expires_at=row.expires_at
        )
        for row in result.all()
    ]

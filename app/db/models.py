import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.utils.datetime_utils import naive_utc_now


class Base(DeclarativeBase):
    pass


def value_enum(enum_class) -> Enum:
    """Enum column storing member values (`pending`), which other services query by."""
    return Enum(
        enum_class, values_callable=lambda members: [member.value for member in members]
    )


# Enums
class SubscriptionTier(enum.Enum):
    PREMIUM = "premium"
    PLATINUM = "platinum"


class SubscriptionStatus(enum.Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"


class MatchStatus(enum.Enum):
    ACTIVE = "active"
    UNMATCHED = "unmatched"


class LikeType(enum.Enum):
    REGULAR = "regular"
    SUPER = "super"


class MessageContentType(enum.Enum):
    TEXT = "text"
    PHOTO = "photo"
    VOICE = "voice"
    VIDEO = "video"


class NotificationKind(enum.Enum):
    TRIAL_EXPIRING_3_DAYS = "trial_expiring_3_days"
    TRIAL_EXPIRING_1_DAY = "trial_expiring_1_day"
    TRIAL_EXPIRING_TODAY = "trial_expiring_today"
    TRIAL_DAY1_WELCOME = "trial_day1_welcome"
    TRIAL_DAY3_LIKES = "trial_day3_likes"
    TRIAL_DAY5_VALUE = "trial_day5_value"
    TRIAL_DAY6_DISCOUNT = "trial_day6_discount"
    MATCH_EXPIRING = "match_expiring"
    SWIPES_REFRESHED = "swipes_refreshed"
    ONBOARDING_REMINDER = "onboarding_reminder"
    INACTIVE_REMINDER = "inactive_reminder"


class DeliveryStatus(enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class EmailCategory(enum.Enum):
    NEW_MATCH = "new_match"
    UNREAD_MESSAGES = "unread_messages"
    INACTIVE_REMINDER = "inactive_reminder"
    WEEKLY_DIGEST = "weekly_digest"
    ONBOARDING_REMINDER = "onboarding_reminder"


class EmailStatus(enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, onupdate=naive_utc_now
    )


# Models
class Profile(Base, AuditMixin):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320))  # RFC 5321 max length
    preferred_language: Mapped[Optional[str]] = mapped_column(String(16))
    push_token: Mapped[Optional[str]] = mapped_column(String(255))
    push_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_platinum: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    profile_complete: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    onboarding_step: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_active_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Relationships
    device_tokens: Mapped[List["DeviceToken"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan"
    )
    notification_preference: Mapped[Optional["NotificationPreference"]] = (
        relationship(back_populates="profile", cascade="all, delete-orphan")
    )
    subscription: Mapped[Optional["Subscription"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_profiles_user_id", "user_id"),
        Index("idx_profiles_last_active_at", "last_active_at"),
        Index("idx_profiles_created_at", "created_at"),
    )


class DeviceToken(Base, AuditMixin):
    __tablename__ = "device_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    push_token: Mapped[str] = mapped_column(String(255), nullable=False)
    platform: Mapped[Optional[str]] = mapped_column(String(20))

    profile: Mapped["Profile"] = relationship(back_populates="device_tokens")

    __table_args__ = (
        UniqueConstraint("profile_id", "push_token", name="uq_device_tokens_token"),
    )


class NotificationPreference(Base, AuditMixin):
    __tablename__ = "notification_preferences"

    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    push_trial_reminders: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    push_trial_engagement: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    push_match_expiring: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    push_swipes_refreshed: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    last_swipe_limit_hit_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    swipe_refresh_notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    profile: Mapped["Profile"] = relationship(back_populates="notification_preference")

    __table_args__ = (
        Index("idx_notification_preferences_swipe_limit", "last_swipe_limit_hit_at"),
    )


class EmailPreference(Base, AuditMixin):
    __tablename__ = "email_preferences"

    # Keyed by auth user; a missing row or a null flag means "allowed"
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    match_notifications: Mapped[Optional[bool]] = mapped_column(Boolean)
    message_notifications: Mapped[Optional[bool]] = mapped_column(Boolean)
    inactive_reminders: Mapped[Optional[bool]] = mapped_column(Boolean)
    weekly_digest: Mapped[Optional[bool]] = mapped_column(Boolean)
    onboarding_reminders: Mapped[Optional[bool]] = mapped_column(Boolean)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    tier: Mapped[SubscriptionTier] = mapped_column(
        value_enum(SubscriptionTier), nullable=False
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        value_enum(SubscriptionStatus), nullable=False
    )
    product_id: Mapped[Optional[str]] = mapped_column(String(200))
    store: Mapped[Optional[str]] = mapped_column(String(50))
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, onupdate=naive_utc_now
    )

    profile: Mapped["Profile"] = relationship(back_populates="subscription")

    __table_args__ = (
        Index("idx_subscriptions_status_expires", "status", "expires_at"),
        Index("idx_subscriptions_status_started", "status", "started_at"),
    )


class Match(Base):
    __tablename__ = "matches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile1_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    profile2_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    matched_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    status: Mapped[MatchStatus] = mapped_column(
        value_enum(MatchStatus), default=MatchStatus.ACTIVE, nullable=False
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    first_message_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    notified_5_days: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notified_3_days: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notified_1_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profile1: Mapped["Profile"] = relationship(foreign_keys=[profile1_id])
    profile2: Mapped["Profile"] = relationship(foreign_keys=[profile2_id])

    __table_args__ = (
        UniqueConstraint("profile1_id", "profile2_id", name="uq_matches_pair"),
        CheckConstraint("profile1_id <> profile2_id", name="ck_matches_distinct"),
        Index("idx_matches_status_expires", "status", "expires_at"),
    )


class Like(Base):
    __tablename__ = "likes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    liker_profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    liked_profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    like_type: Mapped[LikeType] = mapped_column(
        value_enum(LikeType), default=LikeType.REGULAR, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )

    __table_args__ = (
        Index("idx_likes_liked_created", "liked_profile_id", "created_at"),
        Index("idx_likes_liker_created", "liker_profile_id", "created_at"),
    )


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    match_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"), nullable=False
    )
    sender_profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    receiver_profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    content_type: Mapped[MessageContentType] = mapped_column(
        value_enum(MessageContentType), default=MessageContentType.TEXT, nullable=False
    )
    content: Mapped[Optional[str]] = mapped_column(Text)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )

    sender: Mapped["Profile"] = relationship(foreign_keys=[sender_profile_id])

    __table_args__ = (
        Index("idx_messages_receiver_unread", "receiver_profile_id", "read_at"),
        Index("idx_messages_sender_created", "sender_profile_id", "created_at"),
    )


class NotificationQueue(Base):
    """Push notification ledger; rows are the source of truth for daily dedup."""

    __tablename__ = "notification_queue"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    notification_type: Mapped[NotificationKind] = mapped_column(
        value_enum(NotificationKind), nullable=False
    )
    push_token: Mapped[Optional[str]] = mapped_column(String(255))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[DeliveryStatus] = mapped_column(
        value_enum(DeliveryStatus), default=DeliveryStatus.PENDING, nullable=False
    )
    reason: Mapped[Optional[str]] = mapped_column(Text)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index(
            "idx_notification_queue_dedup",
            "recipient_profile_id",
            "notification_type",
            "created_at",
        ),
        Index("idx_notification_queue_status", "status"),
    )


class EmailLog(Base):
    """Email ledger; `sent` rows drive the per-category cooldown."""

    __tablename__ = "email_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    email_type: Mapped[EmailCategory] = mapped_column(
        value_enum(EmailCategory), nullable=False
    )
    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[EmailStatus] = mapped_column(value_enum(EmailStatus), nullable=False)
    provider_message_id: Mapped[Optional[str]] = mapped_column(String(255))
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("idx_email_logs_user_type_created", "user_id", "email_type", "created_at"),
        Index("idx_email_logs_user_type_sent", "user_id", "email_type", "sent_at"),
    )

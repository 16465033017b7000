import hmac
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.db import dialect_insert
from app.db.models import Profile, Subscription, SubscriptionStatus, SubscriptionTier
from app.schemas.revenuecat_schemas import RevenueCatEvent
from app.utils.datetime_utils import from_epoch_ms, naive_utc_now
from app.utils.errors import NotFoundError, WebhookAuthenticationError
from app.utils.logging import get_logger

logger = get_logger()

ACTIVATING_EVENTS = {"INITIAL_PURCHASE", "RENEWAL", "UNCANCELLATION", "PRODUCT_CHANGE"}
NON_RENEWING_EVENTS = {"NON_RENEWING_PURCHASE"}
LOG_ONLY_EVENTS = {"BILLING_ISSUE", "SUBSCRIPTION_PAUSED"}


def verify_webhook_authorization(authorization: Optional[str], secret: str) -> None:
    """
    Constant-time check of the raw Authorization header against the shared secret.

    Raises:
        WebhookAuthenticationError: header missing, secret unset or mismatch
    """
    if not secret or not authorization:
        raise WebhookAuthenticationError()
    if not hmac.compare_digest(authorization.encode(), secret.encode()):
        raise WebhookAuthenticationError()


def tier_from_entitlements(entitlement_ids) -> SubscriptionTier:
    entitlements = {entitlement.lower() for entitlement in entitlement_ids or []}
    if "platinum" in entitlements:
        return SubscriptionTier.PLATINUM
    return SubscriptionTier.PREMIUM


class SubscriptionReconciler:
    """
    Applies payment-webhook events to `subscriptions` and the profile's
    premium flags.

    The resulting row depends only on the event, so replaying an event
    leaves the store unchanged.
    """

    def __init__(self, db_session: AsyncSession, now: Optional[datetime] = None):
        self.db = db_session
        self.now = now or naive_utc_now()

    async def get_profile(self, app_user_id: str) -> Profile:
        try:
            user_id = uuid.UUID(app_user_id)
        except ValueError:
            raise NotFoundError(f"No profile for app user {app_user_id}")

        result = await self.db.execute(select(Profile).where(Profile.user_id == user_id))
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError(f"No profile for app user {app_user_id}")
        return profile

    async def handle_event(self, event: RevenueCatEvent) -> str:
        """
        Apply `event` and commit.

        Returns:
            str: the action taken (activated, cancelled, expired, ignored)
        """
        profile = await self.get_profile(event.app_user_id)
        event_logger = logger.bind(
            event_id=event.id, event_type=event.type, profile_id=str(profile.id)
        )

        if event.type in ACTIVATING_EVENTS:
            await self.activate(profile, event, auto_renew=True)
            action = "activated"
        elif event.type in NON_RENEWING_EVENTS:
            await self.activate(profile, event, auto_renew=False)
            action = "activated"
        elif event.type == "CANCELLATION":
            await self.cancel(profile)
            action = "cancelled"
        elif event.type == "EXPIRATION":
            action = "expired" if await self.expire(profile) else "ignored"
        else:
            if event.type not in LOG_ONLY_EVENTS:
                event_logger.warning("Unhandled RevenueCat event type")
            action = "ignored"

        await self.db.commit()
        event_logger.info("RevenueCat event reconciled", action=action)
        return action

    async def activate(
        self, profile: Profile, event: RevenueCatEvent, auto_renew: bool
    ) -> None:
        tier = tier_from_entitlements(event.entitlement_ids)
        status = (
            SubscriptionStatus.TRIAL
            if (event.period_type or "").upper() == "TRIAL"
            else SubscriptionStatus.ACTIVE
        )

        values = {
            "tier": tier,
            "status": status,
            "auto_renew": auto_renew,
            "expires_at": from_epoch_ms(event.expiration_at_ms),
            "updated_at": self.now,
        }
        if event.purchased_at_ms is not None:
            values["started_at"] = from_epoch_ms(event.purchased_at_ms)
        if event.product_id is not None:
            values["product_id"] = event.product_id
        if event.store is not None:
            values["store"] = event.store

        # one row per profile; concurrent deliveries of one event converge on it
        statement = dialect_insert(self.db)(Subscription).values(
            id=uuid.uuid4(), profile_id=profile.id, **values
        )
        await self.db.execute(
            statement.on_conflict_do_update(
                index_elements=[Subscription.profile_id],
                set_={key: getattr(statement.excluded, key) for key in values},
            )
        )

        profile.is_premium = True
        profile.is_platinum = tier is SubscriptionTier.PLATINUM
        await self.db.flush()

    async def cancel(self, profile: Profile) -> None:
        # the subscription stays live until it expires
        await self.db.execute(
            update(Subscription)
            .where(Subscription.profile_id == profile.id)
            .values(auto_renew=False)
        )

    async def expire(self, profile: Profile) -> bool:
        """Expire the profile's subscription; admins keep premium access."""
        if profile.is_admin:
            logger.info(
                "Skipping expiration for admin profile", profile_id=str(profile.id)
            )
            return False

        await self.db.execute(
            update(Subscription)
            .where(Subscription.profile_id == profile.id)
            .values(status=SubscriptionStatus.EXPIRED, auto_renew=False)
        )
        profile.is_premium = False
        profile.is_platinum = False
        await self.db.flush()
        return True

    async def clear_orphaned_premium_flags(self) -> int:
        """Drop premium flags from non-admin profiles without a live subscription."""
        live_subscription = exists().where(
            Subscription.profile_id == Profile.id,
            Subscription.status.in_(
                [SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL]
            ),
            Subscription.expires_at >= self.now,
        )
        result = await self.db.execute(
            update(Profile)
            .where(
                (Profile.is_premium.is_(True)) | (Profile.is_platinum.is_(True)),
                Profile.is_admin.is_(False),
                ~live_subscription,
            )
            .values(is_premium=False, is_platinum=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

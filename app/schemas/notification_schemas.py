import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from app.db.models import NotificationKind
from app.schemas.camel_base_model import CamelCaseBaseModel


class EngagementStats(BaseModel):
    """Activity counters since a lower-bound timestamp."""

    likes_received: int = 0
    super_likes_sent: int = 0
    matches_made: int = 0
    messages_sent: int = 0
    voice_messages_sent: int = 0

    @property
    def has_highlights(self) -> bool:
        return bool(self.likes_received or self.super_likes_sent or self.matches_made)


# Queue payloads, discriminated by the `type` the mobile client routes on
class TrialExpiringPayload(BaseModel):
    type: Literal["trial_expiring"] = "trial_expiring"
    days_remaining: int
    subscription_id: uuid.UUID
    tier: str
    expires_at: datetime
    action: Literal["open_subscription"] = "open_subscription"


class TrialEngagementPayload(BaseModel):
    type: Literal["trial_engagement"] = "trial_engagement"
    day_number: int
    subscription_id: uuid.UUID
    stats: EngagementStats
    action: Literal["open_subscription"] = "open_subscription"


class MatchExpiringPayload(BaseModel):
    type: Literal["match_expiring"] = "match_expiring"
    match_id: uuid.UUID
    days_remaining: int
    screen: Literal["matches"] = "matches"


class SwipesRefreshedPayload(BaseModel):
    type: Literal["swipes_refreshed"] = "swipes_refreshed"
    profile_id: uuid.UUID
    screen: Literal["discover"] = "discover"


NotificationPayload = Annotated[
    Union[
        TrialExpiringPayload,
        TrialEngagementPayload,
        MatchExpiringPayload,
        SwipesRefreshedPayload,
    ],
    Field(discriminator="type"),
]

notification_payload_adapter: TypeAdapter[NotificationPayload] = TypeAdapter(
    NotificationPayload
)

PAYLOAD_TYPE_BY_KIND: Dict[NotificationKind, str] = {
    NotificationKind.TRIAL_EXPIRING_3_DAYS: "trial_expiring",
    NotificationKind.TRIAL_EXPIRING_1_DAY: "trial_expiring",
    NotificationKind.TRIAL_EXPIRING_TODAY: "trial_expiring",
    NotificationKind.TRIAL_DAY1_WELCOME: "trial_engagement",
    NotificationKind.TRIAL_DAY3_LIKES: "trial_engagement",
    NotificationKind.TRIAL_DAY5_VALUE: "trial_engagement",
    NotificationKind.TRIAL_DAY6_DISCOUNT: "trial_engagement",
    NotificationKind.MATCH_EXPIRING: "match_expiring",
    NotificationKind.SWIPES_REFRESHED: "swipes_refreshed",
}


def parse_notification_payload(data: Dict[str, Any]) -> NotificationPayload:
    """Validate a stored `notification_queue.data` document back into its variant."""
    return notification_payload_adapter.validate_python(data)


class RenderedContent(BaseModel):
    title: str
    body: str


class TierResult(CamelCaseBaseModel):
    tier: str
    queued: int = 0


class JobRunResult(CamelCaseBaseModel):
    """Outcome of one job invocation, serialized as the HTTP response body."""

    success: bool
    job: Optional[str] = None
    total_queued: Optional[int] = None
    emails_sent: Optional[int] = None
    processed: Optional[int] = None
    errors: Optional[int] = None
    results: Optional[List[TierResult]] = None
    error: Optional[str] = None
    request_id: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class JobTriggerRequest(CamelCaseBaseModel):
    """Optional body accepted by the job trigger endpoint."""

    now: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, gt=0, le=1000)

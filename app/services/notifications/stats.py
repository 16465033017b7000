import uuid
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Like, LikeType, Match, Message, MessageContentType
from app.schemas.notification_schemas import EngagementStats


async def count_likes_received(
    db_session: AsyncSession, profile_id: uuid.UUID, since: datetime
) -> int:
    result = await db_session.execute(
        select(func.count())
        .select_from(Like)
        .where(Like.liked_profile_id == profile_id, Like.created_at >= since)
    )
    return result.scalar_one()


async def count_super_likes_sent(
    db_session: AsyncSession, profile_id: uuid.UUID, since: datetime
) -> int:
    result = await db_session.execute(
        select(func.count())
        .select_from(Like)
        .where(
            Like.liker_profile_id == profile_id,
            Like.like_type == LikeType.SUPER,
            Like.created_at >= since,
        )
    )
    return result.scalar_one()


async def count_matches_made(
    db_session: AsyncSession, profile_id: uuid.UUID, since: datetime
) -> int:
    result = await db_session.execute(
        select(func.count())
        .select_from(Match)
        .where(
            or_(Match.profile1_id == profile_id, Match.profile2_id == profile_id),
            Match.matched_at >= since,
        )
    )
    return result.scalar_one()


async def count_messages_sent(
    db_session: AsyncSession,
    profile_id: uuid.UUID,
    since: datetime,
    content_type: MessageContentType | None = None,
) -> int:
    query = (
        select(func.count())
        .select_from(Message)
        .where(Message.sender_profile_id == profile_id, Message.created_at >= since)
    )
    if content_type is not None:
        query = query.where(Message.content_type == content_type)

    result = await db_session.execute(query)
    return result.scalar_one()


async def collect_engagement_stats(
    db_session: AsyncSession, profile_id: uuid.UUID, since: datetime
) -> EngagementStats:
    """Counts every activity metric the trial engagement copy can reference."""
    return EngagementStats(
        likes_received=await count_likes_received(db_session, profile_id, since),
        super_likes_sent=await count_super_likes_sent(db_session, profile_id, since),
        matches_made=await count_matches_made(db_session, profile_id, since),
        messages_sent=await count_messages_sent(db_session, profile_id, since),
        voice_messages_sent=await count_messages_sent(
            db_session, profile_id, since, MessageContentType.VOICE
        ),
    )


async def collect_absence_stats(
    db_session: AsyncSession, profile_id: uuid.UUID, since: datetime
) -> EngagementStats:
    """Likes and matches received while the profile was away."""
    return EngagementStats(
        likes_received=await count_likes_received(db_session, profile_id, since),
        matches_made=await count_matches_made(db_session, profile_id, since),
    )

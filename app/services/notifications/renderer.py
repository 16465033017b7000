"""
Content rendering for push notifications and emails.

Push copy is a pure function of (kind, locale, stats). Every email kind is
rendered by one Jinja2 layout from an `EmailContent` record; the per-kind
builders only decide which strings and blocks go into that record.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from app.db.models import NotificationKind
from app.schemas.notification_schemas import EngagementStats, RenderedContent
from .translations import join_phrases, t, tn

TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates" / "emails"

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(enabled_extensions=("html",), default=False),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)

ONBOARDING_TOTAL_STEPS = 10
MAX_LISTED_SENDERS = 3

_TRIAL_EXPIRATION_KEYS = {
    NotificationKind.TRIAL_EXPIRING_3_DAYS: "threeDays",
    NotificationKind.TRIAL_EXPIRING_1_DAY: "oneDay",
    NotificationKind.TRIAL_EXPIRING_TODAY: "today",
}


# Push
def build_engagement_highlights(locale: Optional[str], stats: EngagementStats) -> str:
    highlights: List[str] = []
    if stats.likes_received > 0:
        highlights.append(t(locale, "stats.seenLikes", count=stats.likes_received))
    if stats.super_likes_sent > 0:
        highlights.append(tn(locale, "stats.sentSuperLikes", stats.super_likes_sent))
    if stats.matches_made > 0:
        highlights.append(tn(locale, "stats.madeMatches", stats.matches_made))
    return join_phrases(locale, highlights)


def _render_trial_engagement(
    kind: NotificationKind, locale: Optional[str], stats: EngagementStats
) -> RenderedContent:
    if kind is NotificationKind.TRIAL_DAY1_WELCOME:
        return RenderedContent(
            title=t(locale, "trialEngagement.day1Title"),
            body=t(locale, "trialEngagement.day1Body"),
        )

    if kind is NotificationKind.TRIAL_DAY3_LIKES:
        count = stats.likes_received
        if count > 0:
            return RenderedContent(
                title=t(
                    locale,
                    "trialEngagement.day3TitleWithLikes",
                    count=count,
                    person=tn(locale, "stats.person", count),
                ),
                body=t(locale, "trialEngagement.day3BodyWithLikes"),
            )
        return RenderedContent(
            title=t(locale, "trialEngagement.day3TitleNoLikes"),
            body=t(locale, "trialEngagement.day3BodyNoLikes"),
        )

    if kind is NotificationKind.TRIAL_DAY5_VALUE:
        highlights = build_engagement_highlights(locale, stats)
        body = (
            t(locale, "trialEngagement.day5BodyWithStats", highlights=highlights)
            if highlights
            else t(locale, "trialEngagement.day5BodyNoStats")
        )
        return RenderedContent(title=t(locale, "trialEngagement.day5Title"), body=body)

    return RenderedContent(
        title=t(locale, "trialEngagement.day6Title"),
        body=t(locale, "trialEngagement.day6Body"),
    )


def render_push(
    kind: NotificationKind,
    locale: Optional[str],
    *,
    stats: Optional[EngagementStats] = None,
    days_remaining: Optional[int] = None,
    other_name: Optional[str] = None,
) -> RenderedContent:
    """Localized title/body for a push notification kind."""
    if kind in _TRIAL_EXPIRATION_KEYS:
        prefix = _TRIAL_EXPIRATION_KEYS[kind]
        return RenderedContent(
            title=t(locale, f"trialExpiration.{prefix}Title"),
            body=t(locale, f"trialExpiration.{prefix}Body"),
        )

    if kind in (
        NotificationKind.TRIAL_DAY1_WELCOME,
        NotificationKind.TRIAL_DAY3_LIKES,
        NotificationKind.TRIAL_DAY5_VALUE,
        NotificationKind.TRIAL_DAY6_DISCOUNT,
    ):
        return _render_trial_engagement(kind, locale, stats or EngagementStats())

    if kind is NotificationKind.MATCH_EXPIRING:
        if days_remaining is None or other_name is None:
            raise ValueError("match_expiring needs days_remaining and other_name")
        if days_remaining <= 1:
            return RenderedContent(
                title=t(locale, "matchExpiring.oneDayTitle"),
                body=t(locale, "matchExpiring.oneDayBody", name=other_name),
            )
        return RenderedContent(
            title=t(locale, "matchExpiring.title", days=days_remaining),
            body=t(locale, "matchExpiring.body", name=other_name, days=days_remaining),
        )

    if kind is NotificationKind.SWIPES_REFRESHED:
        return RenderedContent(
            title=t(locale, "swipesRefreshed.title"),
            body=t(locale, "swipesRefreshed.body"),
        )

    raise ValueError(f"No push copy for notification kind: {kind.value}")


# Email
@dataclass(frozen=True)
class StatTile:
    value: str
    label: str
    line: str


@dataclass(frozen=True)
class EmailContent:
    """Everything that varies between email kinds; the layout is shared."""

    subject: str
    preheader: str
    emoji: str
    headline: str
    subheadline: str
    greeting: str
    cta: str
    footer_reason: str
    paragraphs: Sequence[str] = ()
    stats_heading: Optional[str] = None
    stats: Sequence[StatTile] = ()
    progress_percent: Optional[int] = None
    progress_label: Optional[str] = None
    list_items: Sequence[str] = ()
    callout: Optional[str] = None
    tip: Optional[str] = None
    brand: str = field(default="")
    manage_preferences: str = field(default="")


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def render_email(content: EmailContent) -> RenderedEmail:
    html = _environment.get_template("base.html").render(content=content)
    text = _environment.get_template("base.txt").render(content=content)
    return RenderedEmail(subject=content.subject, html=html, text=text.strip() + "\n")


def _footer(locale: Optional[str]) -> dict:
    return {
        "brand": t(locale, "emails.brand"),
        "manage_preferences": t(locale, "emails.managePreferences"),
    }


def build_inactive_email(
    recipient_name: str, tier: str, stats: EngagementStats, locale: Optional[str]
) -> EmailContent:
    prefix = f"emails.inactive.tiers.{tier}"
    emoji = t(locale, f"{prefix}.emoji")
    headline = t(locale, f"{prefix}.headline")
    subheadline = t(locale, f"{prefix}.subheadline")

    tiles: List[StatTile] = []
    if stats.likes_received > 0:
        tiles.append(
            StatTile(
                value=str(stats.likes_received),
                label=tn(locale, "emails.inactive.newLikes", stats.likes_received),
                line=tn(locale, "emails.inactive.newLikesLine", stats.likes_received),
            )
        )
    if stats.matches_made > 0:
        tiles.append(
            StatTile(
                value=str(stats.matches_made),
                label=tn(locale, "emails.inactive.matches", stats.matches_made),
                line=tn(locale, "emails.inactive.matchesLine", stats.matches_made),
            )
        )

    return EmailContent(
        subject=t(locale, "emails.subject", emoji=emoji, headline=headline),
        preheader=t(locale, "emails.inactive.preheader", subheadline=subheadline),
        emoji=emoji,
        headline=headline,
        subheadline=subheadline,
        greeting=t(locale, "emails.greeting", name=recipient_name),
        paragraphs=[t(locale, "emails.inactive.intro")],
        stats_heading=t(locale, "emails.inactive.statsHeading") if tiles else None,
        stats=tiles,
        callout=f"{emoji} {headline}",
        cta=t(locale, "emails.inactive.cta"),
        tip=t(locale, "emails.inactive.tip"),
        footer_reason=t(locale, "emails.inactive.footerReason"),
        **_footer(locale),
    )


def onboarding_step_name(locale: Optional[str], step: int) -> str:
    if 0 <= step < ONBOARDING_TOTAL_STEPS:
        return t(locale, f"emails.onboarding.steps.{step}")
    return t(locale, "emails.onboarding.steps.default")


def build_onboarding_email(
    recipient_name: str,
    level: str,
    onboarding_step: int,
    locale: Optional[str],
    total_steps: int = ONBOARDING_TOTAL_STEPS,
) -> EmailContent:
    prefix = f"emails.onboarding.levels.{level}"
    emoji = t(locale, f"{prefix}.emoji")
    headline = t(locale, f"{prefix}.headline")
    subheadline = t(locale, f"{prefix}.subheadline")

    completed = min(max(onboarding_step, 0), total_steps)
    percent = round(completed / total_steps * 100)
    remaining = total_steps - completed

    return EmailContent(
        subject=t(locale, "emails.subject", emoji=emoji, headline=headline),
        preheader=t(
            locale, "emails.onboarding.preheader", subheadline=subheadline, percent=percent
        ),
        emoji=emoji,
        headline=headline,
        subheadline=subheadline,
        greeting=t(locale, "emails.greeting", name=recipient_name),
        paragraphs=[
            t(locale, "emails.onboarding.intro"),
            t(
                locale,
                "emails.onboarding.nextStep",
                step=onboarding_step_name(locale, onboarding_step),
            ),
        ],
        progress_percent=percent,
        progress_label=tn(locale, "emails.onboarding.progress", remaining, percent=percent),
        cta=t(locale, "emails.onboarding.cta"),
        tip=t(locale, "emails.onboarding.tip"),
        footer_reason=t(locale, "emails.onboarding.footerReason"),
        **_footer(locale),
    )


def build_unread_messages_email(
    recipient_name: str,
    unread_count: int,
    sender_names: Sequence[str],
    locale: Optional[str],
) -> EmailContent:
    listed = list(sender_names[:MAX_LISTED_SENDERS])
    senders = ", ".join(listed)
    if len(sender_names) > MAX_LISTED_SENDERS:
        more = t(
            locale,
            "emails.unread.andMore",
            count=len(sender_names) - MAX_LISTED_SENDERS,
        )
        senders = f"{senders} {more}"

    list_items = [t(locale, "emails.unread.senderLine", name=name) for name in listed]
    if len(sender_names) > MAX_LISTED_SENDERS:
        list_items.append(
            t(
                locale,
                "emails.unread.andMore",
                count=len(sender_names) - MAX_LISTED_SENDERS,
            )
        )

    emoji = t(locale, "emails.unread.emoji")
    headline = tn(locale, "emails.unread.headline", unread_count)

    return EmailContent(
        subject=tn(locale, "emails.unread.subject", unread_count),
        preheader=tn(locale, "emails.unread.preheader", unread_count, senders=senders),
        emoji=emoji,
        headline=headline,
        subheadline=t(locale, "emails.unread.subheadline"),
        greeting=t(locale, "emails.greeting", name=recipient_name),
        list_items=list_items,
        cta=t(locale, "emails.unread.cta"),
        footer_reason=t(locale, "emails.unread.footerReason"),
        **_footer(locale),
    )

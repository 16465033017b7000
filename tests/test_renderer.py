import pytest

from app.db.models import NotificationKind
from app.schemas.notification_schemas import EngagementStats
from app.services.notifications.renderer import (
    build_engagement_highlights,
    build_inactive_email,
    build_onboarding_email,
    build_unread_messages_email,
    render_email,
    render_push,
)


class TestRenderPush:
    """Push copy per notification kind."""

    def test_trial_expiration_today(self):
        content = render_push(NotificationKind.TRIAL_EXPIRING_TODAY, "en")
        assert content.title == "Your free trial ends today!"

    def test_day_three_with_likes_pluralizes_person(self):
        content = render_push(
            NotificationKind.TRIAL_DAY3_LIKES,
            "en",
            stats=EngagementStats(likes_received=1),
        )
        assert content.title == "1 person liked you!"

        content = render_push(
            NotificationKind.TRIAL_DAY3_LIKES,
            "en",
            stats=EngagementStats(likes_received=4),
        )
        assert content.title == "4 people liked you!"

    def test_day_three_without_likes(self):
        content = render_push(NotificationKind.TRIAL_DAY3_LIKES, "en")
        assert content.title == "You're getting noticed!"

    def test_day_five_lists_highlights(self):
        content = render_push(
            NotificationKind.TRIAL_DAY5_VALUE,
            "en",
            stats=EngagementStats(likes_received=3, super_likes_sent=1, matches_made=2),
        )
        assert content.body == (
            "You've seen 3 who liked you and sent 1 Super Like and made 2 matches. "
            "Don't lose access to these features!"
        )

    def test_day_five_without_stats(self):
        content = render_push(NotificationKind.TRIAL_DAY5_VALUE, "en")
        assert content.body.startswith("You've been exploring premium features")

    def test_match_expiring_last_day_copy(self):
        content = render_push(
            NotificationKind.MATCH_EXPIRING, "en", days_remaining=1, other_name="Yusuf"
        )
        assert content.title == "⏰ Match expires in 24 hours!"
        assert "Yusuf" in content.body

    def test_match_expiring_requires_context(self):
        with pytest.raises(ValueError):
            render_push(NotificationKind.MATCH_EXPIRING, "en", days_remaining=3)

    def test_email_only_kind_has_no_push_copy(self):
        with pytest.raises(ValueError):
            render_push(NotificationKind.INACTIVE_REMINDER, "en")

    def test_highlights_are_empty_without_activity(self):
        assert build_engagement_highlights("en", EngagementStats()) == ""


class TestRenderEmail:
    """All email kinds share one layout."""

    def test_inactive_email_lists_missed_activity(self):
        email = render_email(
            build_inactive_email(
                "Layla", "7_days", EngagementStats(likes_received=2), "en"
            )
        )

        assert email.subject == "💜 Your Matches Are Waiting - Accord"
        assert "Hi Layla!" in email.html
        assert "2 new likes" in email.text
        assert "new match" not in email.text

    def test_inactive_email_without_activity_has_no_stats_block(self):
        email = render_email(
            build_inactive_email("Layla", "3_days", EngagementStats(), "en")
        )
        assert "While you were away:" not in email.text

    def test_onboarding_email_progress(self):
        content = build_onboarding_email("Layla", "24_hours", 4, "en")
        email = render_email(content)

        assert content.progress_percent == 40
        assert "40% complete - 6 steps remaining" in email.text
        assert "Next step: Add matching preferences" in email.text
        assert "width: 40%" in email.html

    def test_unread_email_lists_three_senders_and_more(self):
        content = build_unread_messages_email(
            "Layla", 6, ["Omar", "Yusuf", "Idris", "Bilal", "Hamza"], "en"
        )

        assert content.subject == "💬 You have 6 unread messages on Accord"
        assert content.list_items[-1] == "and 2 more"
        assert len(content.list_items) == 4
        assert "Omar, Yusuf, Idris and 2 more" in content.preheader

    def test_html_escapes_user_supplied_names(self):
        email = render_email(
            build_inactive_email(
                "<script>x</script>", "3_days", EngagementStats(), "en"
            )
        )
        assert "<script>" not in email.html
        assert "<script>x</script>" in email.text

import pytest

from app.services.notifications.translations import (
    join_phrases,
    normalize_locale,
    plural_category,
    t,
    tn,
)


class TestLocaleNormalization:
    @pytest.mark.parametrize(
        "code, expected",
        [
            ("en-US", "en"),
            ("pt_BR", "pt"),
            ("AR", "ar"),
            ("ru-RU", "ru"),
            ("ja", "en"),
            ("", "en"),
            (None, "en"),
        ],
    )
    def test_normalize_locale(self, code, expected):
        assert normalize_locale(code) == expected


class TestTranslate:
    def test_interpolates_placeholders(self):
        assert (
            t("en", "matchExpiring.title", days=3) == "⏰ Match expires in 3 days"
        )

    def test_region_tag_uses_base_language(self):
        assert t("es-MX", "trialExpiration.todayTitle") == "¡Tu prueba gratis termina hoy!"

    def test_unsupported_locale_falls_back_to_english(self):
        assert t("ja", "trialExpiration.todayTitle") == "Your free trial ends today!"

    def test_key_missing_in_locale_falls_back_to_english(self):
        # match expiry copy is only written in English
        assert t("de", "matchExpiring.oneDayBody", name="Omar") == (
            "Your match with Omar expires tomorrow! Send a message now to keep the connection."
        )

    def test_unknown_key_returns_key(self):
        assert t("en", "does.not.exist") == "does.not.exist"


class TestPlurals:
    @pytest.mark.parametrize(
        "count, expected",
        [(1, "one"), (2, "few"), (4, "few"), (5, "many"), (11, "many"), (21, "one"), (22, "few"), (112, "many")],
    )
    def test_russian_categories(self, count, expected):
        assert plural_category("ru", count) == expected

    @pytest.mark.parametrize(
        "count, expected",
        [(0, "zero"), (1, "one"), (2, "two"), (5, "few"), (11, "many"), (100, "other")],
    )
    def test_arabic_categories(self, count, expected):
        assert plural_category("ar", count) == expected

    def test_french_zero_is_singular(self):
        assert plural_category("fr", 0) == "one"
        assert plural_category("en", 0) == "other"

    def test_russian_forms(self):
        assert tn("ru", "stats.sentSuperLikes", 3) == "отправили 3 Супер-лайка"
        assert tn("ru", "stats.sentSuperLikes", 5) == "отправили 5 Супер-лайков"

    def test_arabic_dual_form(self):
        assert tn("ar", "stats.person", 2) == "شخصان"

    def test_english_forms(self):
        assert tn("en", "stats.madeMatches", 1) == "made 1 match"
        assert tn("en", "stats.madeMatches", 4) == "made 4 matches"

    def test_fallback_forms_use_english_rule(self):
        # German has no email copy; English forms are chosen by the English rule
        assert tn("de", "emails.inactive.newLikesLine", 2) == "2 new likes"


class TestJoinPhrases:
    def test_joins_with_locale_conjunction(self):
        assert join_phrases("es", ["a", "b"]) == "a y b"

    def test_empty_phrases_are_dropped(self):
        assert join_phrases("en", ["", "a"]) == "a"
        assert join_phrases("en", []) == ""

"""
Localized notification strings.

Lookups take a dot-notation key (``trialEngagement.day1Title``). A locale is
normalized to its base language (``pt-BR`` -> ``pt``); unknown locales use the
default language, and keys missing from a locale fall back to English and
finally to the key itself. ``{{name}}`` placeholders are interpolated.

Count-dependent strings are stored as dicts keyed by CLDR plural category and
resolved through the locale's own plural rule, never through English rules.
"""

import re
from typing import Any, Callable, Dict, Iterable, Optional, Union

from app.config.settings import settings
from app.utils.logging import get_logger

logger = get_logger()

FALLBACK_LOCALE = "en"
_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


# Plural rules (subset of CLDR cardinal rules for integers)
def _plural_one_other(n: int) -> str:
    return "one" if n == 1 else "other"


def _plural_zero_one_other(n: int) -> str:
    # French and Portuguese treat 0 as singular
    return "one" if n in (0, 1) else "other"


def _plural_east_slavic(n: int) -> str:
    if n % 10 == 1 and n % 100 != 11:
        return "one"
    if 2 <= n % 10 <= 4 and not 12 <= n % 100 <= 14:
        return "few"
    return "many"


def _plural_arabic(n: int) -> str:
    if n == 0:
        return "zero"
    if n == 1:
        return "one"
    if n == 2:
        return "two"
    if 3 <= n % 100 <= 10:
        return "few"
    if 11 <= n % 100 <= 99:
        return "many"
    return "other"


PLURAL_RULES: Dict[str, Callable[[int], str]] = {
    "en": _plural_one_other,
    "es": _plural_one_other,
    "de": _plural_one_other,
    "tr": _plural_one_other,
    "fr": _plural_zero_one_other,
    "pt": _plural_zero_one_other,
    "ru": _plural_east_slavic,
    "ar": _plural_arabic,
}


Catalog = Dict[str, Any]

TRANSLATIONS: Dict[str, Catalog] = {
    "en": {
        "trialExpiration": {
            "threeDaysTitle": "Your free trial ends in 3 days",
            "threeDaysBody": "Don't lose access to premium features! Subscribe now to keep finding your perfect match.",
            "oneDayTitle": "Your free trial ends tomorrow!",
            "oneDayBody": "Last chance to subscribe and keep your premium features. Tap to upgrade now.",
            "todayTitle": "Your free trial ends today!",
            "todayBody": "Your premium access expires tonight. Subscribe now to continue your journey to finding your perfect match.",
        },
        "trialEngagement": {
            "day1Title": "Your Premium Trial is Active!",
            "day1Body": "Unlock unlimited likes, see who liked you, send Super Likes, and more. Start exploring your premium features!",
            "day3TitleWithLikes": "{{count}} {{person}} liked you!",
            "day3TitleNoLikes": "You're getting noticed!",
            "day3BodyWithLikes": "Tap to see who they are - this is a Premium feature you can keep!",
            "day3BodyNoLikes": "Keep using Premium features to stand out and get more likes.",
            "day5Title": "Only 2 Days Left in Your Trial!",
            "day5BodyWithStats": "You've {{highlights}}. Don't lose access to these features!",
            "day5BodyNoStats": "You've been exploring premium features. Subscribe now to keep them!",
            "day6Title": "Last Day Tomorrow!",
            "day6Body": "Lock in 33% savings with our annual plan before your trial ends. Your connections are waiting!",
        },
        "swipesRefreshed": {
            "title": "Your swipes are back! 🎉",
            "body": "You have 15 new swipes to discover your perfect match. Start swiping now!",
        },
        "matchExpiring": {
            "oneDayTitle": "⏰ Match expires in 24 hours!",
            "oneDayBody": "Your match with {{name}} expires tomorrow! Send a message now to keep the connection.",
            "title": "⏰ Match expires in {{days}} days",
            "body": "Your match with {{name}} expires in {{days}} days. Don't miss out - send a message!",
        },
        "stats": {
            "person": {"one": "person", "other": "people"},
            "seenLikes": "seen {{count}} who liked you",
            "sentSuperLikes": {
                "one": "sent {{count}} Super Like",
                "other": "sent {{count}} Super Likes",
            },
            "madeMatches": {
                "one": "made {{count}} match",
                "other": "made {{count}} matches",
            },
            "conjunction": " and ",
        },
        "emails": {
            "greeting": "Hi {{name}}!",
            "subject": "{{emoji}} {{headline}} - Accord",
            "brand": "Accord - Safe Connections for Meaningful Partnerships",
            "managePreferences": "To manage email preferences, open the Accord app and go to Settings > Notifications",
            "inactive": {
                "tiers": {
                    "3_days": {
                        "emoji": "👋",
                        "headline": "We Miss You!",
                        "subheadline": "It's been a few days since you visited Accord",
                    },
                    "7_days": {
                        "emoji": "💜",
                        "headline": "Your Matches Are Waiting",
                        "subheadline": "It's been a week - don't let connections slip away",
                    },
                    "14_days": {
                        "emoji": "✨",
                        "headline": "We'd Love to See You Again",
                        "subheadline": "It's been a while, and there are people looking for someone like you",
                    },
                },
                "preheader": "{{subheadline}}. Come back and discover new connections!",
                "intro": "Your journey to finding a meaningful connection doesn't have to pause. Every day on Accord is an opportunity to meet someone who shares your goals and values.",
                "statsHeading": "While you were away:",
                "newLikes": {"one": "New Like", "other": "New Likes"},
                "newLikesLine": {
                    "one": "{{count}} new like",
                    "other": "{{count}} new likes",
                },
                "matches": {"one": "Match", "other": "Matches"},
                "matchesLine": {
                    "one": "{{count}} new match",
                    "other": "{{count}} new matches",
                },
                "cta": "Open the Accord app on your phone to continue your journey!",
                "tip": "Reminder: The most successful connections happen when both people are actively engaged. Your perfect match might be waiting right now!",
                "footerReason": "You're receiving this because you haven't visited Accord recently.",
            },
            "onboarding": {
                "levels": {
                    "24_hours": {
                        "emoji": "👋",
                        "headline": "Finish Setting Up Your Profile",
                        "subheadline": "You're so close to finding meaningful connections!",
                    },
                    "3_days": {
                        "emoji": "💜",
                        "headline": "Don't Miss Out on Connections",
                        "subheadline": "People are waiting to meet someone like you",
                    },
                    "7_days": {
                        "emoji": "✨",
                        "headline": "Your Perfect Match is Waiting",
                        "subheadline": "Complete your profile and start your journey",
                    },
                },
                "preheader": "{{subheadline}}. You're {{percent}}% done with your profile!",
                "intro": "You started creating your Accord profile but haven't finished yet. Complete your profile to start discovering people who share your values and goals.",
                "progress": {
                    "one": "{{percent}}% complete - {{count}} step remaining",
                    "other": "{{percent}}% complete - {{count}} steps remaining",
                },
                "nextStep": "Next step: Add {{step}}",
                "steps": {
                    "0": "basic information",
                    "1": "about yourself",
                    "2": "your interests",
                    "3": "personality details",
                    "4": "matching preferences",
                    "5": "marriage preferences",
                    "6": "profile photos",
                    "7": "profile prompts",
                    "8": "voice introduction",
                    "9": "language settings",
                    "default": "your profile",
                },
                "cta": "Open the Accord app on your phone to complete your profile!",
                "tip": "Why complete your profile? Complete profiles get 5x more matches and are shown to more people in discovery.",
                "footerReason": "You're receiving this because you started signing up for Accord.",
            },
            "unread": {
                "emoji": "💬",
                "subject": {
                    "one": "💬 You have {{count}} unread message on Accord",
                    "other": "💬 You have {{count}} unread messages on Accord",
                },
                "headline": {
                    "one": "You have {{count}} unread message",
                    "other": "You have {{count}} unread messages",
                },
                "preheader": {
                    "one": "You have {{count}} unread message from {{senders}}. Don't leave them hanging!",
                    "other": "You have {{count}} unread messages from {{senders}}. Don't leave them hanging!",
                },
                "subheadline": "Someone is waiting to hear from you",
                "senderLine": "💬 {{name}} sent you a message",
                "andMore": "and {{count}} more",
                "someone": "Someone",
                "cta": "Open the Accord app on your phone to reply!",
                "footerReason": "You're receiving this because you have unread messages on Accord.",
            },
        },
    },
    "es": {
        "trialExpiration": {
            "threeDaysTitle": "Tu prueba gratis termina en 3 días",
            "threeDaysBody": "¡No pierdas acceso a las funciones premium! Suscríbete ahora para seguir encontrando tu match perfecto.",
            "oneDayTitle": "¡Tu prueba gratis termina mañana!",
            "oneDayBody": "Última oportunidad para suscribirte y mantener tus funciones premium. Toca para actualizar ahora.",
            "todayTitle": "¡Tu prueba gratis termina hoy!",
            "todayBody": "Tu acceso premium expira esta noche. Suscríbete ahora para continuar tu camino hacia tu match perfecto.",
        },
        "trialEngagement": {
            "day1Title": "¡Tu Prueba Premium está Activa!",
            "day1Body": "Desbloquea likes ilimitados, ve quién te dio like, envía Super Likes y más. ¡Comienza a explorar tus funciones premium!",
            "day3TitleWithLikes": "¡{{count}} {{person}} te dieron like!",
            "day3TitleNoLikes": "¡Te están notando!",
            "day3BodyWithLikes": "Toca para ver quiénes son - ¡esta es una función Premium que puedes conservar!",
            "day3BodyNoLikes": "Sigue usando las funciones Premium para destacar y obtener más likes.",
            "day5Title": "¡Solo 2 Días Quedan en Tu Prueba!",
            "day5BodyWithStats": "Has {{highlights}}. ¡No pierdas acceso a estas funciones!",
            "day5BodyNoStats": "Has estado explorando funciones premium. ¡Suscríbete ahora para conservarlas!",
            "day6Title": "¡Último Día Mañana!",
            "day6Body": "Asegura 33% de ahorro con nuestro plan anual antes de que termine tu prueba. ¡Tus conexiones te esperan!",
        },
        "swipesRefreshed": {
            "title": "¡Tus swipes están de vuelta! 🎉",
            "body": "Tienes 15 nuevos swipes para descubrir tu match perfecto. ¡Comienza a deslizar ahora!",
        },
        "stats": {
            "person": {"one": "persona", "other": "personas"},
            "seenLikes": "visto {{count}} que te dieron like",
            "sentSuperLikes": {
                "one": "enviado {{count}} Super Like",
                "other": "enviado {{count}} Super Likes",
            },
            "madeMatches": {
                "one": "hecho {{count}} match",
                "other": "hecho {{count}} matches",
            },
            "conjunction": " y ",
        },
    },
    "fr": {
        "trialExpiration": {
            "threeDaysTitle": "Ton essai gratuit se termine dans 3 jours",
            "threeDaysBody": "Ne perds pas l'accès aux fonctionnalités premium ! Abonne-toi maintenant pour continuer à trouver ton match parfait.",
            "oneDayTitle": "Ton essai gratuit se termine demain !",
            "oneDayBody": "Dernière chance de t'abonner et de garder tes fonctionnalités premium. Appuie pour passer à Premium.",
            "todayTitle": "Ton essai gratuit se termine aujourd'hui !",
            "todayBody": "Ton accès premium expire ce soir. Abonne-toi maintenant pour continuer ton parcours vers ton match parfait.",
        },
        "trialEngagement": {
            "day1Title": "Ton Essai Premium est Actif !",
            "day1Body": "Débloque les likes illimités, vois qui t'a liké, envoie des Super Likes et plus. Commence à explorer tes fonctionnalités premium !",
            "day3TitleWithLikes": "{{count}} {{person}} t'ont liké !",
            "day3TitleNoLikes": "Tu te fais remarquer !",
            "day3BodyWithLikes": "Appuie pour voir qui c'est - c'est une fonctionnalité Premium que tu peux garder !",
            "day3BodyNoLikes": "Continue d'utiliser les fonctionnalités Premium pour te démarquer et obtenir plus de likes.",
            "day5Title": "Plus que 2 Jours dans Ton Essai !",
            "day5BodyWithStats": "Tu as {{highlights}}. Ne perds pas l'accès à ces fonctionnalités !",
            "day5BodyNoStats": "Tu as exploré les fonctionnalités premium. Abonne-toi maintenant pour les garder !",
            "day6Title": "Dernier Jour Demain !",
            "day6Body": "Profite de 33% de réduction avec notre plan annuel avant la fin de ton essai. Tes connexions t'attendent !",
        },
        "swipesRefreshed": {
            "title": "Tes swipes sont de retour ! 🎉",
            "body": "Tu as 15 nouveaux swipes pour découvrir ton match parfait. Commence à swiper maintenant !",
        },
        "stats": {
            "person": {"one": "personne", "other": "personnes"},
            "seenLikes": "vu {{count}} qui t'ont liké",
            "sentSuperLikes": {
                "one": "envoyé {{count}} Super Like",
                "other": "envoyé {{count}} Super Likes",
            },
            "madeMatches": {
                "one": "fait {{count}} match",
                "other": "fait {{count}} matchs",
            },
            "conjunction": " et ",
        },
    },
    "de": {
        "trialExpiration": {
            "threeDaysTitle": "Deine Testphase endet in 3 Tagen",
            "threeDaysBody": "Verliere nicht den Zugang zu Premium-Funktionen! Abonniere jetzt um weiter dein perfektes Match zu finden.",
            "oneDayTitle": "Deine Testphase endet morgen!",
            "oneDayBody": "Letzte Chance zu abonnieren und deine Premium-Funktionen zu behalten. Tippe zum Upgraden.",
            "todayTitle": "Deine Testphase endet heute!",
            "todayBody": "Dein Premium-Zugang läuft heute Nacht ab. Abonniere jetzt um deine Reise zu deinem perfekten Match fortzusetzen.",
        },
        "trialEngagement": {
            "day1Title": "Deine Premium-Testphase ist Aktiv!",
            "day1Body": "Entsperre unbegrenzte Likes, sieh wer dich geliked hat, sende Super Likes und mehr. Beginne deine Premium-Funktionen zu erkunden!",
            "day3TitleWithLikes": "{{count}} {{person}} haben dich geliked!",
            "day3TitleNoLikes": "Du wirst bemerkt!",
            "day3BodyWithLikes": "Tippe um zu sehen wer es ist - das ist eine Premium-Funktion die du behalten kannst!",
            "day3BodyNoLikes": "Nutze weiter Premium-Funktionen um aufzufallen und mehr Likes zu bekommen.",
            "day5Title": "Nur noch 2 Tage in deiner Testphase!",
            "day5BodyWithStats": "Du hast {{highlights}}. Verliere nicht den Zugang zu diesen Funktionen!",
            "day5BodyNoStats": "Du hast Premium-Funktionen erkundet. Abonniere jetzt um sie zu behalten!",
            "day6Title": "Letzter Tag Morgen!",
            "day6Body": "Sichere dir 33% Ersparnis mit unserem Jahresplan bevor deine Testphase endet. Deine Verbindungen warten!",
        },
        "swipesRefreshed": {
            "title": "Deine Swipes sind zurück! 🎉",
            "body": "Du hast 15 neue Swipes um dein perfektes Match zu entdecken. Beginne jetzt zu swipen!",
        },
        "stats": {
            "person": {"one": "Person", "other": "Personen"},
            "seenLikes": "{{count}} gesehen die dich geliked haben",
            "sentSuperLikes": {
                "one": "{{count}} Super Like gesendet",
                "other": "{{count}} Super Likes gesendet",
            },
            "madeMatches": {
                "one": "{{count}} Match gemacht",
                "other": "{{count}} Matches gemacht",
            },
            "conjunction": " und ",
        },
    },
    "ar": {
        "trialExpiration": {
            "threeDaysTitle": "تنتهي فترتك التجريبية خلال 3 أيام",
            "threeDaysBody": "لا تفقد الوصول إلى الميزات المميزة! اشترك الآن لمواصلة البحث عن تطابقك المثالي.",
            "oneDayTitle": "تنتهي فترتك التجريبية غداً!",
            "oneDayBody": "فرصة أخيرة للاشتراك والحفاظ على ميزاتك المميزة. اضغط للترقية الآن.",
            "todayTitle": "تنتهي فترتك التجريبية اليوم!",
            "todayBody": "ينتهي وصولك المميز الليلة. اشترك الآن لمواصلة رحلتك نحو تطابقك المثالي.",
        },
        "trialEngagement": {
            "day1Title": "فترتك التجريبية المميزة نشطة!",
            "day1Body": "افتح الإعجابات غير المحدودة، شاهد من أعجب بك، أرسل إعجابات فائقة والمزيد. ابدأ باستكشاف ميزاتك المميزة!",
            "day3TitleWithLikes": "{{count}} {{person}} أعجبوا بك!",
            "day3TitleNoLikes": "أنت تلفت الانتباه!",
            "day3BodyWithLikes": "اضغط لترى من هم - هذه ميزة بريميوم يمكنك الاحتفاظ بها!",
            "day3BodyNoLikes": "استمر في استخدام ميزات بريميوم للتميز والحصول على المزيد من الإعجابات.",
            "day5Title": "باقي يومان فقط في فترتك التجريبية!",
            "day5BodyWithStats": "لقد {{highlights}}. لا تفقد الوصول إلى هذه الميزات!",
            "day5BodyNoStats": "لقد استكشفت الميزات المميزة. اشترك الآن للاحتفاظ بها!",
            "day6Title": "آخر يوم غداً!",
            "day6Body": "احصل على توفير 33% مع خطتنا السنوية قبل انتهاء فترتك التجريبية. تطابقاتك في انتظارك!",
        },
        "swipesRefreshed": {
            "title": "عادت سحباتك! 🎉",
            "body": "لديك 15 سحبة جديدة لاكتشاف تطابقك المثالي. ابدأ السحب الآن!",
        },
        "stats": {
            "person": {
                "one": "شخص",
                "two": "شخصان",
                "few": "أشخاص",
                "other": "شخصًا",
            },
            "seenLikes": "شاهدت {{count}} أعجبوا بك",
            "sentSuperLikes": {
                "one": "أرسلت {{count}} إعجاب فائق",
                "few": "أرسلت {{count}} إعجابات فائقة",
                "other": "أرسلت {{count}} إعجابًا فائقًا",
            },
            "madeMatches": {
                "one": "حققت {{count}} تطابق",
                "few": "حققت {{count}} تطابقات",
                "other": "حققت {{count}} تطابقًا",
            },
            "conjunction": " و",
        },
    },
    "pt": {
        "trialExpiration": {
            "threeDaysTitle": "Seu teste grátis termina em 3 dias",
            "threeDaysBody": "Não perca acesso aos recursos premium! Assine agora para continuar encontrando seu match perfeito.",
            "oneDayTitle": "Seu teste grátis termina amanhã!",
            "oneDayBody": "Última chance de assinar e manter seus recursos premium. Toque para atualizar agora.",
            "todayTitle": "Seu teste grátis termina hoje!",
            "todayBody": "Seu acesso premium expira hoje à noite. Assine agora para continuar sua jornada.",
        },
        "trialEngagement": {
            "day1Title": "Seu Teste Premium está Ativo!",
            "day1Body": "Desbloqueie curtidas ilimitadas, veja quem curtiu você, envie Super Likes e muito mais. Comece a explorar seus recursos premium!",
            "day3TitleWithLikes": "{{count}} {{person}} curtiram você!",
            "day3TitleNoLikes": "Você está sendo notado!",
            "day3BodyWithLikes": "Toque para ver quem são - este é um recurso Premium que você pode manter!",
            "day3BodyNoLikes": "Continue usando recursos Premium para se destacar e receber mais curtidas.",
            "day5Title": "Apenas 2 Dias Restantes no Seu Teste!",
            "day5BodyWithStats": "Você {{highlights}}. Não perca acesso a esses recursos!",
            "day5BodyNoStats": "Você explorou recursos premium. Assine agora para mantê-los!",
            "day6Title": "Último Dia Amanhã!",
            "day6Body": "Garanta 33% de desconto com nosso plano anual antes que seu teste termine. Suas conexões estão esperando!",
        },
        "swipesRefreshed": {
            "title": "Seus swipes estão de volta! 🎉",
            "body": "Você tem 15 novos swipes para descobrir seu match perfeito. Comece a deslizar agora!",
        },
        "stats": {
            "person": {"one": "pessoa", "other": "pessoas"},
            "seenLikes": "viu {{count}} que curtiram você",
            "sentSuperLikes": {
                "one": "enviou {{count}} Super Like",
                "other": "enviou {{count}} Super Likes",
            },
            "madeMatches": {
                "one": "fez {{count}} match",
                "other": "fez {{count}} matches",
            },
            "conjunction": " e ",
        },
    },
    "ru": {
        "trialExpiration": {
            "threeDaysTitle": "Ваш бесплатный период заканчивается через 3 дня",
            "threeDaysBody": "Не потеряйте доступ к премиум-функциям! Подпишитесь сейчас.",
            "oneDayTitle": "Ваш бесплатный период заканчивается завтра!",
            "oneDayBody": "Последний шанс подписаться. Нажмите, чтобы обновить.",
            "todayTitle": "Ваш бесплатный период заканчивается сегодня!",
            "todayBody": "Ваш премиум-доступ истекает сегодня ночью. Подпишитесь сейчас.",
        },
        "trialEngagement": {
            "day1Title": "Ваш Премиум-пробный период активен!",
            "day1Body": "Разблокируйте безлимитные лайки, смотрите кто вас лайкнул, отправляйте Супер-лайки и многое другое!",
            "day3TitleWithLikes": "{{count}} {{person}} лайкнули вас!",
            "day3TitleNoLikes": "Вас замечают!",
            "day3BodyWithLikes": "Нажмите, чтобы увидеть кто - это премиум-функция, которую вы можете сохранить!",
            "day3BodyNoLikes": "Продолжайте использовать премиум-функции, чтобы выделяться.",
            "day5Title": "Осталось только 2 дня пробного периода!",
            "day5BodyWithStats": "Вы {{highlights}}. Не потеряйте доступ к этим функциям!",
            "day5BodyNoStats": "Вы изучили премиум-функции. Подпишитесь сейчас, чтобы сохранить их!",
            "day6Title": "Завтра последний день!",
            "day6Body": "Получите скидку 33% с годовым планом. Ваши знакомства ждут!",
        },
        "swipesRefreshed": {
            "title": "Ваши свайпы вернулись! 🎉",
            "body": "У вас есть 15 новых свайпов. Начните свайпать сейчас!",
        },
        "stats": {
            "person": {"one": "человек", "few": "человека", "many": "человек"},
            "seenLikes": "увидели {{count}}, кто вас лайкнул",
            "sentSuperLikes": {
                "one": "отправили {{count}} Супер-лайк",
                "few": "отправили {{count}} Супер-лайка",
                "many": "отправили {{count}} Супер-лайков",
            },
            "madeMatches": {
                "one": "совпали {{count}} раз",
                "few": "совпали {{count}} раза",
                "many": "совпали {{count}} раз",
            },
            "conjunction": " и ",
        },
    },
    "tr": {
        "trialExpiration": {
            "threeDaysTitle": "Ücretsiz denemen 3 gün içinde bitiyor",
            "threeDaysBody": "Premium özelliklere erişimi kaybetme! Şimdi abone ol.",
            "oneDayTitle": "Ücretsiz denemen yarın bitiyor!",
            "oneDayBody": "Abone olmak için son şans. Şimdi yükselt.",
            "todayTitle": "Ücretsiz denemen bugün bitiyor!",
            "todayBody": "Premium erişimin bu gece sona eriyor. Şimdi abone ol.",
        },
        "trialEngagement": {
            "day1Title": "Premium Denemen Aktif!",
            "day1Body": "Sınırsız beğenileri aç, seni kimin beğendiğini gör, Süper Beğeni gönder ve daha fazlası!",
            "day3TitleWithLikes": "{{count}} {{person}} seni beğendi!",
            "day3TitleNoLikes": "Fark ediliyorsun!",
            "day3BodyWithLikes": "Kim olduklarını görmek için dokun - bu koruyabileceğin bir Premium özellik!",
            "day3BodyNoLikes": "Öne çıkmak için Premium özelliklerini kullanmaya devam et.",
            "day5Title": "Deneme süresinde sadece 2 gün kaldı!",
            "day5BodyWithStats": "{{highlights}}. Bu özelliklere erişimi kaybetme!",
            "day5BodyNoStats": "Premium özellikleri keşfettin. Şimdi abone ol!",
            "day6Title": "Yarın son gün!",
            "day6Body": "Denemen bitmeden yıllık planda %33 tasarruf et. Bağlantıların seni bekliyor!",
        },
        "swipesRefreshed": {
            "title": "Kaydırmalar geri döndü! 🎉",
            "body": "Mükemmel eşleşmeni bulmak için 15 yeni kaydırman var. Şimdi kaydırmaya başla!",
        },
        "stats": {
            # Turkish nouns stay singular after a numeral
            "person": {"one": "kişi", "other": "kişi"},
            "seenLikes": "seni beğenen {{count}} kişiyi gördün",
            "sentSuperLikes": {
                "one": "{{count}} Süper Beğeni gönderdin",
                "other": "{{count}} Süper Beğeni gönderdin",
            },
            "madeMatches": {
                "one": "{{count}} eşleşme yaptın",
                "other": "{{count}} eşleşme yaptın",
            },
            "conjunction": " ve ",
        },
    },
}

SUPPORTED_LOCALES = tuple(TRANSLATIONS)


def normalize_locale(code: Optional[str]) -> str:
    """Reduce a locale tag to a supported base language, else the default."""
    default = settings.DEFAULT_LOCALE if settings.DEFAULT_LOCALE in TRANSLATIONS else FALLBACK_LOCALE
    if not code:
        return default

    base = code.replace("_", "-").split("-")[0].strip().lower()
    return base if base in TRANSLATIONS else default


def _lookup(catalog: Catalog, key: str) -> Any:
    node: Any = catalog
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def interpolate(text: str, variables: Dict[str, Union[str, int]]) -> str:
    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        return str(variables[name]) if name in variables else match.group(0)

    return _PLACEHOLDER.sub(_replace, text)


def _resolve(locale: str, key: str, expected: type) -> Any:
    value = _lookup(TRANSLATIONS[locale], key)
    if isinstance(value, expected):
        return value, locale

    if locale != FALLBACK_LOCALE:
        value = _lookup(TRANSLATIONS[FALLBACK_LOCALE], key)
        if isinstance(value, expected):
            return value, FALLBACK_LOCALE

    return None, locale


def t(locale: Optional[str], key: str, **variables: Union[str, int]) -> str:
    """Translate `key` for `locale`, interpolating `{{name}}` placeholders."""
    normalized = normalize_locale(locale)
    text, _ = _resolve(normalized, key, str)

    if text is None:
        logger.warning("Missing translation", key=key, locale=normalized)
        return key

    return interpolate(text, variables)


def plural_category(locale: Optional[str], count: int) -> str:
    rule = PLURAL_RULES.get(normalize_locale(locale), _plural_one_other)
    return rule(abs(count))


def tn(locale: Optional[str], key: str, count: int, **variables: Union[str, int]) -> str:
    """Translate a count-dependent `key` using the locale's plural rule."""
    normalized = normalize_locale(locale)
    forms, source_locale = _resolve(normalized, key, dict)

    if forms is None:
        logger.warning("Missing plural translation", key=key, locale=normalized)
        return key

    # Plural category comes from the locale the forms were actually taken from
    category = plural_category(source_locale, count)
    text = forms.get(category) or forms.get("other") or next(iter(forms.values()))
    return interpolate(text, {"count": count, **variables})


def join_phrases(locale: Optional[str], phrases: Iterable[str]) -> str:
    """Join phrases with the locale's conjunction ("a and b and c")."""
    items = [phrase for phrase in phrases if phrase]
    if not items:
        return ""
    return t(locale, "stats.conjunction").join(items)

"""
Time-window eligibility rules.

A rule is a half-open range over the distance between the job's `now` and an
entity's reference timestamp. `ELAPSED` measures `now - reference` (inactivity,
time since signup, trial day); `REMAINING` measures `reference - now`
(expirations). Tiers of one rule set never overlap, so a reference timestamp
maps to at most one tier.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterator, Optional, Sequence, Tuple

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement


class Anchor(enum.Enum):
    ELAPSED = "elapsed"
    REMAINING = "remaining"


@dataclass(frozen=True)
class WindowRule:
    start: timedelta
    end: timedelta
    anchor: Anchor = Anchor.ELAPSED

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Empty window: [{self.start}, {self.end})")

    def distance(self, reference: datetime, now: datetime) -> timedelta:
        if self.anchor is Anchor.ELAPSED:
            return now - reference
        return reference - now

    def bounds(self, now: datetime) -> Tuple[datetime, datetime]:
        """Absolute (low, high) range of reference timestamps the window admits."""
        if self.anchor is Anchor.ELAPSED:
            return now - self.end, now - self.start
        return now + self.start, now + self.end

    def contains(self, reference: Optional[datetime], now: datetime) -> bool:
        if reference is None:
            return False
        return self.start <= self.distance(reference, now) < self.end

    def overlaps(self, other: "WindowRule") -> bool:
        return (
            self.anchor is other.anchor
            and self.start < other.end
            and other.start < self.end
        )

    def clause(self, column, now: datetime) -> ColumnElement[bool]:
        """SQL predicate equivalent to `contains` for a timestamp column."""
        if self.anchor is Anchor.ELAPSED:
            return and_(column > now - self.end, column <= now - self.start)
        return and_(column >= now + self.start, column < now + self.end)


class TieredRule:
    """Ordered, pairwise-disjoint set of named windows over one reference field."""

    def __init__(self, tiers: Sequence[Tuple[str, WindowRule]]):
        if not tiers:
            raise ValueError("A tiered rule needs at least one tier")

        anchors = {rule.anchor for _, rule in tiers}
        if len(anchors) != 1:
            raise ValueError("All tiers of a rule must share one anchor")

        for index, (key, rule) in enumerate(tiers):
            for other_key, other in tiers[index + 1 :]:
                if rule.overlaps(other):
                    raise ValueError(f"Tiers {key!r} and {other_key!r} overlap")

        self._tiers: Dict[str, WindowRule] = dict(tiers)
        self.anchor = anchors.pop()

    def __iter__(self) -> Iterator[Tuple[str, WindowRule]]:
        return iter(self._tiers.items())

    def __getitem__(self, key: str) -> WindowRule:
        return self._tiers[key]

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(self._tiers)

    def match(self, reference: Optional[datetime], now: datetime) -> Optional[str]:
        """Return the single tier whose window holds `reference`, if any."""
        for key, rule in self._tiers.items():
            if rule.contains(reference, now):
                return key
        return None

    def covering_clause(self, column, now: datetime) -> ColumnElement[bool]:
        """Coarse SQL bound spanning every tier; callers re-check with `match`."""
        start = min(rule.start for rule in self._tiers.values())
        end = max(rule.end for rule in self._tiers.values())
        return WindowRule(start, end, self.anchor).clause(column, now)


def days(value: float) -> timedelta:
    return timedelta(days=value)


def hours(value: float) -> timedelta:
    return timedelta(hours=value)


# Trial expiration, measured until subscriptions.expires_at
TRIAL_EXPIRATION_RULE = TieredRule(
    [
        ("today", WindowRule(days(0), days(0.5), Anchor.REMAINING)),
        ("1_day", WindowRule(days(0.5), days(1.5), Anchor.REMAINING)),
        ("3_days", WindowRule(days(2.5), days(3.5), Anchor.REMAINING)),
    ]
)

# Trial day N (1-indexed) covers [N-1, N) days since subscriptions.started_at
TRIAL_ENGAGEMENT_DAYS = (1, 3, 5, 6)
TRIAL_ENGAGEMENT_RULE = TieredRule(
    [(f"day_{n}", WindowRule(days(n - 1), days(n))) for n in TRIAL_ENGAGEMENT_DAYS]
)

# Inactivity, measured since profiles.last_active_at
INACTIVITY_RULE = TieredRule(
    [
        ("3_days", WindowRule(days(3), days(5))),
        ("7_days", WindowRule(days(7), days(10))),
        ("14_days", WindowRule(days(14), days(21))),
    ]
)

# Incomplete onboarding, measured since profiles.created_at
ONBOARDING_RULE = TieredRule(
    [
        ("24_hours", WindowRule(hours(24), hours(30))),
        ("3_days", WindowRule(hours(72), hours(84))),
        ("7_days", WindowRule(hours(168), hours(192))),
    ]
)

# Match expiration, measured until matches.expires_at. The 1-day window starts
# at zero; already-expired matches are excluded by the selector's status filter.
MATCH_EXPIRATION_RULE = TieredRule(
    [
        ("5_days", WindowRule(days(4.5), days(5.5), Anchor.REMAINING)),
        ("3_days", WindowRule(days(2.5), days(3.5), Anchor.REMAINING)),
        ("1_day", WindowRule(days(0), days(1.5), Anchor.REMAINING)),
    ]
)

# Swipe limit hit within the last 24h, measured since notification_preferences.last_swipe_limit_hit_at
SWIPE_REFRESH_RULE = WindowRule(hours(0), hours(24))

# Unread messages older than 2h and younger than 48h are digested
UNREAD_MESSAGES_RULE = WindowRule(hours(2), hours(48))

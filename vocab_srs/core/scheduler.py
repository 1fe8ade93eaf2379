"""
Spaced-repetition scheduling.

Every function takes the current instant explicitly; nothing here reads the
clock. Intervals grow as 2**review_count days, capped at 30, and an item is
mastered after its fifth net correct answer.
"""
from dataclasses import replace
from datetime import datetime, timedelta

from ..models import MasteryLevel, VocabularyItem, as_utc

INTERVAL_BASE = 2
MAX_INTERVAL_DAYS = 30
MASTERY_THRESHOLD = 5

# only the scheduler writes these
SCHEDULER_FIELDS = frozenset({"level", "review_count", "streak", "last_reviewed_at", "next_review_at"})


def add_days(moment: datetime, days: int) -> datetime:
    """
    Calendar day arithmetic: same wall-clock time, `days` dates later.

    Aware datetimes keep their tzinfo, so a zoneinfo-local instant crosses DST
    and month/year boundaries by date rather than by 24h multiples. Stored
    instants only keep a fixed UTC offset, so after a reload the arithmetic is
    by that offset, not by the original zone.
    """
    return moment + timedelta(days=days)


def next_interval_days(review_count: int) -> int:
    return min(INTERVAL_BASE ** review_count, MAX_INTERVAL_DAYS)


def is_due(item: VocabularyItem, now: datetime) -> bool:
    if item.level is MasteryLevel.MASTERED:
        return False
    return as_utc(now) >= item.next_review_at


def on_correct(item: VocabularyItem, now: datetime) -> VocabularyItem:
    now = as_utc(now)
    review_count = item.review_count + 1
    level = item.level
    if review_count >= MASTERY_THRESHOLD:
        level = MasteryLevel.MASTERED
    return replace(
        item,
        review_count=review_count,
        streak=item.streak + 1,
        last_reviewed_at=now,
        next_review_at=add_days(now, next_interval_days(review_count)),
        level=level,
    )


def on_incorrect(item: VocabularyItem, now: datetime) -> VocabularyItem:
    now = as_utc(now)
    # always demotes, even from mastered
    return replace(
        item,
        review_count=max(0, item.review_count - 1),
        streak=0,
        last_reviewed_at=now,
        next_review_at=now,
        level=MasteryLevel.REVIEWING,
    )


def mastery_fields(item: VocabularyItem) -> dict:
    """The subset of fields the scheduler owns, for Repository.record_review."""
    return {
        "review_count": item.review_count,
        "streak": item.streak,
        "last_reviewed_at": item.last_reviewed_at,
        "next_review_at": item.next_review_at,
        "level": item.level,
    }

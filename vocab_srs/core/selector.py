"""
Read-only views over a repository snapshot.

Nothing here mutates an item; the quiz queue is rebuilt from scratch each time
the caller refreshes it.
"""
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ..models import Language, Status, ViewFilter, VocabularyItem
from .scheduler import is_due

_STATUS_FILTERS = {
    ViewFilter.REVIEW_NOW: Status.REVIEW_NOW,
    ViewFilter.CHECK_LATER: Status.CHECK_LATER,
    ViewFilter.ARCHIVED: Status.ARCHIVED,
}


def matches_view(item: VocabularyItem, view_filter: ViewFilter = ViewFilter.ALL,
                 review_only: bool = False) -> bool:
    view_filter = ViewFilter(view_filter)
    if view_filter is ViewFilter.ACTIVE_ONLY and not item.is_active:
        return False
    if view_filter in _STATUS_FILTERS and item.status is not _STATUS_FILTERS[view_filter]:
        return False
    if review_only and not (item.review and item.status is not Status.ARCHIVED):
        return False
    return True


def list_view(items: Iterable[VocabularyItem], view_filter: ViewFilter = ViewFilter.ALL,
              review_only: bool = False) -> List[VocabularyItem]:
    return [i for i in items if matches_view(i, view_filter, review_only)]


def in_due_queue(item: VocabularyItem, now: datetime) -> bool:
    return item.review and item.status is Status.REVIEW_NOW and is_due(item, now)


def due_queue(items: Iterable[VocabularyItem], now: datetime) -> List[VocabularyItem]:
    """Due items in stored insertion order."""
    return [i for i in items if in_due_queue(i, now)]


def due_count(items: Iterable[VocabularyItem], now: datetime) -> int:
    return sum(1 for i in items if in_due_queue(i, now))


def quiz_faces(item: VocabularyItem, display_language: Language) -> Tuple[str, str]:
    """(shown word, hidden answer) for the chosen display language."""
    if Language(display_language) is Language.SPANISH:
        return item.target_text, item.source_text
    return item.source_text, item.target_text


class QuizQueue:
    """Due-queue plus the learner's position in it."""

    def __init__(self):
        self.items: List[VocabularyItem] = []
        self.position = 0

    def refresh(self, items: Iterable[VocabularyItem], now: datetime) -> None:
        self.items = due_queue(items, now)
        if self.position >= len(self.items):
            self.position = 0

    def __len__(self):
        return len(self.items)

    def current(self) -> Optional[VocabularyItem]:
        if not self.items:
            return None
        return self.items[self.position]

    def advance(self) -> Optional[VocabularyItem]:
        if not self.items:
            return None
        self.position = (self.position + 1) % len(self.items)
        return self.current()

    def progress(self) -> Tuple[int, int]:
        """1-based position and queue length, (0, 0) when empty."""
        if not self.items:
            return 0, 0
        return self.position + 1, len(self.items)

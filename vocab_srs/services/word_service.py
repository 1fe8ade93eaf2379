import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple, Union

from ..core import scheduler
from ..core.ai_client import AIClient
from ..core.env import env_float
from ..core.repository import SettingsRepository, VocabularyRepository, ViewSettings
from ..core.selector import QuizQueue, due_count, list_view, quiz_faces
from ..errors import ContentGeneratorError, DuplicateItem, ItemNotFound
from ..models import Language, Status, ViewFilter, VocabularyItem, utcnow

logger = logging.getLogger(__name__)

DEFAULT_PACING_DELAY = 0.5  # seconds between content generator calls in a batch


@dataclass
class BatchReport:
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)   # (item id, error)


@dataclass
class BatchAddReport:
    added: List[VocabularyItem] = field(default_factory=list)
    duplicates: List[DuplicateItem] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)   # (headword, error)


class WordService:
    def __init__(self, repo: Optional[VocabularyRepository] = None,
                 settings_repo: Optional[SettingsRepository] = None,
                 ai: Optional[AIClient] = None,
                 pacing_delay: Optional[float] = None,
                 clock: Callable[[], datetime] = utcnow,
                 sleep: Callable[[float], None] = time.sleep):
        self.repo = repo if repo is not None else VocabularyRepository()
        self.settings_repo = settings_repo if settings_repo is not None else SettingsRepository(self.repo.store)
        self._ai = ai
        if pacing_delay is None:
            pacing_delay = env_float("VOCAB_PACING_DELAY", DEFAULT_PACING_DELAY)
        self.pacing_delay = pacing_delay
        self.clock = clock
        self.sleep = sleep
        self.settings = self.settings_repo.load()
        self.quiz = QuizQueue()
        self.refresh_quiz()

    @property
    def ai(self) -> AIClient:
        # created on first use so scheduling and listing work without an API key
        if self._ai is None:
            self._ai = AIClient()
        return self._ai

    # ---- words ----
    def add_word(self, headword: str, source_text: Optional[str] = None,
                 target_text: Optional[str] = None) -> Union[VocabularyItem, DuplicateItem]:
        """
        Generate content for `headword` and store it as a new item.

        Explicit source/target texts override the generated translations.
        ContentGeneratorError propagates and leaves the repository untouched;
        a collision is returned as DuplicateItem.
        """
        data = self.ai.generate_word_data(headword)
        item = VocabularyItem(
            source_text=source_text or data.source_text,
            target_text=target_text or data.target_text,
            original_language=data.detected_language,
            part_of_speech=data.part_of_speech,
            example_sentences=data.example_sentences,
            conjugation_table=data.conjugation_table,
            hints=data.hints,
            next_review_at=self.clock(),
        )
        result = self.repo.add(item)
        self.refresh_quiz()
        return result

    def add_words(self, headwords: Iterable[str]) -> BatchAddReport:
        report = BatchAddReport()
        for n, headword in enumerate(headwords):
            if n:
                self.sleep(self.pacing_delay)
            try:
                result = self.add_word(headword)
            except ContentGeneratorError as e:
                logger.warning("Could not add '%s': %s", headword, e)
                report.failed.append((headword, str(e)))
                continue
            if isinstance(result, DuplicateItem):
                report.duplicates.append(result)
            else:
                report.added.append(result)
        logger.info("Batch add: %d added, %d duplicate, %d failed",
                    len(report.added), len(report.duplicates), len(report.failed))
        return report

    def get_word(self, item_id: str) -> VocabularyItem:
        item = self.repo.get(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    def edit(self, item_id: str, **changes) -> VocabularyItem:
        item = self.repo.update(item_id, changes)
        self.refresh_quiz()
        return item

    def set_status(self, item_id: str, status: Status) -> VocabularyItem:
        return self.edit(item_id, status=Status(status))

    def set_review(self, item_id: str, review: bool) -> VocabularyItem:
        return self.edit(item_id, review=bool(review))

    def set_active(self, item_id: str, active: bool) -> VocabularyItem:
        return self.edit(item_id, is_active=bool(active))

    def delete(self, item_id: str) -> bool:
        removed = self.repo.delete(item_id)
        self.refresh_quiz()
        return removed

    def list_words(self, view_filter: ViewFilter = ViewFilter.ALL,
                   review_only: Optional[bool] = None) -> List[VocabularyItem]:
        if review_only is None:
            review_only = self.settings.review_only
        return list_view(self.repo.list_items(), view_filter, review_only)

    # ---- reviewing ----
    def record_answer(self, item_id: str, correct: bool, now: Optional[datetime] = None) -> VocabularyItem:
        now = now or self.clock()
        item = self.get_word(item_id)
        reviewed = scheduler.on_correct(item, now) if correct else scheduler.on_incorrect(item, now)
        updated = self.repo.record_review(item_id, reviewed)
        self.refresh_quiz(now)
        return updated

    def refresh_quiz(self, now: Optional[datetime] = None) -> QuizQueue:
        self.quiz.refresh(self.repo.list_items(), now or self.clock())
        return self.quiz

    def current_quiz_item(self) -> Optional[VocabularyItem]:
        return self.quiz.current()

    def next_quiz_item(self) -> Optional[VocabularyItem]:
        self.refresh_quiz()
        return self.quiz.advance()

    def quiz_faces(self, item: VocabularyItem) -> Tuple[str, str]:
        return quiz_faces(item, self.settings.display_language)

    def due_count(self, now: Optional[datetime] = None) -> int:
        return due_count(self.repo.list_items(), now or self.clock())

    # ---- settings ----
    def set_display_language(self, language: Language) -> ViewSettings:
        self.settings.display_language = Language(language)
        self.settings_repo.save(self.settings)
        return self.settings

    def set_review_only(self, review_only: bool) -> ViewSettings:
        self.settings.review_only = bool(review_only)
        self.settings_repo.save(self.settings)
        return self.settings

    # ---- backfills (AI) ----
    def backfill_hints(self) -> BatchReport:
        """Generate hints for every item that has none."""
        return self._run_batch(
            needs_update=lambda w: not w.hints,
            generate=lambda w: {"hints": self.ai.generate_hints(w.source_text, w.target_text, w.part_of_speech)},
        )

    def refresh_example_sentences(self, only_missing_glosses: bool = False) -> BatchReport:
        def needs_update(w: VocabularyItem) -> bool:
            if not only_missing_glosses:
                return True
            return not w.example_sentences or any(not s.gloss for s in w.example_sentences)

        return self._run_batch(
            needs_update=needs_update,
            generate=lambda w: {"example_sentences": self.ai.generate_example_sentences(
                w.source_text, w.target_text, w.part_of_speech)},
        )

    def update_mnemonics(self) -> BatchReport:
        """Regenerate English mnemonics for every item."""
        return self._run_batch(
            needs_update=lambda w: True,
            generate=lambda w: {"mnemonics": self.ai.generate_mnemonics(w.source_text, w.target_text)},
        )

    def _run_batch(self, needs_update, generate) -> BatchReport:
        """
        One generator call per selected item with a fixed delay between calls.
        Each item is saved as soon as it is done; a later failure does not
        undo earlier updates.
        """
        report = BatchReport()
        calls = 0
        for word in self.repo.list_items():
            if not needs_update(word):
                report.skipped.append(word.id)
                continue
            if calls:
                self.sleep(self.pacing_delay)
            calls += 1
            try:
                self.repo.update(word.id, generate(word))
            except (ContentGeneratorError, ItemNotFound) as e:
                logger.warning("Batch update failed for '%s': %s", word.target_text, e)
                report.failed.append((word.id, str(e)))
                continue
            report.updated.append(word.id)
        logger.info("Batch update: %d updated, %d skipped, %d failed",
                    len(report.updated), len(report.skipped), len(report.failed))
        return report

import copy
import json
import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Optional, Union

from ..errors import DuplicateItem, ItemNotFound
from ..models import Language, Status, VocabularyItem, normalize, status_change_fields
from .codec import CodecError, dumps_collection, loads_collection
from .database import StateStore
from .env import env_bool
from .scheduler import SCHEDULER_FIELDS, mastery_fields

logger = logging.getLogger(__name__)

COLLECTION_KEY = "vocabularyWords"
SETTINGS_KEY = "settings"

_EDITABLE = {f.name for f in fields(VocabularyItem)} - {"id"}


class VocabularyRepository:
    """
    Sole owner of the vocabulary collection.

    The collection is loaded once and written back as one JSON array after
    every mutation; the in-memory list is only replaced once the write has
    succeeded.
    """

    def __init__(self, store: Optional[StateStore] = None,
                 restore_review_on_unarchive: Optional[bool] = None):
        self.store = store or StateStore()
        if restore_review_on_unarchive is None:
            restore_review_on_unarchive = env_bool("VOCAB_RESTORE_REVIEW_ON_UNARCHIVE", False)
        self.restore_review_on_unarchive = restore_review_on_unarchive
        self._items: List[VocabularyItem] = []
        self.reload()

    # ---- loading / saving ----
    def reload(self) -> None:
        payload = self.store.read(COLLECTION_KEY)
        if payload is None:
            self._items = []
            return
        try:
            self._items = loads_collection(payload)
        except CodecError as e:
            logger.error("Stored vocabulary is unreadable, starting empty: %s", e)
            self.store.remove(COLLECTION_KEY)
            self._items = []

    def _save(self, items: List[VocabularyItem]) -> None:
        self.store.write(COLLECTION_KEY, dumps_collection(items))
        self._items = items

    # ---- reads ----
    def __len__(self) -> int:
        return len(self._items)

    def list_items(self) -> List[VocabularyItem]:
        """Snapshot in insertion order; mutating it does not touch the store."""
        return copy.deepcopy(self._items)

    def get(self, item_id: str) -> Optional[VocabularyItem]:
        idx = self._index_of(item_id)
        return copy.deepcopy(self._items[idx]) if idx is not None else None

    def find_duplicate(self, source_text: str, target_text: str,
                       exclude_id: Optional[str] = None) -> Optional[DuplicateItem]:
        source, target = normalize(source_text), normalize(target_text)
        for existing in self._items:
            if existing.id == exclude_id:
                continue
            if source and existing.source_text == source:
                return DuplicateItem(existing=copy.deepcopy(existing), field="source_text")
            if target and existing.target_text == target:
                return DuplicateItem(existing=copy.deepcopy(existing), field="target_text")
        return None

    def _index_of(self, item_id: str) -> Optional[int]:
        for i, item in enumerate(self._items):
            if item.id == item_id:
                return i
        return None

    # ---- writes ----
    def add(self, item: VocabularyItem) -> Union[VocabularyItem, DuplicateItem]:
        stored = replace(item)  # re-normalizes fields edited after construction
        dup = self.find_duplicate(stored.source_text, stored.target_text)
        if dup:
            dup.candidate = stored
            logger.warning("Rejected insert of '%s' / '%s': %s", stored.source_text, stored.target_text, dup)
            return dup
        if self._index_of(stored.id) is not None:
            raise ValueError(f"id already in use: {stored.id}")
        stored = copy.deepcopy(stored)
        self._save(self._items + [stored])
        logger.info("Added '%s' / '%s' (id=%s)", stored.source_text, stored.target_text, stored.id)
        return copy.deepcopy(stored)

    def update(self, item_id: str, partial: Dict[str, Any]) -> VocabularyItem:
        """Field edits. Mastery fields go through record_review instead."""
        owned = SCHEDULER_FIELDS & set(partial)
        if owned:
            raise ValueError(f"scheduled fields cannot be edited: {', '.join(sorted(owned))}")
        return self._write(item_id, partial)

    def record_review(self, item_id: str, reviewed: VocabularyItem) -> VocabularyItem:
        """Store the mastery fields of a scheduler result."""
        return self._write(item_id, mastery_fields(reviewed))

    def _write(self, item_id: str, partial: Dict[str, Any]) -> VocabularyItem:
        idx = self._index_of(item_id)
        if idx is None:
            logger.warning("Update of unknown item %s", item_id)
            raise ItemNotFound(item_id)
        unknown = set(partial) - _EDITABLE
        if unknown:
            raise ValueError(f"not editable: {', '.join(sorted(unknown))}")

        current = self._items[idx]
        changes = dict(partial)
        if "status" in changes:
            transition = status_change_fields(current, changes["status"], self.restore_review_on_unarchive)
            if transition["status"] is Status.ARCHIVED:
                changes["review"] = False
            elif "review" in transition:
                changes.setdefault("review", transition["review"])
            changes["status"] = transition["status"]

        updated = replace(current, **changes)  # re-normalizes and re-validates
        if "source_text" in changes or "target_text" in changes:
            dup = self.find_duplicate(updated.source_text, updated.target_text, exclude_id=item_id)
            if dup:
                raise ValueError(str(dup))

        items = list(self._items)
        items[idx] = updated
        self._save(items)
        return copy.deepcopy(updated)

    def delete(self, item_id: str) -> bool:
        """Idempotent: False when nothing had that id."""
        if self._index_of(item_id) is None:
            logger.warning("Delete of unknown item %s ignored", item_id)
            return False
        self._save([i for i in self._items if i.id != item_id])
        logger.info("Deleted item %s", item_id)
        return True


@dataclass
class ViewSettings:
    display_language: Language = Language.SPANISH
    review_only: bool = False


class SettingsRepository:
    def __init__(self, store: Optional[StateStore] = None):
        self.store = store or StateStore()

    def load(self) -> ViewSettings:
        raw = self.store.read(SETTINGS_KEY)
        if not raw:
            return ViewSettings()
        try:
            data = json.loads(raw)
            return ViewSettings(
                display_language=Language(data.get("displayLanguage", Language.SPANISH.value)),
                review_only=bool(data.get("reviewOnly", False)),
            )
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Stored settings are unreadable, using defaults: %s", e)
            return ViewSettings()

    def save(self, settings: ViewSettings) -> None:
        self.store.write(SETTINGS_KEY, json.dumps({
            "displayLanguage": Language(settings.display_language).value,
            "reviewOnly": bool(settings.review_only),
        }))

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set


class Status(str, Enum):
    REVIEW_NOW = "reviewNow"
    CHECK_LATER = "checkLater"
    ARCHIVED = "archived"


class MasteryLevel(str, Enum):
    REVIEWING = "reviewing"
    MASTERED = "mastered"


class Language(str, Enum):
    ENGLISH = "english"   # native side (source_text)
    SPANISH = "spanish"   # learned side (target_text)


class ViewFilter(str, Enum):
    ALL = "all"
    ACTIVE_ONLY = "active"
    REVIEW_NOW = "reviewNow"
    CHECK_LATER = "checkLater"
    ARCHIVED = "archived"


MAX_HINTS = 2
MAX_MNEMONICS = 3


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Naive instants are taken as UTC; aware ones are left alone."""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def normalize(text: Optional[str]) -> str:
    """Canonical comparison form: trimmed and lowercased."""
    return (text or "").strip().lower()


@dataclass
class ExampleSentence:
    target: str          # Spanish sentence
    gloss: str = ""      # English translation

    @classmethod
    def parse(cls, raw: str) -> "ExampleSentence":
        """
        Generator format: "Spanish sentence\\n(English translation)".
        A sentence without the parenthesised line gets an empty gloss.
        """
        text = (raw or "").strip()
        head, sep, tail = text.partition("\n")
        tail = tail.strip()
        if sep and tail.startswith("(") and tail.endswith(")"):
            return cls(target=head.strip(), gloss=tail[1:-1].strip())
        return cls(target=text)


@dataclass
class ConjugationTable:
    tenses: Dict[str, Dict[str, str]] = field(default_factory=dict)  # tense -> person -> form
    irregular: Set[str] = field(default_factory=set)                 # persons flagged irregular

    def form(self, tense: str, person: str) -> Optional[str]:
        return self.tenses.get(tense, {}).get(person)

    def is_irregular(self, person: str) -> bool:
        return person in self.irregular


@dataclass
class VocabularyItem:
    source_text: str
    target_text: str
    original_language: Language = Language.ENGLISH
    part_of_speech: str = ""
    example_sentences: List[ExampleSentence] = field(default_factory=list)
    conjugation_table: Optional[ConjugationTable] = None  # present iff verb
    hints: List[str] = field(default_factory=list)
    mnemonics: List[str] = field(default_factory=list)
    review: bool = True
    status: Status = Status.REVIEW_NOW
    is_active: bool = True
    level: MasteryLevel = MasteryLevel.REVIEWING
    review_count: int = 0
    streak: int = 0
    last_reviewed_at: Optional[datetime] = None
    next_review_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.source_text = normalize(self.source_text)
        self.target_text = normalize(self.target_text)
        self.status = Status(self.status)
        self.level = MasteryLevel(self.level)
        self.original_language = Language(self.original_language)
        if len(self.hints) > MAX_HINTS:
            raise ValueError(f"at most {MAX_HINTS} hints, got {len(self.hints)}")
        if len(self.mnemonics) > MAX_MNEMONICS:
            raise ValueError(f"at most {MAX_MNEMONICS} mnemonics, got {len(self.mnemonics)}")
        if self.review_count < 0 or self.streak < 0:
            raise ValueError("review_count and streak must be >= 0")
        if not isinstance(self.next_review_at, datetime):
            raise ValueError("next_review_at must be a datetime")
        self.next_review_at = as_utc(self.next_review_at)
        self.last_reviewed_at = as_utc(self.last_reviewed_at)

    @property
    def is_verb(self) -> bool:
        return self.conjugation_table is not None

    def dedup_key(self):
        return self.source_text, self.target_text


def status_change_fields(item: VocabularyItem, new_status, restore_review: bool = False) -> dict:
    """
    Fields written by an explicit status change.

    Any status may move to any other. Archiving forces review off; leaving
    Archived keeps review as it was unless restore_review is set.
    """
    new_status = Status(new_status)
    fields = {"status": new_status}
    if new_status is Status.ARCHIVED:
        fields["review"] = False
    elif item.status is Status.ARCHIVED and restore_review:
        fields["review"] = True
    return fields

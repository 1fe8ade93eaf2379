from datetime import datetime, timezone

import pytest

from vocab_srs.core.ai_client import GeneratedWord
from vocab_srs.core.database import StateStore
from vocab_srs.core.repository import VocabularyRepository
from vocab_srs.errors import ContentGeneratorError
from vocab_srs.models import ExampleSentence, Language, VocabularyItem

T0 = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def default_db_path(tmp_path, monkeypatch):
    """Keep any store built without an explicit path out of the package directory."""
    path = tmp_path / "default.sqlite3"
    monkeypatch.setattr("vocab_srs.core.database.DB_PATH", path)
    return path


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / "vocab.sqlite3")


@pytest.fixture
def repo(store):
    return VocabularyRepository(store, restore_review_on_unarchive=False)


@pytest.fixture
def make_item():
    def _make(source="cat", target="gato", **kw):
        kw.setdefault("next_review_at", T0)
        return VocabularyItem(source_text=source, target_text=target, **kw)
    return _make


class FakeAI:
    """Stands in for AIClient; `words` maps headword -> (english, spanish)."""

    def __init__(self, words=None, fail_on=()):
        self.words = words or {}
        self.fail_on = set(fail_on)
        self.calls = []

    def _check(self, key):
        self.calls.append(key)
        if key in self.fail_on:
            raise ContentGeneratorError(f"boom: {key}")

    def generate_word_data(self, headword, with_hints=True):
        self._check(headword)
        english, spanish = self.words.get(headword, (headword, headword + "o"))
        return GeneratedWord(
            source_text=english,
            target_text=spanish,
            detected_language=Language.ENGLISH,
            part_of_speech="noun",
            example_sentences=[ExampleSentence("El {} duerme.".format(spanish), "The {} sleeps.".format(english))],
            hints=["sounds like ..."] if with_hints else [],
        )

    def generate_hints(self, english, spanish, part_of_speech=""):
        self._check(spanish)
        return [f"{spanish} hint 1", f"{spanish} hint 2"]

    def generate_example_sentences(self, english, spanish, part_of_speech=""):
        self._check(spanish)
        return [ExampleSentence(f"Veo {spanish}.", f"I see {english}.")]

    def generate_mnemonics(self, english, spanish):
        self._check(spanish)
        return [f"{spanish} sounds like {english}"]


@pytest.fixture
def fake_ai():
    return FakeAI()

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from openai import APIConnectionError

from vocab_srs.core.ai_client import AIClient
from vocab_srs.errors import ContentGeneratorError
from vocab_srs.models import Language


def _response(payload):
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client(*payloads):
    client = MagicMock()
    client.chat.completions.create.side_effect = [_response(p) for p in payloads]
    return client


WORD = {
    "detectedLanguage": "english",
    "spanish": "Comer",
    "english": "to eat",
    "partOfSpeech": "verb",
    "exampleSentences": ["Vamos a comer.\n(Let's eat.)", "Como tacos."],
    "isVerb": True,
    "conjugations": {
        "present": {"yo": "como", "tú": "comes"},
        "preterite": {"yo": "comí"},
        "irregularForms": [],
    },
}


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ContentGeneratorError):
        AIClient()


def test_generate_word_data_parses_everything():
    client = _client(WORD, {"hints": ["come-air", "comb hair", "extra"]})
    word = AIClient(client=client).generate_word_data("  comer ")

    assert word.target_text == "Comer"
    assert word.source_text == "to eat"
    assert word.detected_language is Language.ENGLISH
    assert word.example_sentences[0].gloss == "Let's eat."
    assert word.example_sentences[1].gloss == ""
    assert word.conjugation_table.form("preterite", "yo") == "comí"
    assert word.hints == ["come-air", "comb hair"]

    kwargs = client.chat.completions.create.call_args_list[0].kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert "comer" in kwargs["messages"][1]["content"]


def test_non_verb_has_no_conjugations():
    data = dict(WORD, isVerb=False, partOfSpeech="noun", conjugations=None)
    word = AIClient(client=_client(data)).generate_word_data("comida", with_hints=False)
    assert word.conjugation_table is None


def test_hint_failure_does_not_fail_word():
    word = AIClient(client=_client(WORD, "not json")).generate_word_data("comer")
    assert word.target_text == "Comer"
    assert word.hints == []


def test_legacy_single_hint():
    assert AIClient(client=_client({"hint": "only one"})).generate_hints("dog", "perro") == ["only one"]


@pytest.mark.parametrize("payload", ["not json", [1, 2], {"english": "dog"}, {"spanish": "", "english": "dog"}])
def test_malformed_word_data(payload):
    with pytest.raises(ContentGeneratorError):
        AIClient(client=_client(payload)).generate_word_data("perro", with_hints=False)


def test_api_errors_become_content_generator_errors():
    client = MagicMock()
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client.chat.completions.create.side_effect = APIConnectionError(request=request)
    with pytest.raises(ContentGeneratorError):
        AIClient(client=client).generate_example_sentences("dog", "perro")


def test_empty_completion():
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(choices=[])
    with pytest.raises(ContentGeneratorError):
        AIClient(client=client).generate_hints("dog", "perro")


def test_generate_example_sentences():
    client = _client({"exampleSentences": ["El perro ladra.\n(The dog barks.)"]})
    sentences = AIClient(client=client).generate_example_sentences("dog", "perro", "noun")
    assert [(s.target, s.gloss) for s in sentences] == [("El perro ladra.", "The dog barks.")]


def test_base_url_is_set_for_injected_client(monkeypatch):
    monkeypatch.setenv("OPENAI_BASE_URL", "https://gateway.example.com/v1")
    assert AIClient(client=MagicMock()).base_url == "https://gateway.example.com/v1"


@pytest.mark.parametrize("detected, expected", [
    ("spanish", Language.SPANISH),
    ("es", Language.SPANISH),
    ("Español", Language.SPANISH),
    ("english", Language.ENGLISH),
    ("fr", Language.ENGLISH),
    (None, Language.ENGLISH),
])
def test_detected_language_is_lenient(detected, expected):
    client = _client({**WORD, "detectedLanguage": detected}, {"hints": ["a", "b"]})
    assert AIClient(client=client).generate_word_data("comer").detected_language is expected


def test_generate_mnemonics_caps_at_three():
    client = _client({"mnemonics": ["one", " ", "two", "three", "four"]})
    assert AIClient(client=client).generate_mnemonics("dog", "perro") == ["one", "two", "three"]


@pytest.mark.parametrize("payload", [{"mnemonics": []}, {"mnemonics": "one"}, {}])
def test_generate_mnemonics_rejects_empty_or_malformed(payload):
    with pytest.raises(ContentGeneratorError):
        AIClient(client=_client(payload)).generate_mnemonics("dog", "perro")

# vocab_srs/core/ai_client.py
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from ..errors import ContentGeneratorError
from ..models import MAX_HINTS, MAX_MNEMONICS, ConjugationTable, ExampleSentence, Language
from .codec import CodecError, decode_conjugations, decode_sentences
from .env import env_int

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful Spanish language learning assistant. Always respond with valid JSON only."


def _quote(text: str) -> str:
    return json.dumps(str(text), ensure_ascii=False)[1:-1]


def _detected_language(raw: Any) -> Language:
    """Anything that is not recognisably Spanish counts as English input."""
    value = str(raw or "").strip().lower()
    if value.startswith(("es", "sp")):
        return Language.SPANISH
    if value not in ("", "en", "english"):
        logger.info("Unknown detected language %r, treating as english", raw)
    return Language.ENGLISH


@dataclass
class GeneratedWord:
    source_text: str                     # English
    target_text: str                     # Spanish
    detected_language: Language
    part_of_speech: str = ""
    example_sentences: List[ExampleSentence] = field(default_factory=list)
    conjugation_table: Optional[ConjugationTable] = None
    hints: List[str] = field(default_factory=list)


class AIClient:
    def __init__(self, client: Optional[OpenAI] = None):
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.timeout = env_int("OPENAI_TIMEOUT", 30)
        # point OPENAI_BASE_URL at the credential gateway to keep the key server-side
        self.base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
        if client is not None:
            self.client = client
            return
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ContentGeneratorError("OPENAI_API_KEY is not set.")
        self.client = OpenAI(api_key=api_key.strip(), base_url=self.base_url)

    # ---------- public ----------
    def generate_word_data(self, headword: str, with_hints: bool = True) -> GeneratedWord:
        word = _quote(headword.strip())
        if not word:
            raise ContentGeneratorError("empty headword")
        prompt = (
            f'Analyze the word "{word}" and return JSON with this structure:\n'
            '{\n'
            '  "detectedLanguage": "english" or "spanish",\n'
            '  "spanish": "Spanish translation",\n'
            '  "english": "English translation",\n'
            '  "partOfSpeech": "noun/verb/adjective/adverb/etc",\n'
            '  "exampleSentences": ["sentence 1", "sentence 2"],\n'
            '  "isVerb": true/false,\n'
            '  "conjugations": {"present": {"yo": "...", "tú": "...", "él/ella/usted": "...", '
            '"nosotros": "...", "vosotros": "...", "ellos/ellas/ustedes": "..."}, '
            '"preterite": {...}, "imperfect": {...}, "conditional": {...}, "subjunctive": {...}, '
            '"future": {...}, "irregularForms": ["yo", ...]}\n'
            '}\n'
            "Rules:\n"
            "- Use Mexican Spanish for translations, sentences and conjugations.\n"
            "- Example sentences are always Spanish, formatted as \"Spanish sentence\\n(English translation)\".\n"
            "- If the word looks misspelled, use the most likely intended word.\n"
            '- If the word is not a verb, set "isVerb" to false and "conjugations" to null.\n'
            "- Provide 2-4 example sentences.\n"
            "Return ONLY valid JSON."
        )
        data = self._complete_json(prompt, temperature=0.7)
        try:
            spanish = str(data["spanish"]).strip()
            english = str(data["english"]).strip()
            detected = _detected_language(data.get("detectedLanguage"))
            sentences = decode_sentences(data.get("exampleSentences"))
            conjugations = decode_conjugations(data.get("conjugations")) if data.get("isVerb") else None
        except (KeyError, ValueError, TypeError, AttributeError, CodecError) as e:
            raise ContentGeneratorError(f"malformed word data: {e}") from e
        if not spanish or not english:
            raise ContentGeneratorError("word data is missing a translation")

        result = GeneratedWord(
            source_text=english,
            target_text=spanish,
            detected_language=detected,
            part_of_speech=str(data.get("partOfSpeech") or ""),
            example_sentences=sentences,
            conjugation_table=conjugations,
        )
        if with_hints:
            try:
                result.hints = self.generate_hints(english, spanish, result.part_of_speech)
            except ContentGeneratorError as e:
                # the word is still usable without hints
                logger.warning("Hint generation failed for '%s': %s", spanish, e)
        return result

    def generate_hints(self, english: str, spanish: str, part_of_speech: str = "") -> List[str]:
        sp, en = _quote(spanish), _quote(english)
        prompt = (
            f'Generate TWO different mnemonic hints in English to help an English speaker remember '
            f'the Spanish word "{sp}" (meaning "{en}", a {part_of_speech or "word"}).\n'
            f'- Do NOT mention "{sp}" in either hint.\n'
            "- Base both hints on how the Spanish word SOUNDS, using similar-sounding English words.\n"
            "- The two hints must take different approaches.\n"
            'Return JSON: {"hints": ["first hint", "second hint"]}. Return ONLY valid JSON.'
        )
        data = self._complete_json(prompt, temperature=0.8)
        hints = data.get("hints")
        if not hints and data.get("hint"):
            hints = [data["hint"]]
        if not isinstance(hints, list):
            raise ContentGeneratorError("hints must be a list")
        return [str(h).strip() for h in hints if str(h).strip()][:MAX_HINTS]

    def generate_example_sentences(self, english: str, spanish: str,
                                   part_of_speech: str = "") -> List[ExampleSentence]:
        sp, en = _quote(spanish), _quote(english)
        prompt = (
            f'Generate 2-4 example sentences in Mexican Spanish using the word "{sp}" '
            f'(meaning "{en}", a {part_of_speech or "word"}).\n'
            "Each sentence must be natural and practical, formatted as "
            "\"Spanish sentence\\n(English translation)\".\n"
            'Return JSON: {"exampleSentences": ["sentence 1", "sentence 2"]}. Return ONLY valid JSON.'
        )
        data = self._complete_json(prompt, temperature=0.7)
        try:
            return decode_sentences(data.get("exampleSentences"))
        except (CodecError, TypeError) as e:
            raise ContentGeneratorError(f"malformed example sentences: {e}") from e

    def generate_mnemonics(self, english: str, spanish: str) -> List[str]:
        sp, en = _quote(spanish), _quote(english)
        prompt = (
            f'Generate 1-3 English mnemonics to help a native English speaker remember the Spanish word '
            f'"{sp}" (meaning "{en}"). "{sp}" is Mexican Spanish.\n'
            "- Write them in English.\n"
            "- Use associations, wordplay or memory tricks.\n"
            'Return JSON: {"mnemonics": ["mnemonic 1", "mnemonic 2", "mnemonic 3"]}. Return ONLY valid JSON.'
        )
        data = self._complete_json(prompt, temperature=0.7)
        mnemonics = data.get("mnemonics")
        if not isinstance(mnemonics, list):
            raise ContentGeneratorError("mnemonics must be a list")
        cleaned = [str(m).strip() for m in mnemonics if str(m).strip()][:MAX_MNEMONICS]
        if not cleaned:
            raise ContentGeneratorError("model returned no mnemonics")
        return cleaned

    # ---------- internals ----------
    def _complete_json(self, prompt: str, *, temperature: float = 0.7) -> Dict[str, Any]:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except OpenAIError as e:
            raise ContentGeneratorError(f"AI request failed: {e}") from e

        content = ""
        if resp.choices:
            content = (getattr(resp.choices[0].message, "content", "") or "").strip()
        if not content:
            raise ContentGeneratorError("Empty content from model.")
        try:
            data = json.loads(content)
        except ValueError as e:
            raise ContentGeneratorError(f"model returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ContentGeneratorError("model returned a non-object JSON value")
        return data

"""
Conversion between live values and the persisted JSON form.

Instants are `datetime` in memory and ISO-8601 strings on disk; this module is
the only place that converts between the two.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import (
    MAX_HINTS, MAX_MNEMONICS, ConjugationTable, ExampleSentence, Language, MasteryLevel, Status,
    VocabularyItem, as_utc, new_id, utcnow,
)

# masteryLevel values written by older versions of the app
_LEGACY_LEVELS = {"review": MasteryLevel.REVIEWING, "completed": MasteryLevel.MASTERED}


class CodecError(ValueError):
    pass


# ---------- instants ----------
def encode_instant(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def decode_instant(value: Optional[str]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise CodecError(f"instant must be an ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise CodecError(f"bad instant: {value!r}") from e
    return as_utc(parsed)


# ---------- nested values ----------
def encode_conjugations(table: Optional[ConjugationTable]) -> Optional[Dict[str, Any]]:
    if table is None:
        return None
    return {"tenses": table.tenses, "irregularForms": sorted(table.irregular)}


def decode_conjugations(raw: Any) -> Optional[ConjugationTable]:
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise CodecError("conjugation table must be an object")
    if "tenses" in raw:
        tenses = raw.get("tenses") or {}
    else:
        # generator shape: tenses at top level next to irregularForms
        tenses = {k: v for k, v in raw.items() if k != "irregularForms" and isinstance(v, dict)}
    irregular = raw.get("irregularForms") or []
    return ConjugationTable(
        tenses={str(t): {str(p): str(f) for p, f in forms.items()} for t, forms in tenses.items()},
        irregular={str(p) for p in irregular},
    )


def decode_sentences(raw: Any) -> List[ExampleSentence]:
    result: List[ExampleSentence] = []
    for entry in raw or []:
        if isinstance(entry, str):
            result.append(ExampleSentence.parse(entry))
        elif isinstance(entry, dict):
            result.append(ExampleSentence(target=str(entry.get("target", "")),
                                          gloss=str(entry.get("gloss", ""))))
        else:
            raise CodecError(f"bad example sentence: {entry!r}")
    return result


def decode_hints(raw: Any) -> List[str]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        return [raw]
    return [str(h) for h in raw][:MAX_HINTS]


def decode_mnemonics(raw: Any) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        return [raw]
    return [str(m) for m in raw][:MAX_MNEMONICS]


def _legacy_status(row: Dict[str, Any]) -> Status:
    if row.get("archived"):
        return Status.ARCHIVED
    if row.get("checkLater"):
        return Status.CHECK_LATER
    return Status.REVIEW_NOW


# ---------- items ----------
def item_to_row(item: VocabularyItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "sourceText": item.source_text,
        "targetText": item.target_text,
        "originalLanguage": item.original_language.value,
        "partOfSpeech": item.part_of_speech,
        "exampleSentences": [{"target": s.target, "gloss": s.gloss} for s in item.example_sentences],
        "conjugationTable": encode_conjugations(item.conjugation_table),
        "hints": list(item.hints),
        "mnemonics": list(item.mnemonics),
        "review": item.review,
        "status": item.status.value,
        "isActive": item.is_active,
        "level": item.level.value,
        "reviewCount": item.review_count,
        "streak": item.streak,
        "lastReviewedAt": encode_instant(item.last_reviewed_at),
        "nextReviewAt": encode_instant(item.next_review_at),
    }


def row_to_item(row: Dict[str, Any]) -> VocabularyItem:
    """
    Current rows use camelCase names from item_to_row. Rows written by older
    versions (spanish/english, masteryLevel, nextReview, hint, conjugations and
    the archived/checkLater/reviewNow booleans) are migrated on the way in.
    """
    if not isinstance(row, dict):
        raise CodecError(f"item row must be an object, got {type(row).__name__}")
    try:
        level_raw = row.get("level") or row.get("masteryLevel") or MasteryLevel.REVIEWING.value
        level = _LEGACY_LEVELS.get(level_raw) or MasteryLevel(level_raw)
        status = Status(row["status"]) if row.get("status") else _legacy_status(row)
        next_review = decode_instant(row.get("nextReviewAt", row.get("nextReview")))
        return VocabularyItem(
            id=str(row.get("id") or new_id()),
            source_text=row.get("sourceText", row.get("english", "")),
            target_text=row.get("targetText", row.get("spanish", "")),
            original_language=Language(row.get("originalLanguage") or Language.ENGLISH.value),
            part_of_speech=row.get("partOfSpeech") or "",
            example_sentences=decode_sentences(row.get("exampleSentences")),
            conjugation_table=decode_conjugations(row.get("conjugationTable", row.get("conjugations"))),
            hints=decode_hints(row.get("hints", row.get("hint"))),
            mnemonics=decode_mnemonics(row.get("mnemonics")),
            review=bool(row.get("review", True)),
            status=status,
            is_active=bool(row.get("isActive", True)),
            level=level,
            review_count=int(row.get("reviewCount") or 0),
            streak=int(row.get("streak") or 0),
            last_reviewed_at=decode_instant(row.get("lastReviewedAt", row.get("lastReviewed"))),
            next_review_at=next_review or utcnow(),
        )
    except CodecError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise CodecError(f"bad item row: {e}") from e


# ---------- collection ----------
def dumps_collection(items: List[VocabularyItem]) -> str:
    return json.dumps([item_to_row(i) for i in items], ensure_ascii=False)


def loads_collection(payload: str) -> List[VocabularyItem]:
    """All or nothing: one bad row fails the whole payload."""
    try:
        rows = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise CodecError(f"collection is not valid JSON: {e}") from e
    if not isinstance(rows, list):
        raise CodecError("collection must be a JSON array")
    return [row_to_item(r) for r in rows]

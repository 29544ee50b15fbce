"""Vocabulary words, practice stats, collections and saving words from analyses."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .. import config
from ..backend import TableBackend
from ..errors import ErrorKind
from ..results import Failure, Outcome, Success, invalid, not_found
from ..schemas.vocabulary import (
    CollectionAddWordRequest,
    CreateCollectionRequest,
    CreateWordRequest,
    FromAnalysisRequest,
    PracticeRequest,
    UpdateCollectionRequest,
    UpdateWordRequest,
)
from ..validation import validate
from .ownership import backend_failure, delete_owned, find_owned, update_owned

logger = logging.getLogger(__name__)

WORDS = "vocabulary_words"
COLLECTIONS = "vocabulary_collections"
WORD_COLLECTIONS = "vocabulary_word_collections"

# related table -> (key on the word, columns)
RELATED = {
    "contexts": ("vocabulary_word_contexts", "id, vocabulary_word_id, context_text, source_text, position"),
    "synonyms": ("vocabulary_synonyms", "id, vocabulary_word_id, synonym_text, confidence_score"),
    "antonyms": ("vocabulary_antonyms", "id, vocabulary_word_id, antonym_text, confidence_score"),
    "collocations": (
        "vocabulary_collocations",
        "id, vocabulary_word_id, collocation_text, collocation_type, frequency_score",
    ),
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _page(params: Mapping[str, Any]) -> Optional[tuple[int, int]]:
    try:
        limit = int(params.get("limit") or config.VOCAB_PAGE_DEFAULT)
        offset = int(params.get("offset") or 0)
    except (TypeError, ValueError):
        return None
    return min(max(1, limit), config.PAGE_LIMIT_MAX), max(0, offset)


def _pagination(total: int, limit: int, offset: int) -> Dict[str, Any]:
    return {"total": total, "limit": limit, "offset": offset, "has_more": total > offset + limit}


def _attach_related(backend: TableBackend, words: List[dict]) -> List[dict]:
    ids = [w["id"] for w in words]
    for w in words:
        for key in RELATED:
            w[key] = []
    if not ids:
        return words
    by_id = {w["id"]: w for w in words}
    for key, (table, columns) in RELATED.items():
        res = backend.table(table).select(columns).in_("vocabulary_word_id", ids).execute()
        if not res.ok:
            logger.error(f"Could not load {key} for {len(ids)} words: {res.error.message}")
            continue
        for row in res.data:
            by_id[row.pop("vocabulary_word_id")][key].append(row)
    for w in words:
        w["contexts"].sort(key=lambda c: c.get("position") or 0)
    return words


def _word_exists(backend: TableBackend, user_id: str, word: str):
    return backend.table(WORDS).select("id").eq("word", word).eq("user_id", user_id).limit(1).execute()


# ---- words ----

def list_words(backend: TableBackend, user_id: str, params: Mapping[str, Any]) -> Outcome:
    page = _page(params)
    if page is None:
        return invalid("limit and offset must be integers", constraint="type")
    limit, offset = page

    q = backend.table(WORDS).select("*", count="exact").eq("user_id", user_id)
    collection_id = params.get("collection_id")
    if collection_id:
        members = (
            backend.table(WORD_COLLECTIONS)
            .select("vocabulary_word_id")
            .eq("collection_id", collection_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not members.ok:
            return backend_failure(members, "list collection members")
        q = q.in_("id", [m["vocabulary_word_id"] for m in members.data])
    for name, column in (("difficulty", "difficulty_level"), ("mastery_level", "mastery_level")):
        raw = params.get(name)
        if raw not in (None, ""):
            try:
                q = q.eq(column, int(raw))
            except ValueError:
                return invalid(f"{name} must be an integer", field=name, constraint="type")

    res = q.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
    if not res.ok:
        return backend_failure(res, "list words")
    words = _attach_related(backend, res.data)
    return Success(words, metadata={"pagination": _pagination(res.count or 0, limit, offset)})


def create_word(backend: TableBackend, user_id: str, body: Any) -> Outcome:
    req = validate(CreateWordRequest, body)
    if isinstance(req, Failure):
        return req

    existing = _word_exists(backend, user_id, req.word)
    if not existing.ok:
        return backend_failure(existing, "check word")
    if existing.data:
        return Failure(ErrorKind.CONFLICT, "Word already exists in your vocabulary")

    res = (
        backend.table(WORDS)
        .insert({**req.model_dump(exclude_none=True), "user_id": user_id})
        .select("*")
        .single()
        .execute()
    )
    if not res.ok:
        if res.error.is_unique_violation:
            return Failure(ErrorKind.CONFLICT, "Word already exists in your vocabulary")
        return backend_failure(res, "create word")
    logger.info(f"User {user_id} added word '{req.word}'")
    return Success(res.data)


def get_word(backend: TableBackend, user_id: str, word_id: str) -> Outcome:
    word = find_owned(backend, WORDS, word_id, user_id, "Word")
    if isinstance(word, Failure):
        return word
    return Success(_attach_related(backend, [word])[0])


def update_word(backend: TableBackend, user_id: str, word_id: str, body: Any) -> Outcome:
    req = validate(UpdateWordRequest, body)
    if isinstance(req, Failure):
        return req
    values = req.model_dump(exclude_unset=True)
    values["updated_at"] = _now_iso()
    row = update_owned(backend, WORDS, word_id, user_id, values, "Word")
    if isinstance(row, Failure):
        if row.kind is ErrorKind.CONFLICT:
            return Failure(ErrorKind.CONFLICT, "Word already exists in your vocabulary")
        return row
    return Success(row)


def delete_word(backend: TableBackend, user_id: str, word_id: str) -> Outcome:
    # Membership rows cascade with the word, so collect them first
    memberships = (
        backend.table(WORD_COLLECTIONS)
        .select("collection_id")
        .eq("vocabulary_word_id", word_id)
        .eq("user_id", user_id)
        .execute()
    )
    row = delete_owned(backend, WORDS, word_id, user_id, "Word")
    if isinstance(row, Failure):
        return row
    for m in memberships.data if memberships.ok else []:
        refresh_word_count(backend, m["collection_id"])
    return Success({"id": word_id})


def practice_word(backend: TableBackend, user_id: str, word_id: str, body: Any) -> Outcome:
    req = validate(PracticeRequest, body)
    if isinstance(req, Failure):
        return req
    word = find_owned(
        backend, WORDS, word_id, user_id, "Word", "id, mastery_level, review_count, correct_count"
    )
    if isinstance(word, Failure):
        return word

    correct = req.result == "correct"
    mastery = word["mastery_level"] + 1 if correct else word["mastery_level"] - 1
    mastery = min(max(mastery, config.MASTERY_MIN), config.MASTERY_MAX)
    stats = {
        "mastery_level": mastery,
        "review_count": word["review_count"] + 1,
        "correct_count": word["correct_count"] + (1 if correct else 0),
        "last_reviewed_at": _now_iso(),
    }
    row = update_owned(backend, WORDS, word_id, user_id, stats, "Word")
    if isinstance(row, Failure):
        return row
    return Success(
        {
            "updated_mastery_level": mastery,
            "review_count": stats["review_count"],
            "correct_count": stats["correct_count"],
        }
    )


# ---- collections ----

def refresh_word_count(backend: TableBackend, collection_id: str) -> None:
    res = backend.table(WORD_COLLECTIONS).select("id", count="exact").eq("collection_id", collection_id).execute()
    if not res.ok:
        logger.error(f"Could not count words in collection {collection_id}: {res.error.message}")
        return
    upd = (
        backend.table(COLLECTIONS)
        .update({"word_count": res.count or 0, "updated_at": _now_iso()})
        .eq("id", collection_id)
        .execute()
    )
    if not upd.ok:
        logger.error(f"Could not update word_count for collection {collection_id}: {upd.error.message}")


def list_collections(backend: TableBackend, user_id: str, params: Mapping[str, Any]) -> Outcome:
    page = _page(params)
    if page is None:
        return invalid("limit and offset must be integers", constraint="type")
    limit, offset = page

    q = backend.table(COLLECTIONS).select("*", count="exact").eq("user_id", user_id)
    if params.get("collection_type"):
        q = q.eq("collection_type", params["collection_type"])
    if params.get("is_public") not in (None, ""):
        q = q.eq("is_public", str(params["is_public"]).lower() == "true")
    res = q.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
    if not res.ok:
        return backend_failure(res, "list collections")
    return Success(res.data, metadata={"pagination": _pagination(res.count or 0, limit, offset)})


def create_collection(backend: TableBackend, user_id: str, body: Any) -> Outcome:
    req = validate(CreateCollectionRequest, body)
    if isinstance(req, Failure):
        return req
    res = (
        backend.table(COLLECTIONS)
        .insert({**req.model_dump(exclude_none=True), "user_id": user_id})
        .select("*")
        .single()
        .execute()
    )
    if not res.ok:
        return backend_failure(res, "create collection")
    return Success(res.data)


def get_collection(backend: TableBackend, user_id: str, collection_id: str) -> Outcome:
    row = find_owned(backend, COLLECTIONS, collection_id, user_id, "Collection")
    if isinstance(row, Failure):
        return row
    return Success(row)


def update_collection(backend: TableBackend, user_id: str, collection_id: str, body: Any) -> Outcome:
    req = validate(UpdateCollectionRequest, body)
    if isinstance(req, Failure):
        return req
    values = req.model_dump(exclude_unset=True)
    values["updated_at"] = _now_iso()
    row = update_owned(backend, COLLECTIONS, collection_id, user_id, values, "Collection")
    if isinstance(row, Failure):
        return row
    return Success(row)


def delete_collection(backend: TableBackend, user_id: str, collection_id: str) -> Outcome:
    row = delete_owned(backend, COLLECTIONS, collection_id, user_id, "Collection")
    if isinstance(row, Failure):
        return row
    return Success({"id": collection_id})


def list_collection_words(backend: TableBackend, user_id: str, collection_id: str) -> Outcome:
    collection = find_owned(backend, COLLECTIONS, collection_id, user_id, "Collection", "id")
    if isinstance(collection, Failure):
        return collection
    members = backend.table(WORD_COLLECTIONS).select("vocabulary_word_id").eq("collection_id", collection_id).execute()
    if not members.ok:
        return backend_failure(members, "list collection members")
    ids = [m["vocabulary_word_id"] for m in members.data]
    if not ids:
        return Success([])
    res = (
        backend.table(WORDS)
        .select("*")
        .eq("user_id", user_id)
        .in_("id", ids)
        .order("created_at", desc=True)
        .execute()
    )
    if not res.ok:
        return backend_failure(res, "list collection words")
    return Success(res.data)


def add_collection_word(backend: TableBackend, user_id: str, collection_id: str, body: Any) -> Outcome:
    req = validate(CollectionAddWordRequest, body)
    if isinstance(req, Failure):
        return req
    collection = find_owned(backend, COLLECTIONS, collection_id, user_id, "Collection", "id")
    if isinstance(collection, Failure):
        return collection
    word = find_owned(backend, WORDS, req.word_id, user_id, "Word")
    if isinstance(word, Failure):
        return word

    res = backend.table(WORD_COLLECTIONS).insert(
        {"vocabulary_word_id": req.word_id, "collection_id": collection_id, "user_id": user_id}
    ).execute()
    if not res.ok:
        if res.error.is_unique_violation:
            return Failure(ErrorKind.CONFLICT, "Word is already in this collection")
        return backend_failure(res, "add word to collection")
    refresh_word_count(backend, collection_id)
    return Success(word)


def remove_collection_word(backend: TableBackend, user_id: str, collection_id: str, word_id: str) -> Outcome:
    collection = find_owned(backend, COLLECTIONS, collection_id, user_id, "Collection", "id")
    if isinstance(collection, Failure):
        return collection
    res = (
        backend.table(WORD_COLLECTIONS)
        .delete()
        .eq("collection_id", collection_id)
        .eq("vocabulary_word_id", word_id)
        .eq("user_id", user_id)
        .execute()
    )
    if not res.ok:
        return backend_failure(res, "remove word from collection")
    if not res.data:
        return not_found("Word")
    refresh_word_count(backend, collection_id)
    return Success({"wordId": word_id, "removedFromCollection": collection_id})


# ---- from analysis ----

def stored_text(content: str, content_type: str) -> str:
    """The text kept for a saved analysis fragment."""
    content = content.strip()
    if content_type == "word":
        return content.split()[0] if content.split() else ""
    if content_type == "paragraph":
        return content[: config.FROM_ANALYSIS_PARAGRAPH_CHARS]
    return content


def save_from_analysis(backend: TableBackend, user_id: str, body: Any) -> Outcome:
    req = validate(FromAnalysisRequest, body)
    if isinstance(req, Failure):
        return req

    text = stored_text(req.content, req.content_type).lower()
    existing = _word_exists(backend, user_id, text)
    if not existing.ok:
        return backend_failure(existing, "check content")
    if existing.data:
        return Failure(ErrorKind.CONFLICT, "Content already exists in your vocabulary")

    stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    row = {
        "word": text,
        "content_type": req.content_type,
        "definition_en": req.definition_en or None,
        "definition_vi": req.definition_vi or None,
        "vietnamese_translation": req.vietnamese_translation or None,
        "difficulty_level": req.difficulty_level,
        "context_notes": req.context_notes or None,
        "personal_notes": req.personal_notes or None,
        "source_type": "analysis",
        "source_reference": f"{req.analysis_type or req.content_type}-analysis-{stamp}",
        "user_id": user_id,
        "mastery_level": 0,
        "review_count": 0,
        "correct_count": 0,
        "status": "active",
    }
    res = backend.table(WORDS).insert(row).select("*").single().execute()
    if not res.ok:
        if res.error.is_unique_violation:
            return Failure(ErrorKind.CONFLICT, "Content already exists in your vocabulary")
        return backend_failure(res, "save from analysis")
    return Success(res.data)


def suggest_content_type(content: Optional[str]) -> Outcome:
    if not content or not content.strip():
        return invalid("content parameter is required", field="content", constraint="required")
    text = content.strip()
    n = len(re.split(r"\s+", text))
    if n == 1:
        suggested, confidence = "word", 0.9
    elif n <= 5:
        suggested, confidence = "phrase", 0.8
    elif n <= 20:
        suggested, confidence = "sentence", 0.85
    else:
        suggested, confidence = "paragraph", 0.9
    alternatives = [
        {"type": "word", "confidence": 0.9 if n == 1 else 0.1},
        {"type": "phrase", "confidence": 0.8 if n <= 5 else 0.2},
        {"type": "sentence", "confidence": 0.85 if n <= 20 else 0.3},
        {"type": "paragraph", "confidence": 0.9 if n > 20 else 0.1},
    ]
    alternatives.sort(key=lambda a: a["confidence"], reverse=True)
    return Success(
        {
            "content": text,
            "word_count": n,
            "suggested_content_type": suggested,
            "confidence": confidence,
            "alternatives": alternatives,
        }
    )

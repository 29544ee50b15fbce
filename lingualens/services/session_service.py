"""Analysis sessions, their settings, tags and ordered analyses."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .. import config
from ..backend import TableBackend
from ..errors import ErrorKind
from ..results import Failure, Outcome, Success, invalid, not_found
from ..schemas.sessions import (
    ANALYSIS_TYPES,
    DEFAULT_SESSION_SETTINGS,
    AddSessionAnalysisRequest,
    CreateSessionRequest,
    ReorderAnalysesRequest,
    SessionSettingsPayload,
    UpdateSessionRequest,
)
from ..validation import validate
from .ownership import backend_failure, delete_owned, find_owned, update_owned

logger = logging.getLogger(__name__)

SESSIONS = "analysis_sessions"
SETTINGS = "session_settings"
ANALYSES = "session_analyses"
TAGS = "session_tags"
TAG_RELATIONS = "session_tag_relations"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _int_param(params: Mapping[str, Any], name: str, default: int) -> Optional[int]:
    raw = params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


# ---- counters ----

def refresh_counters(backend: TableBackend, session_id: str) -> None:
    """Recompute a session's analysis counters from its rows."""
    res = backend.table(ANALYSES).select("analysis_type").eq("session_id", session_id).execute()
    if not res.ok:
        logger.error(f"Could not recount analyses for session {session_id}: {res.error.message}")
        return
    counts = {t: 0 for t in ANALYSIS_TYPES}
    for row in res.data:
        if row["analysis_type"] in counts:
            counts[row["analysis_type"]] += 1
    values = {f"{t}_analyses_count": n for t, n in counts.items()}
    values["total_analyses"] = len(res.data)
    values["updated_at"] = _now_iso()
    upd = backend.table(SESSIONS).update(values).eq("id", session_id).execute()
    if not upd.ok:
        logger.error(f"Could not update counters for session {session_id}: {upd.error.message}")


# ---- tags ----

def _tags_by_session(backend: TableBackend, session_ids: List[str]) -> Dict[str, List[dict]]:
    out: Dict[str, List[dict]] = {sid: [] for sid in session_ids}
    if not session_ids:
        return out
    rel = backend.table(TAG_RELATIONS).select("session_id, tag_id").in_("session_id", session_ids).execute()
    if not rel.ok or not rel.data:
        return out
    tag_ids = sorted({r["tag_id"] for r in rel.data})
    tags = backend.table(TAGS).select("id, tag_name, tag_color, tag_description").in_("id", tag_ids).execute()
    if not tags.ok:
        return out
    by_id = {t["id"]: t for t in tags.data}
    for r in rel.data:
        tag = by_id.get(r["tag_id"])
        if tag:
            out[r["session_id"]].append(tag)
    return out


def _session_ids_with_tags(backend: TableBackend, user_id: str, tag_names: List[str]) -> List[str]:
    tags = backend.table(TAGS).select("id").eq("user_id", user_id).in_("tag_name", tag_names).execute()
    if not tags.ok or not tags.data:
        return []
    rel = backend.table(TAG_RELATIONS).select("session_id").in_("tag_id", [t["id"] for t in tags.data]).execute()
    if not rel.ok:
        return []
    return sorted({r["session_id"] for r in rel.data})


# ---- sessions ----

def list_sessions(backend: TableBackend, user_id: str, params: Mapping[str, Any]) -> Outcome:
    page = _int_param(params, "page", 1)
    per_page = _int_param(params, "per_page", config.SESSIONS_PER_PAGE_DEFAULT)
    if page is None or per_page is None:
        return invalid("page and per_page must be integers", constraint="type")
    page = max(1, page)
    per_page = min(max(1, per_page), config.PAGE_LIMIT_MAX)

    q = backend.table(SESSIONS).select("*", count="exact").eq("user_id", user_id)

    status = params.get("status") or "all"
    if status != "all":
        q = q.eq("status", status)
    session_type = params.get("type") or "all"
    if session_type != "all":
        q = q.eq("session_type", session_type)
    search = (params.get("search") or "").strip()
    if search:
        q = q.or_ilike(["title", "description"], f"%{search}%")
    tag_names = [t.strip() for t in (params.get("tags") or "").split(",") if t.strip()]
    if tag_names:
        q = q.in_("id", _session_ids_with_tags(backend, user_id, tag_names))
    if params.get("date_from"):
        q = q.gte("created_at", params["date_from"])
    if params.get("date_to"):
        q = q.lte("created_at", params["date_to"])

    offset = (page - 1) * per_page
    res = q.order("last_accessed_at", desc=True).range(offset, offset + per_page - 1).execute()
    if not res.ok:
        if res.error.code == "22007":
            return invalid("date_from and date_to must be ISO 8601 timestamps", constraint="type")
        return backend_failure(res, "list sessions")

    sessions = res.data or []
    tags = _tags_by_session(backend, [s["id"] for s in sessions])
    total = res.count or 0
    return Success(
        {
            "sessions": [{**s, "tags": tags.get(s["id"], [])} for s in sessions],
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "total_pages": math.ceil(total / per_page),
            },
        }
    )


def create_session(backend: TableBackend, user_id: str, body: Any) -> Outcome:
    req = validate(CreateSessionRequest, body)
    if isinstance(req, Failure):
        return req

    res = backend.table(SESSIONS).insert(
        {
            "user_id": user_id,
            "title": req.title,
            "description": req.description,
            "session_type": req.session_type,
            "status": "active",
            "total_analyses": 0,
            "word_analyses_count": 0,
            "sentence_analyses_count": 0,
            "paragraph_analyses_count": 0,
        }
    ).select("*").single().execute()
    if not res.ok:
        return backend_failure(res, "create session")
    session = res.data

    # settings and tags are best effort: the session itself is already created
    if req.settings:
        settings = validate(SessionSettingsPayload, req.settings)
        if isinstance(settings, Failure):
            logger.error(f"Error creating session settings for {session['id']}: {settings.message}")
        else:
            ins = backend.table(SETTINGS).insert(
                {"session_id": session["id"], "user_id": user_id, **settings.model_dump(exclude_unset=True)}
            ).execute()
            if not ins.ok:
                logger.error(f"Error creating session settings for {session['id']}: {ins.error.message}")
    if req.tag_ids:
        owned = backend.table(TAGS).select("id").eq("user_id", user_id).in_("id", req.tag_ids).execute()
        tag_ids = [t["id"] for t in owned.data] if owned.ok else []
        if len(tag_ids) != len(set(req.tag_ids)):
            logger.error(f"Error adding session tags for {session['id']}: unknown or foreign tag ids")
        if tag_ids:
            rel = backend.table(TAG_RELATIONS).insert(
                [{"session_id": session["id"], "tag_id": t} for t in tag_ids]
            ).execute()
            if not rel.ok:
                logger.error(f"Error adding session tags for {session['id']}: {rel.error.message}")

    logger.info(f"Created session {session['id']} for user {user_id}")
    return Success(session)


def get_session(backend: TableBackend, user_id: str, session_id: str) -> Outcome:
    session = find_owned(backend, SESSIONS, session_id, user_id, "Session")
    if isinstance(session, Failure):
        return session

    settings = backend.table(SETTINGS).select("*").eq("session_id", session_id).maybe_single().execute()
    analyses = backend.table(ANALYSES).select("*").eq("session_id", session_id).order("position").execute()
    if not settings.ok:
        return backend_failure(settings, "get session settings")
    if not analyses.ok:
        return backend_failure(analyses, "get session analyses")
    tags = _tags_by_session(backend, [session_id])
    return Success(
        {**session, "settings": settings.data, "analyses": analyses.data, "tags": tags.get(session_id, [])}
    )


def update_session(backend: TableBackend, user_id: str, session_id: str, body: Any) -> Outcome:
    req = validate(UpdateSessionRequest, body)
    if isinstance(req, Failure):
        return req
    values = req.model_dump(exclude_unset=True)
    values["last_accessed_at"] = _now_iso()
    values["updated_at"] = values["last_accessed_at"]
    row = update_owned(backend, SESSIONS, session_id, user_id, values, "Session")
    if isinstance(row, Failure):
        return row
    return Success(row)


def delete_session(backend: TableBackend, user_id: str, session_id: str) -> Outcome:
    row = delete_owned(backend, SESSIONS, session_id, user_id, "Session")
    if isinstance(row, Failure):
        return row
    logger.info(f"Deleted session {session_id} for user {user_id}")
    return Success({"id": session_id})


# ---- settings ----

def _owned_session(backend: TableBackend, user_id: str, session_id: str) -> Optional[Failure]:
    owned = find_owned(backend, SESSIONS, session_id, user_id, "Session", "id")
    return owned if isinstance(owned, Failure) else None


def get_settings(backend: TableBackend, user_id: str, session_id: str) -> Outcome:
    denied = _owned_session(backend, user_id, session_id)
    if denied:
        return denied
    res = backend.table(SETTINGS).select("*").eq("session_id", session_id).maybe_single().execute()
    if not res.ok:
        return backend_failure(res, "get settings")
    if res.data is None:
        return Success({"session_id": session_id, "user_id": user_id, **DEFAULT_SESSION_SETTINGS})
    return Success(res.data)


def upsert_settings(backend: TableBackend, user_id: str, session_id: str, body: Any) -> Outcome:
    denied = _owned_session(backend, user_id, session_id)
    if denied:
        return denied
    req = validate(SessionSettingsPayload, body)
    if isinstance(req, Failure):
        return req
    values = req.model_dump(exclude_unset=True)

    existing = backend.table(SETTINGS).select("id").eq("session_id", session_id).maybe_single().execute()
    if not existing.ok:
        return backend_failure(existing, "upsert settings")
    if existing.data is None:
        res = backend.table(SETTINGS).insert(
            {"session_id": session_id, "user_id": user_id, **values}
        ).select("*").single().execute()
    else:
        values["updated_at"] = _now_iso()
        res = backend.table(SETTINGS).update(values).eq("id", existing.data["id"]).select("*").single().execute()
    if not res.ok:
        return backend_failure(res, "upsert settings")
    return Success(res.data)


def update_settings(backend: TableBackend, user_id: str, session_id: str, body: Any) -> Outcome:
    denied = _owned_session(backend, user_id, session_id)
    if denied:
        return denied
    req = validate(SessionSettingsPayload, body)
    if isinstance(req, Failure):
        return req
    values = req.model_dump(exclude_unset=True)
    values["updated_at"] = _now_iso()
    res = backend.table(SETTINGS).update(values).eq("session_id", session_id).eq("user_id", user_id).execute()
    if not res.ok:
        return backend_failure(res, "update settings")
    if not res.data:
        return Failure(ErrorKind.NOT_FOUND, "Session settings not found")
    return Success(res.data[0])


def delete_settings(backend: TableBackend, user_id: str, session_id: str) -> Outcome:
    denied = _owned_session(backend, user_id, session_id)
    if denied:
        return denied
    res = backend.table(SETTINGS).delete().eq("session_id", session_id).eq("user_id", user_id).execute()
    if not res.ok:
        return backend_failure(res, "delete settings")
    return Success({"deleted": True})


# ---- session analyses ----

def list_analyses(backend: TableBackend, user_id: str, session_id: str) -> Outcome:
    denied = _owned_session(backend, user_id, session_id)
    if denied:
        return denied
    res = (
        backend.table(ANALYSES)
        .select("*")
        .eq("session_id", session_id)
        .eq("user_id", user_id)
        .order("position")
        .execute()
    )
    if not res.ok:
        return backend_failure(res, "list session analyses")
    return Success(res.data)


def add_analysis(backend: TableBackend, user_id: str, session_id: str, body: Any) -> Outcome:
    denied = _owned_session(backend, user_id, session_id)
    if denied:
        return denied
    req = validate(AddSessionAnalysisRequest, body)
    if isinstance(req, Failure):
        return req

    last = (
        backend.table(ANALYSES)
        .select("position")
        .eq("session_id", session_id)
        .order("position", desc=True)
        .limit(1)
        .execute()
    )
    if not last.ok:
        return backend_failure(last, "next analysis position")
    position = (last.data[0]["position"] or 0) + 1 if last.data else 0

    res = backend.table(ANALYSES).insert(
        {
            **req.model_dump(exclude_none=True),
            "session_id": session_id,
            "user_id": user_id,
            "position": position,
        }
    ).select("*").single().execute()
    if not res.ok:
        if res.error.is_unique_violation:
            return Failure(ErrorKind.CONFLICT, "Analysis with this ID already exists", code="DUPLICATE_ID")
        return backend_failure(res, "add session analysis")

    refresh_counters(backend, session_id)
    return Success(res.data)


def reorder_analyses(backend: TableBackend, user_id: str, session_id: str, body: Any) -> Outcome:
    denied = _owned_session(backend, user_id, session_id)
    if denied:
        return denied
    req = validate(ReorderAnalysesRequest, body)
    if isinstance(req, Failure):
        return req

    updated = 0
    for position, analysis_id in enumerate(req.analysis_ids):
        res = (
            backend.table(ANALYSES)
            .update({"position": position, "updated_at": _now_iso()})
            .eq("id", analysis_id)
            .eq("session_id", session_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not res.ok:
            return backend_failure(res, "reorder session analyses")
        updated += len(res.data or [])
    return Success({"updated": True, "count": updated})


def delete_analysis(backend: TableBackend, user_id: str, session_id: str, analysis_id: str) -> Outcome:
    row = find_owned(backend, ANALYSES, analysis_id, user_id, "Analysis", "id, session_id")
    if isinstance(row, Failure):
        return row
    if row["session_id"] != session_id:
        return not_found("Analysis")
    deleted = delete_owned(backend, ANALYSES, analysis_id, user_id, "Analysis")
    if isinstance(deleted, Failure):
        return deleted
    refresh_counters(backend, session_id)
    return Success({"id": analysis_id})

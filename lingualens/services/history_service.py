"""
Analysis history: storing client analyses, listing recent ones and merging a
client's local history with what is stored.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..backend import TableBackend
from ..errors import ErrorKind
from ..results import Failure, Outcome, Success, invalid
from ..schemas.sessions import AnalysisAddRequest, AnalysisBatchRequest, RecentAnalysesQuery, SyncRequest
from ..validation import validate
from .ownership import backend_failure, find_owned
from .session_service import ANALYSES, SESSIONS, refresh_counters

logger = logging.getLogger(__name__)

_DUPLICATE = "Analysis with this ID already exists"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> Optional[datetime]:
    """Epoch milliseconds or ISO 8601 string to an aware datetime."""
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        v = value.strip()
        if v.endswith("Z"):
            v = v[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(v)
        except ValueError:
            return None
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return None


def _epoch_ms(iso: Optional[str]) -> int:
    dt = _parse_ts(iso) if iso else None
    return round((dt or _now()).timestamp() * 1000)


def generate_summary(item: Mapping[str, Any]) -> str:
    """One-line summary of a history item for list views."""
    kind = item.get("type") or "analysis"
    text = item.get("input") or ""
    result = item.get("result") if isinstance(item.get("result"), dict) else {}
    if kind == "word":
        root = (result.get("definitions") or {}).get("root_meaning")
        if root:
            return f"Word: {text} - {root}"
    elif kind == "sentence":
        idea = (result.get("semantics") or {}).get("main_idea")
        if idea:
            return f"Sentence analysis: {idea}"
    elif kind == "paragraph":
        topic = (result.get("content_analysis") or {}).get("main_topic")
        if topic:
            return f"Paragraph: {topic}"
    return f"{kind} analysis of: {text[:50]}"


def history_item(row: Mapping[str, Any], session_titles: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Shape a stored analysis row as a client history item."""
    kind = row.get("analysis_type")
    data = row.get("analysis_data")
    text = ""
    if isinstance(data, dict):
        meta = data.get("meta") or {}
        if isinstance(meta, dict) and meta.get(kind):
            text = meta[kind]
    session_id = row.get("session_id")
    return {
        "id": row.get("id") or "",
        "type": kind,
        "input": text or row.get("analysis_title") or "",
        "result": data,
        "timestamp": _epoch_ms(row.get("created_at")),
        "session_id": session_id,
        "session_title": (session_titles or {}).get(session_id) if session_id else None,
        "analysis_id": row.get("analysis_id"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


def _session_titles(backend: TableBackend, session_ids: Iterable[Optional[str]]) -> Dict[str, str]:
    ids = sorted({s for s in session_ids if s})
    if not ids:
        return {}
    res = backend.table(SESSIONS).select("id, title").in_("id", ids).execute()
    return {r["id"]: r["title"] for r in res.data} if res.ok else {}


def _row_from_request(req: AnalysisAddRequest, user_id: str) -> Dict[str, Any]:
    created = _parse_ts(req.timestamp) or _now()
    return {
        "analysis_id": req.id,
        "session_id": req.session_id,
        "user_id": user_id,
        "analysis_type": req.type,
        "analysis_title": req.title or f"{req.type} Analysis",
        "analysis_summary": req.summary,
        "analysis_data": req.result,
        "created_at": created.isoformat(),
        "updated_at": _now().isoformat(),
        "position": req.position or 0,
    }


# ---- add ----

def add_analysis(backend: TableBackend, user_id: str, body: Any) -> Outcome:
    req = validate(AnalysisAddRequest, body)
    if isinstance(req, Failure):
        return req
    session = find_owned(backend, SESSIONS, req.session_id, user_id, "Session", "id")
    if isinstance(session, Failure):
        return session

    res = backend.table(ANALYSES).insert(_row_from_request(req, user_id)).select("*").single().execute()
    if not res.ok:
        if res.error.is_unique_violation:
            logger.info(f"Duplicate analysis id {req.id} from user {user_id}")
            return Failure(ErrorKind.CONFLICT, _DUPLICATE, code="DUPLICATE_ID")
        return backend_failure(res, "add analysis")
    refresh_counters(backend, req.session_id)
    return Success({"analysis": res.data})


def add_analyses_batch(backend: TableBackend, user_id: str, body: Any) -> Outcome:
    req = validate(AnalysisBatchRequest, body)
    if isinstance(req, Failure):
        return req

    session_ids = sorted({a.session_id for a in req.analyses})
    for sid in session_ids:
        session = find_owned(backend, SESSIONS, sid, user_id, "Session", "id")
        if isinstance(session, Failure):
            return session

    # upsert must not take over another user's analysis id
    ids = [a.id for a in req.analyses]
    existing = backend.table(ANALYSES).select("analysis_id, user_id").in_("analysis_id", ids).execute()
    if not existing.ok:
        return backend_failure(existing, "batch add analyses")
    if any(r["user_id"] != user_id for r in existing.data):
        return Failure(ErrorKind.CONFLICT, _DUPLICATE, code="DUPLICATE_ID")

    rows = [_row_from_request(a, user_id) for a in req.analyses]
    res = backend.table(ANALYSES).upsert(rows, on_conflict="analysis_id").select("*").execute()
    if not res.ok:
        return backend_failure(res, "batch add analyses")
    for sid in session_ids:
        refresh_counters(backend, sid)
    return Success({"analyses": res.data, "count": len(res.data)})


# ---- recent ----

def recent_analyses(backend: TableBackend, user_id: str, params: Mapping[str, Any]) -> Outcome:
    """Recent history for GET (query string) or POST (JSON body) callers."""
    raw = dict(params)
    if "date_range" not in raw and raw.get("date_start") and raw.get("date_end"):
        raw["date_range"] = {"start": raw["date_start"], "end": raw["date_end"]}
    q = validate(RecentAnalysesQuery, raw)
    if isinstance(q, Failure):
        return q

    query = backend.table(ANALYSES).select("*", count="exact").eq("user_id", user_id)
    if q.type != "all":
        query = query.eq("analysis_type", q.type)
    if q.session_id:
        query = query.eq("session_id", q.session_id)
    if q.date_range:
        query = query.gte("created_at", q.date_range.start).lte("created_at", q.date_range.end)
    if q.search:
        query = query.or_ilike(["analysis_title", "analysis_summary"], f"%{q.search}%")

    res = (
        query.order(q.sort_by, desc=q.sort_order == "desc")
        .range(q.offset, q.offset + q.limit - 1)
        .execute()
    )
    if not res.ok:
        if res.error.code == "22007":
            return invalid("date range must use ISO 8601 timestamps", field="date_range", constraint="type")
        return backend_failure(res, "recent analyses")

    titles = _session_titles(backend, (r.get("session_id") for r in res.data))
    total = res.count or 0
    return Success(
        {
            "analyses": [history_item(r, titles) for r in res.data],
            "pagination": {
                "total": total,
                "limit": q.limit,
                "offset": q.offset,
                "has_more": q.offset + q.limit < total,
            },
        }
    )


# ---- sync ----

def _same(local: Mapping[str, Any], remote: Mapping[str, Any]) -> bool:
    return (
        local.get("timestamp") == remote.get("timestamp")
        and local.get("input") == remote.get("input")
        and json.dumps(local.get("result"), sort_keys=True) == json.dumps(remote.get("result"), sort_keys=True)
    )


def sync_history(backend: TableBackend, user_id: str, body: Any) -> Outcome:
    """
    Merge a client's local history with stored history.

    Items are matched on the client id (stored as analysis_id). Local-only
    items are uploaded; on a conflict the stored item wins in merged_history.
    """
    req = validate(SyncRequest, body)
    if isinstance(req, Failure):
        return req

    query = backend.table(ANALYSES).select("*").eq("user_id", user_id).order("created_at", desc=True)
    if req.last_sync_timestamp:
        query = query.gt("created_at", _parse_ts(req.last_sync_timestamp).isoformat())
    res = query.execute()
    if not res.ok:
        return backend_failure(res, "sync history")

    remote: List[Dict[str, Any]] = []
    for row in res.data:
        item = history_item(row)
        item["id"] = row.get("analysis_id") or item["id"]
        remote.append(
            {k: item[k] for k in ("id", "type", "input", "result", "timestamp")}
        )
    remote_by_id = {r["id"]: r for r in remote}

    local = [i.model_dump() for i in req.local_history]
    conflicts = [
        {"local": item, "remote": remote_by_id[item["id"]]}
        for item in local
        if item["id"] in remote_by_id and not _same(item, remote_by_id[item["id"]])
    ]

    uploaded = 0
    local_only = [item for item in local if item["id"] not in remote_by_id]
    for item in local_only:
        ins = backend.table(ANALYSES).insert(
            {
                "user_id": user_id,
                "analysis_type": item["type"],
                "analysis_id": item["id"],
                "analysis_title": item["input"][:100],
                "analysis_summary": generate_summary(item),
                "analysis_data": item.get("result"),
                "created_at": _parse_ts(item["timestamp"]).isoformat(),
                "position": 0,
            }
        ).execute()
        if ins.ok:
            uploaded += 1
        else:
            logger.error(f"Failed to upload local item {item['id']} for user {user_id}: {ins.error.message}")

    merged = sorted(remote + local_only, key=lambda i: i["timestamp"], reverse=True)
    logger.info(f"Synced history for {user_id}: {uploaded} uploaded, {len(conflicts)} conflicts")
    return Success(
        {
            "uploaded": uploaded,
            "downloaded": len(remote),
            "conflicts": conflicts,
            "merged_history": merged,
        }
    )

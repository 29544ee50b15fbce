from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..auth import AuthUser
from ..backend import TableBackend
from ..db import get_backend
from ..deps import get_current_user
from ..results import respond
from ..services import session_service
from ..validation import read_json

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("")
def list_sessions(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    """Sessions of the caller, filtered and paginated by query parameters."""
    return respond(session_service.list_sessions(backend, user.id, dict(request.query_params)))


@router.post("")
def create_session(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(session_service.create_session(backend, user.id, body))


@router.get("/{session_id}")
def get_session(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(session_service.get_session(backend, user.id, session_id))


@router.patch("/{session_id}")
def update_session(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(session_service.update_session(backend, user.id, session_id, body))


@router.delete("/{session_id}")
def delete_session(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(session_service.delete_session(backend, user.id, session_id))


# ---- settings ----

@router.get("/{session_id}/settings")
def get_settings(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(session_service.get_settings(backend, user.id, session_id))


@router.post("/{session_id}/settings")
def upsert_settings(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(session_service.upsert_settings(backend, user.id, session_id, body))


@router.patch("/{session_id}/settings")
def update_settings(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(session_service.update_settings(backend, user.id, session_id, body))


@router.delete("/{session_id}/settings")
def delete_settings(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(session_service.delete_settings(backend, user.id, session_id))


# ---- analyses ----

@router.get("/{session_id}/analyses")
def list_analyses(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(session_service.list_analyses(backend, user.id, session_id))


@router.post("/{session_id}/analyses")
def add_analysis(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(session_service.add_analysis(backend, user.id, session_id, body))


@router.patch("/{session_id}/analyses")
def reorder_analyses(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(session_service.reorder_analyses(backend, user.id, session_id, body))


@router.delete("/{session_id}/analyses/{analysis_id}")
def delete_analysis(
    session_id: str,
    analysis_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(session_service.delete_analysis(backend, user.id, session_id, analysis_id))

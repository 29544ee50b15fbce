from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..auth import AuthUser
from ..backend import TableBackend
from ..db import get_backend
from ..deps import get_current_user
from ..results import respond
from ..services import history_service
from ..validation import read_json, validate
from ..schemas.sessions import RecentAnalysesQuery

router = APIRouter(prefix="/api/analyses", tags=["analyses"])


@router.post("/add")
def add_analysis(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(history_service.add_analysis(backend, user.id, body))


@router.put("/add")
def add_analyses_batch(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(history_service.add_analyses_batch(backend, user.id, body))


@router.get("/recent")
def recent_analyses(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(history_service.recent_analyses(backend, user.id, dict(request.query_params)))


@router.post("/recent")
def search_recent_analyses(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    """Same listing as GET, with filters in a JSON body."""
    if body is None:
        body = {}
    if not isinstance(body, dict):
        # validate() reports the malformed body
        return respond(validate(RecentAnalysesQuery, body))
    return respond(history_service.recent_analyses(backend, user.id, body))


@router.post("/sync")
def sync_history(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(history_service.sync_history(backend, user.id, body))

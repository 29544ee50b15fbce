from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request

from ..auth import AuthUser
from ..backend import TableBackend
from ..db import get_backend
from ..deps import get_current_user
from ..results import respond
from ..services import vocabulary_service
from ..validation import read_json

router = APIRouter(prefix="/api/vocabulary", tags=["vocabulary"])


# ---- words ----

@router.get("/words")
def list_words(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.list_words(backend, user.id, dict(request.query_params)))


@router.post("/words")
def create_word(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(vocabulary_service.create_word(backend, user.id, body))


@router.get("/words/{word_id}")
def get_word(
    word_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.get_word(backend, user.id, word_id))


@router.patch("/words/{word_id}")
def update_word(
    word_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(vocabulary_service.update_word(backend, user.id, word_id, body))


@router.delete("/words/{word_id}")
def delete_word(
    word_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.delete_word(backend, user.id, word_id))


@router.post("/words/{word_id}/practice")
def practice_word(
    word_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    """Record one review; mastery moves one step up or down."""
    return respond(vocabulary_service.practice_word(backend, user.id, word_id, body))


# ---- collections ----

@router.get("/collections")
def list_collections(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.list_collections(backend, user.id, dict(request.query_params)))


@router.post("/collections")
def create_collection(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(vocabulary_service.create_collection(backend, user.id, body))


@router.get("/collections/{collection_id}")
def get_collection(
    collection_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.get_collection(backend, user.id, collection_id))


@router.patch("/collections/{collection_id}")
def update_collection(
    collection_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(
        vocabulary_service.update_collection(backend, user.id, collection_id, body)
    )


@router.delete("/collections/{collection_id}")
def delete_collection(
    collection_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.delete_collection(backend, user.id, collection_id))


@router.get("/collections/{collection_id}/words")
def list_collection_words(
    collection_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.list_collection_words(backend, user.id, collection_id))


@router.post("/collections/{collection_id}/words")
def add_collection_word(
    collection_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(
        vocabulary_service.add_collection_word(backend, user.id, collection_id, body)
    )


@router.delete("/collections/{collection_id}/words/{word_id}")
def remove_collection_word(
    collection_id: str,
    word_id: str,
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
):
    return respond(vocabulary_service.remove_collection_word(backend, user.id, collection_id, word_id))


# ---- from analysis ----

@router.post("/from-analysis")
def save_from_analysis(
    user: AuthUser = Depends(get_current_user),
    backend: TableBackend = Depends(get_backend),
    body: Any = Depends(read_json),
):
    return respond(vocabulary_service.save_from_analysis(backend, user.id, body))


@router.get("/from-analysis")
def suggest_content_type(content: Optional[str] = None, user: AuthUser = Depends(get_current_user)):
    return respond(vocabulary_service.suggest_content_type(content))

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..auth import AuthUser
from ..deps import get_ai_service, get_current_user
from ..errors import ErrorKind
from ..results import Failure, capability, respond
from ..services import analysis_service
from ..services.ai_service import AIService
from ..validation import read_json

router = APIRouter(prefix="/api/ai", tags=["ai"])

_UNSUPPORTED = ["PUT", "PATCH", "DELETE"]


def method_not_allowed() -> JSONResponse:
    return respond(Failure(ErrorKind.METHOD_NOT_ALLOWED, "Method not allowed"))


async def _analyze(kind: str, request: Request, user: AuthUser, ai: AIService):
    return respond(await analysis_service.analyze(ai, user.id, kind, await read_json(request)))


async def _capability(user: AuthUser, ai: AIService):
    outcome = await analysis_service.usage(ai, user.id)
    if isinstance(outcome, Failure):
        return respond(outcome)
    return capability(outcome.data)


@router.post("/analyze-word")
async def analyze_word(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    return await _analyze("word", request, user, ai)


@router.get("/analyze-word")
async def analyze_word_capability(
    user: AuthUser = Depends(get_current_user), ai: AIService = Depends(get_ai_service)
):
    return await _capability(user, ai)


@router.post("/analyze-sentence")
async def analyze_sentence(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    return await _analyze("sentence", request, user, ai)


@router.get("/analyze-sentence")
async def analyze_sentence_capability(
    user: AuthUser = Depends(get_current_user), ai: AIService = Depends(get_ai_service)
):
    return await _capability(user, ai)


@router.post("/analyze-paragraph")
async def analyze_paragraph(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    return await _analyze("paragraph", request, user, ai)


@router.get("/analyze-paragraph")
async def analyze_paragraph_capability(
    user: AuthUser = Depends(get_current_user), ai: AIService = Depends(get_ai_service)
):
    return await _capability(user, ai)


@router.get("/check-usage")
async def check_usage(
    userId: Optional[str] = None,
    user: AuthUser = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    """Usage and quota for the caller, as reported by the AI gateway."""
    return respond(await analysis_service.check_usage(ai, user.id, userId))


@router.post("/generate-text")
async def generate_text(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    return respond(await analysis_service.generate_text(ai, user.id, await read_json(request)))


@router.post("/generate-embedding")
async def generate_embedding(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
):
    return respond(await analysis_service.generate_embedding(ai, user.id, await read_json(request)))


@router.get("/provider-status")
async def provider_status(
    user: AuthUser = Depends(get_current_user), ai: AIService = Depends(get_ai_service)
):
    return respond(await analysis_service.provider_status(ai))


@router.api_route("/check-usage", methods=["POST", *_UNSUPPORTED], include_in_schema=False)
@router.api_route("/generate-text", methods=["GET", *_UNSUPPORTED], include_in_schema=False)
@router.api_route("/generate-embedding", methods=["GET", *_UNSUPPORTED], include_in_schema=False)
@router.api_route("/provider-status", methods=["POST", *_UNSUPPORTED], include_in_schema=False)
async def unsupported_method():
    return method_not_allowed()

"""Handlers for the AI endpoints: validate, delegate to the AI service, shape the result."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..errors import ErrorKind, LinguaError, handle_error
from ..results import Failure, Outcome, Success, upstream
from ..schemas.analysis import (
    AnalyzeParagraphRequest,
    AnalyzeSentenceRequest,
    AnalyzeWordRequest,
    GenerateEmbeddingRequest,
    GenerateTextRequest,
)
from ..validation import validate
from .ai_service import AIResult, AIService

logger = logging.getLogger(__name__)

ANALYSIS_MODELS = {
    "word": AnalyzeWordRequest,
    "sentence": AnalyzeSentenceRequest,
    "paragraph": AnalyzeParagraphRequest,
}


def _collaborator_failure(error: Exception, context: str) -> Failure:
    err: LinguaError = handle_error(error, context, logger)
    return Failure.from_error(err)


async def analyze(ai: AIService, user_id: str, kind: str, body: Any) -> Outcome:
    """Validate and forward one analysis request; kind is word, sentence or paragraph."""
    req = validate(ANALYSIS_MODELS[kind], body)
    if isinstance(req, Failure):
        return req

    method = getattr(ai, f"analyze_{kind}")
    try:
        result: AIResult = await method(user_id, req.to_wire())
    except Exception as e:
        return _collaborator_failure(e, f"analyze-{kind}")

    if not result.success:
        logger.warning(f"analyze-{kind} for {user_id} failed upstream: {result.error}")
        return upstream(result.error or f"Failed to analyze {kind}")
    return Success(result.data, metadata=dict(result.metadata or {}))


async def usage(ai: AIService, user_id: str) -> Outcome:
    try:
        return Success(await ai.check_usage(user_id))
    except Exception as e:
        return _collaborator_failure(e, "check-usage")


async def check_usage(ai: AIService, user_id: str, requested_user_id: Optional[str]) -> Outcome:
    """Usage for the caller; asking for another user's usage is forbidden."""
    target = requested_user_id or user_id
    if target != user_id:
        logger.warning(f"User {user_id} requested usage of {target}")
        return Failure(ErrorKind.FORBIDDEN, "Forbidden")
    return await usage(ai, user_id)


async def _generate(ai_call, user_id: str, model: type[BaseModel], body: Any, context: str) -> Outcome:
    req = validate(model, body)
    if isinstance(req, Failure):
        return req
    try:
        return Success(await ai_call(user_id, req.to_wire()))
    except Exception as e:
        return _collaborator_failure(e, context)


async def generate_text(ai: AIService, user_id: str, body: Any) -> Outcome:
    return await _generate(ai.generate_text, user_id, GenerateTextRequest, body, "generate-text")


async def generate_embedding(ai: AIService, user_id: str, body: Any) -> Outcome:
    return await _generate(ai.generate_embedding, user_id, GenerateEmbeddingRequest, body, "generate-embedding")


async def provider_status(ai: AIService) -> Outcome:
    try:
        status: Dict[str, Any] = await ai.get_provider_status()
    except Exception as e:
        return _collaborator_failure(e, "provider-status")
    return Success(status)

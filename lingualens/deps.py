from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, Request

from .auth import AuthUser, AuthVerifier, parse_bearer_token
from .errors import AuthInvalidError, AuthRequiredError
from .services.ai_service import AIService
from .settings import get_settings

logger = logging.getLogger(__name__)


def get_verifier(request: Request) -> AuthVerifier:
    return request.app.state.verifier


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_current_user(
    request: Request,
    verifier: AuthVerifier = Depends(get_verifier),
    authorization: Optional[str] = Header(default=None),
) -> AuthUser:
    """Resolve the caller from the bearer header, falling back to the session cookie."""
    token = parse_bearer_token(authorization)
    source = "header"
    if token is None:
        token = request.cookies.get(get_settings().SESSION_COOKIE)
        source = "cookie"

    if not token:
        if authorization:
            logger.warning("Authentication failed: malformed Authorization header")
        else:
            logger.warning("Authentication failed: No token provided")
        raise AuthRequiredError()

    result = verifier.verify_token(token)
    if not result.ok:
        logger.warning(f"Authentication failed ({source}): {result.error}")
        raise AuthInvalidError()

    request.state.user_id = result.user.id
    return result.user

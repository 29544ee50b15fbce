from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from .. import config
from ..auth import AuthVerifier

logger = logging.getLogger(__name__)


def _under(path: str, prefixes: Iterable[str]) -> bool:
    for p in prefixes:
        if path == p or path.startswith(p.rstrip("/") + "/"):
            return True
    return False


def is_exempt(path: str) -> bool:
    """API calls, framework assets and static files never go through the guard."""
    if _under(path, config.GUARD_EXEMPT_PREFIXES):
        return True
    return path.lower().endswith(config.STATIC_EXTENSIONS)


def is_protected(path: str) -> bool:
    return _under(path, config.PROTECTED_PREFIXES)


def is_auth_only(path: str) -> bool:
    return path == config.LANDING_PATH or _under(path, config.AUTH_ONLY_PATHS)


def signin_redirect(path: str, query: str = "") -> str:
    target = f"{path}?{query}" if query else path
    return f"{config.SIGNIN_PATH}?{urlencode({'redirect': target})}"


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """
    Page-level navigation guard driven by the session cookie.

    Signed-out visitors to protected pages are sent to sign-in with the page
    they asked for; signed-in users on the landing or sign-in/up pages are
    sent to the analysis page.
    """

    def __init__(self, app, cookie_name: str, verifier: Optional[AuthVerifier] = None):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.verifier = verifier

    def _verifier(self, request: Request) -> Optional[AuthVerifier]:
        return self.verifier or getattr(request.app.state, "verifier", None)

    def _signed_in(self, request: Request) -> bool:
        verifier = self._verifier(request)
        if verifier is None:
            return False
        token = request.cookies.get(self.cookie_name)
        if not token:
            return False
        result = verifier.get_session(token)
        if result.ok:
            request.state.user_id = result.user.id
        return result.ok

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_exempt(path):
            return await call_next(request)

        signed_in = self._signed_in(request)
        if is_protected(path) and not signed_in:
            logger.info(f"Redirecting signed-out visitor from {path} to sign-in")
            return RedirectResponse(signin_redirect(path, request.url.query), status_code=307)
        if is_auth_only(path) and signed_in:
            return RedirectResponse(config.AFTER_SIGNIN_PATH, status_code=307)
        return await call_next(request)

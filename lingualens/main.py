from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import AuthVerifier, JWTAuthVerifier
from .backend import TableBackend
from .db import build_backend, create_db_engine, init_db
from .errors import ErrorKind, LinguaError, handle_error, kind_for_status, log_error
from .middleware import RouteGuardMiddleware
from .results import Failure, respond
from .routes.ai import router as ai_router
from .routes.analyses import router as analyses_router
from .routes.health import router as health_router
from .routes.pages import router as pages_router
from .routes.sessions import router as sessions_router
from .routes.vocabulary import router as vocabulary_router
from .services.ai_service import AIService, RemoteAIService
from .settings import get_settings

logger = logging.getLogger(__name__)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LinguaError)
    async def lingua_error_handler(request: Request, exc: LinguaError):
        log_error(exc, logger, "warning" if exc.status_code >= 500 else "info")
        return respond(Failure.from_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        kind = kind_for_status(exc.status_code)
        if kind is ErrorKind.METHOD_NOT_ALLOWED:
            message = "Method not allowed"
        elif isinstance(exc.detail, str):
            message = exc.detail
        else:
            message = "Request failed"
        response = respond(Failure(kind, message))
        response.status_code = exc.status_code
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = (exc.errors() or [{}])[0]
        loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "header")]
        return respond(
            Failure(
                ErrorKind.VALIDATION_FAILED,
                first.get("msg") or "Invalid request",
                code=first.get("type"),
                field=loc[0] if loc else None,
            )
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        err = handle_error(exc, f"{request.method} {request.url.path}", logger)
        return respond(Failure.from_error(err))


def create_app(
    backend: Optional[TableBackend] = None,
    verifier: Optional[AuthVerifier] = None,
    ai_service: Optional[AIService] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    """
    Build the application with its collaborators.

    Anything not passed in is built from settings: a SQLite-backed table
    gateway, a JWT verifier and the remote AI gateway client.
    """
    settings = get_settings()
    if backend is None:
        engine = engine or create_db_engine()
        backend = build_backend(engine)
    if verifier is None:
        verifier = JWTAuthVerifier(settings.JWT_SECRET, settings.JWT_ALGORITHM, settings.JWT_AUDIENCE)
    if ai_service is None:
        ai_service = RemoteAIService.from_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            init_db(engine)
        logger.info(f"LinguaLens API started ({settings.ENV})")
        yield

    app = FastAPI(lifespan=lifespan, title="LinguaLens", version="0.1.0")
    app.state.backend = backend
    app.state.verifier = verifier
    app.state.ai_service = ai_service
    app.state.engine = engine

    _install_error_handlers(app)

    app.add_middleware(RouteGuardMiddleware, cookie_name=settings.SESSION_COOKIE, verifier=verifier)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(ai_router)
    app.include_router(sessions_router)
    app.include_router(analyses_router)
    app.include_router(vocabulary_router)
    app.include_router(pages_router)
    return app


app = create_app()

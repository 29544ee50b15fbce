"""
Shared fixtures.

- In-memory SQLite (StaticPool, foreign keys on) behind the real table gateway
- Only the AI gateway is faked
- Two users, so ownership rules can be checked from both sides
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from lingualens.auth import JWTAuthVerifier, create_access_token
from lingualens.db import build_backend, configure_sqlite_engine, init_db
from lingualens.main import create_app
from lingualens.services.ai_service import AIResult, AIService

SECRET = "test-secret"
USER_A = "11111111-aaaa-4aaa-8aaa-111111111111"
USER_B = "22222222-bbbb-4bbb-8bbb-222222222222"


class FakeAIService(AIService):
    """Records every call; results and failures are set per test."""

    def __init__(self):
        self.calls: List[Tuple[str, str, Any]] = []
        self.analysis = AIResult(
            success=True,
            data={"word": "run", "definitions": {"root_meaning": "move fast"}},
            metadata={"model": "fake-model", "tokensUsed": 42},
        )
        self.usage: Dict[str, Any] = {
            "canUseAI": True,
            "remainingRequests": 9,
            "remainingTokens": 9000,
            "tier": {"name": "free", "features": ["word-analysis", "sentence-analysis"]},
        }
        self.raises: Optional[Exception] = None

    async def _record(self, name: str, user_id: Optional[str], payload: Any):
        self.calls.append((name, user_id, payload))
        if self.raises is not None:
            raise self.raises

    async def analyze_word(self, user_id, request):
        await self._record("analyze_word", user_id, request)
        return self.analysis

    async def analyze_sentence(self, user_id, request):
        await self._record("analyze_sentence", user_id, request)
        return self.analysis

    async def analyze_paragraph(self, user_id, request):
        await self._record("analyze_paragraph", user_id, request)
        return self.analysis

    async def check_usage(self, user_id):
        await self._record("check_usage", user_id, None)
        return self.usage

    async def generate_text(self, user_id, params):
        await self._record("generate_text", user_id, params)
        return {"text": "generated", "tokensUsed": 7}

    async def generate_embedding(self, user_id, params):
        await self._record("generate_embedding", user_id, params)
        return {"embeddings": [[0.1, 0.2]], "model": "fake-embed"}

    async def get_provider_status(self):
        await self._record("get_provider_status", None, None)
        return {"providers": [{"name": "fake", "healthy": True}]}


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite_engine(eng)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def backend(engine):
    return build_backend(engine)


@pytest.fixture
def ai():
    return FakeAIService()


@pytest.fixture
def verifier():
    return JWTAuthVerifier(SECRET)


@pytest.fixture
def app(engine, backend, verifier, ai):
    return create_app(backend=backend, verifier=verifier, ai_service=ai, engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def token_for(user_id: str, **kwargs) -> str:
    return create_access_token(user_id, SECRET, email=f"{user_id[:8]}@example.com", **kwargs)


@pytest.fixture
def auth_headers():
    """Bearer headers for USER_A."""
    return {"Authorization": f"Bearer {token_for(USER_A)}"}


@pytest.fixture
def other_headers():
    """Bearer headers for USER_B."""
    return {"Authorization": f"Bearer {token_for(USER_B)}"}


# Helpers for common setup through the API

def create_session(client, headers, title="Reading practice", session_type="mixed", **extra):
    r = client.post("/api/sessions", json={"title": title, "session_type": session_type, **extra}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]


def create_word(client, headers, word="run", definition_en="to move fast", **extra):
    r = client.post("/api/vocabulary/words", json={"word": word, "definition_en": definition_en, **extra}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]

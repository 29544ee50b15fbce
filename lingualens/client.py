from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .query_cache import QueryCache
from .query_keys import api, table_keys

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Envelope with success=false, or a non-JSON error response."""

    def __init__(self, message: str, status_code: int, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


words = table_keys("vocabulary_words")
collections = table_keys("vocabulary_collections")
sessions = table_keys("analysis_sessions")
analyses = table_keys("session_analyses")


class LinguaClient:
    """
    API client for the LinguaLens endpoints.

    Reads go through the given QueryCache; writes invalidate the keys of the
    table they touch. Pass transport to talk to an in-process app in tests.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        cache: Optional[QueryCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.cache = cache if cache is not None else QueryCache()
        self._http = httpx.Client(base_url=base_url, headers=headers, transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "LinguaClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self._http.request(method, path, **kwargs)
        logger.debug(f"{method} {path} -> {resp.status_code}")
        try:
            body = resp.json()
        except ValueError:
            raise ApiError(f"HTTP {resp.status_code}", resp.status_code)
        if not isinstance(body, dict):
            raise ApiError(f"HTTP {resp.status_code}", resp.status_code)
        if not body.get("success"):
            raise ApiError(body.get("error") or f"HTTP {resp.status_code}", resp.status_code, body.get("code"))
        return body.get("data")

    def _get(self, key, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.cache.fetch(key, lambda: self._request("GET", path, params=params))

    def _write(self, method: str, path: str, json: Any = None, invalidates=()) -> Any:
        return self.cache.mutate(lambda: self._request(method, path, json=json), invalidates)

    # ---- vocabulary ----
    def list_words(self, **filters) -> Any:
        key = words.list(filters or None)
        return self._get(key, "/api/vocabulary/words", params=filters or None)

    def get_word(self, word_id: str) -> Any:
        return self._get(words.detail(word_id), f"/api/vocabulary/words/{word_id}")

    def create_word(self, word: str, definition_en: str, **fields) -> Any:
        payload = {"word": word, "definition_en": definition_en, **fields}
        return self._write("POST", "/api/vocabulary/words", payload, [words.all()])

    def update_word(self, word_id: str, **fields) -> Any:
        return self._write("PATCH", f"/api/vocabulary/words/{word_id}", fields, [words.all()])

    def delete_word(self, word_id: str) -> Any:
        return self._write("DELETE", f"/api/vocabulary/words/{word_id}", invalidates=[words.all(), collections.all()])

    def practice_word(self, word_id: str, result: str) -> Any:
        return self._write("POST", f"/api/vocabulary/words/{word_id}/practice", {"result": result}, [words.all()])

    def list_collections(self, **filters) -> Any:
        key = collections.list(filters or None)
        return self._get(key, "/api/vocabulary/collections", params=filters or None)

    def create_collection(self, name: str, collection_type: str = "custom", **fields) -> Any:
        payload = {"name": name, "collection_type": collection_type, **fields}
        return self._write("POST", "/api/vocabulary/collections", payload, [collections.all()])

    def add_to_collection(self, collection_id: str, word_id: str) -> Any:
        return self._write(
            "POST",
            f"/api/vocabulary/collections/{collection_id}/words",
            {"word_id": word_id},
            [collections.all(), words.all()],
        )

    # ---- sessions ----
    def list_sessions(self, **filters) -> Any:
        key = sessions.list(filters or None)
        return self._get(key, "/api/sessions", params=filters or None)

    def get_session(self, session_id: str) -> Any:
        return self._get(sessions.detail(session_id), f"/api/sessions/{session_id}")

    def create_session(self, title: str, session_type: str = "mixed", **fields) -> Any:
        payload = {"title": title, "session_type": session_type, **fields}
        return self._write("POST", "/api/sessions", payload, [sessions.all()])

    def delete_session(self, session_id: str) -> Any:
        return self._write("DELETE", f"/api/sessions/{session_id}", invalidates=[sessions.all(), analyses.all()])

    # ---- history ----
    def recent_analyses(self, **filters) -> Any:
        key = api.with_params("/api/analyses/recent", filters)
        return self._get(key, "/api/analyses/recent", params=filters or None)

    def add_analysis(self, analysis: Dict[str, Any]) -> Any:
        return self._write(
            "POST",
            "/api/analyses/add",
            analysis,
            [sessions.all(), analyses.all(), api.endpoint("/api/analyses/recent")],
        )

    # ---- AI ----
    def analyze_word(self, word: str, sentence_context: str, **options) -> Any:
        # not cached: each call spends quota
        return self._request(
            "POST", "/api/ai/analyze-word", json={"word": word, "sentenceContext": sentence_context, **options}
        )

    def usage(self) -> Any:
        return self._get(api.endpoint("/api/ai/check-usage"), "/api/ai/check-usage")

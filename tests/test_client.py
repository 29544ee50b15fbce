"""LinguaClient against a mocked transport."""

import json

import httpx
import pytest

from lingualens.client import ApiError, LinguaClient
from lingualens.query_cache import QueryCache, RetryPolicy


class FakeApi:
    """Records requests and answers from a {(method, path): (status, body)} table."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def on(self, method, path, body, status=200):
        self.routes[(method, path)] = (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (404, {"success": False, "error": "nope"}))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def count(self, method, path):
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)


@pytest.fixture
def fake():
    return FakeApi()


@pytest.fixture
def lingua(fake):
    cache = QueryCache(query_retry=RetryPolicy(1, 10, base_ms=1), sleep=lambda s: None)
    with LinguaClient("http://lingua.test", token="tok", cache=cache, transport=httpx.MockTransport(fake)) as c:
        yield c


def ok(data):
    return {"success": True, "data": data, "metadata": {"timestamp": "2024-01-01T00:00:00+00:00"}}


class TestRequests:
    def test_sends_bearer_token_and_unwraps_data(self, lingua, fake):
        fake.on("GET", "/api/vocabulary/words", ok([{"id": "w1"}]))
        assert lingua.list_words() == [{"id": "w1"}]
        assert fake.requests[0].headers["Authorization"] == "Bearer tok"

    def test_failure_envelope_raises(self, lingua, fake):
        fake.on(
            "POST",
            "/api/vocabulary/words",
            {"success": False, "error": "Word already exists in your vocabulary"},
            status=409,
        )
        with pytest.raises(ApiError) as exc_info:
            lingua.create_word("run", "to move fast")
        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Word already exists in your vocabulary"
        assert fake.count("POST", "/api/vocabulary/words") == 1

    def test_non_json_response(self, lingua, fake):
        fake.on("GET", "/api/sessions", "<html>bad gateway</html>", status=502)
        with pytest.raises(ApiError) as exc_info:
            lingua.list_sessions()
        assert exc_info.value.status_code == 502
        # one retry for a 5xx read
        assert fake.count("GET", "/api/sessions") == 2

    def test_create_session_body(self, lingua, fake):
        fake.on("POST", "/api/sessions", ok({"id": "s1"}))
        lingua.create_session("Reading")
        assert json.loads(fake.requests[0].content) == {"title": "Reading", "session_type": "mixed"}

    def test_filters_become_query_params(self, lingua, fake):
        fake.on("GET", "/api/vocabulary/words", ok([]))
        lingua.list_words(difficulty=2)
        assert fake.requests[0].url.params["difficulty"] == "2"


class TestCaching:
    def test_reads_are_cached(self, lingua, fake):
        fake.on("GET", "/api/vocabulary/words/w1", ok({"id": "w1"}))
        lingua.get_word("w1")
        lingua.get_word("w1")
        assert fake.count("GET", "/api/vocabulary/words/w1") == 1

    def test_writes_invalidate_their_table(self, lingua, fake):
        fake.on("GET", "/api/vocabulary/words", ok([]))
        fake.on("POST", "/api/vocabulary/words", ok({"id": "w1"}))
        lingua.list_words()
        lingua.create_word("run", "to move fast")
        lingua.list_words()
        assert fake.count("GET", "/api/vocabulary/words") == 2

    def test_other_tables_stay_cached(self, lingua, fake):
        fake.on("GET", "/api/sessions", ok({"sessions": []}))
        fake.on("POST", "/api/vocabulary/words", ok({"id": "w1"}))
        lingua.list_sessions()
        lingua.create_word("run", "to move fast")
        lingua.list_sessions()
        assert fake.count("GET", "/api/sessions") == 1

    def test_different_filters_are_different_entries(self, lingua, fake):
        fake.on("GET", "/api/vocabulary/words", ok([]))
        lingua.list_words(difficulty=1)
        lingua.list_words(difficulty=2)
        lingua.list_words(difficulty=1)
        assert fake.count("GET", "/api/vocabulary/words") == 2

    def test_analysis_is_never_cached(self, lingua, fake):
        fake.on("POST", "/api/ai/analyze-word", ok({"word": "run"}))
        lingua.analyze_word("run", "I run.")
        lingua.analyze_word("run", "I run.")
        assert fake.count("POST", "/api/ai/analyze-word") == 2

    def test_adding_to_collection_invalidates_words_and_collections(self, lingua, fake):
        fake.on("GET", "/api/vocabulary/words", ok([]))
        fake.on("GET", "/api/vocabulary/collections", ok([]))
        fake.on("POST", "/api/vocabulary/collections/c1/words", ok({"id": "w1"}))
        lingua.list_words()
        lingua.list_collections()
        lingua.add_to_collection("c1", "w1")
        lingua.list_words()
        lingua.list_collections()
        assert fake.count("GET", "/api/vocabulary/words") == 2
        assert fake.count("GET", "/api/vocabulary/collections") == 2
        assert json.loads(fake.requests[2].content) == {"word_id": "w1"}

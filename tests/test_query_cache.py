"""Query cache freshness, invalidation and retry policies."""

import pytest

from lingualens import query_keys as qk
from lingualens.client import ApiError
from lingualens.query_cache import QueryCache, RetryPolicy, status_of


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance_ms(self, ms):
        self.now += ms / 1000.0


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def cache(clock, sleeps):
    return QueryCache(stale_time_ms=1000, gc_time_ms=5000, clock=clock, sleep=sleeps.append)


def flaky(failures, error_factory, value="ok"):
    """fn that raises `failures` times, then returns value."""
    calls = []

    def fn():
        calls.append(1)
        if len(calls) <= failures:
            raise error_factory()
        return value

    return fn, calls


class TestRetryPolicy:
    def test_defaults(self):
        assert RetryPolicy.for_queries().max_retries == 3
        assert RetryPolicy.for_queries().cap_ms == 30_000
        assert RetryPolicy.for_mutations().max_retries == 2
        assert RetryPolicy.for_mutations().cap_ms == 10_000

    def test_delay_doubles_up_to_cap(self):
        policy = RetryPolicy(max_retries=10, cap_ms=5000)
        assert [policy.delay_ms(i) for i in range(5)] == [1000, 2000, 4000, 5000, 5000]

    def test_client_errors_are_not_retried(self):
        policy = RetryPolicy.for_queries()
        assert not policy.should_retry(0, ApiError("nope", 404))
        assert policy.should_retry(0, ApiError("down", 503))
        assert policy.should_retry(0, ConnectionError("reset"))
        assert not policy.should_retry(3, ConnectionError("reset"))

    def test_run_retries_then_succeeds(self, sleeps):
        fn, calls = flaky(3, lambda: ApiError("down", 503))
        assert RetryPolicy.for_queries().run(fn, sleeps.append) == "ok"
        assert len(calls) == 4
        assert sleeps == [1.0, 2.0, 4.0]

    def test_run_gives_up(self, sleeps):
        fn, calls = flaky(10, lambda: ApiError("down", 500))
        with pytest.raises(ApiError):
            RetryPolicy.for_mutations().run(fn, sleeps.append)
        assert len(calls) == 3

    def test_run_does_not_retry_4xx(self, sleeps):
        fn, calls = flaky(10, lambda: ApiError("conflict", 409))
        with pytest.raises(ApiError):
            RetryPolicy.for_queries().run(fn, sleeps.append)
        assert len(calls) == 1
        assert sleeps == []


def test_status_of():
    assert status_of(ApiError("x", 418)) == 418
    assert status_of(ValueError("x")) is None


class TestQueryCache:
    def test_fresh_value_is_served_from_cache(self, cache):
        key = qk.tables.list("vocabulary_words")
        fn, calls = flaky(0, None, value=[1, 2])
        assert cache.fetch(key, fn) == [1, 2]
        assert cache.fetch(key, fn) == [1, 2]
        assert len(calls) == 1

    def test_stale_value_is_refetched(self, cache, clock):
        key = qk.tables.list("vocabulary_words")
        fn, calls = flaky(0, None)
        cache.fetch(key, fn)
        clock.advance_ms(1500)
        assert not cache.is_fresh(key)
        assert cache.get(key) == "ok"
        cache.fetch(key, fn)
        assert len(calls) == 2

    def test_unused_entries_are_collected(self, cache, clock):
        key = qk.tables.detail("vocabulary_words", "1")
        cache.set(key, {"id": "1"})
        clock.advance_ms(5000)
        assert cache.get(key) is None
        assert len(cache) == 0

    def test_invalidate_prefix(self, cache):
        cache.set(qk.tables.list("vocabulary_words"), [])
        cache.set(qk.tables.detail("vocabulary_words", "1"), {})
        cache.set(qk.tables.list("vocabulary_collections"), [])
        assert cache.invalidate(qk.tables.table("vocabulary_words")) == 2
        assert cache.keys() == (qk.tables.list("vocabulary_collections"),)

    def test_mutate_invalidates_after_success(self, cache):
        cache.set(qk.tables.list("vocabulary_words"), [])
        result = cache.mutate(lambda: "created", invalidates=[qk.tables.table("vocabulary_words")])
        assert result == "created"
        assert len(cache) == 0

    def test_failed_mutation_keeps_cache(self, cache):
        cache.set(qk.tables.list("vocabulary_words"), [])

        def boom():
            raise ApiError("bad", 400)

        with pytest.raises(ApiError):
            cache.mutate(boom, invalidates=[qk.tables.table("vocabulary_words")])
        assert len(cache) == 1

    def test_boolean_and_numeric_filters_are_separate_entries(self, cache):
        cache.fetch(qk.tables.filtered("vocabulary_collections", {"is_public": True}), lambda: ["public"])
        got = cache.fetch(qk.tables.filtered("vocabulary_collections", {"is_public": 1}), lambda: ["numeric"])
        assert got == ["numeric"]
        assert len(cache) == 2

    def test_caches_are_independent(self, clock):
        a, b = QueryCache(clock=clock), QueryCache(clock=clock)
        a.set(("k",), 1)
        assert b.get(("k",)) is None

    def test_clear(self, cache):
        cache.set(("a",), 1)
        cache.clear()
        assert cache.keys() == ()

"""Cache key construction and key utilities."""

from lingualens import query_keys as qk
from lingualens.query_keys import Params, get_base_key, get_id, get_table_name, matches, prefixed_keys, table_keys


class TestNamespaces:
    def test_table_keys(self):
        assert qk.tables.ALL == ("tables",)
        assert qk.tables.list("vocabulary_words") == ("tables", "vocabulary_words", "list")
        assert qk.tables.detail("vocabulary_words", "42") == ("tables", "vocabulary_words", "detail", "42")
        assert qk.tables.paginated("vocabulary_words", 2, 20) == ("tables", "vocabulary_words", "paginated", 2, 20)

    def test_documents_live_under_tables(self):
        assert qk.documents.all() == ("tables", "documents")
        assert qk.documents.detail("d1") == ("tables", "documents", "detail", "d1")
        assert qk.documents.list() == ("tables", "documents", "list")

    def test_other_namespaces(self):
        assert qk.auth.session() == ("auth", "session")
        assert qk.auth.profile("u1") == ("auth", "profile", "u1")
        assert qk.analytics.dashboard() == ("analytics", "dashboard")
        assert qk.analytics.user_stats("u1") == ("analytics", "user-stats", "u1")
        assert qk.analytics.activity("u1", "week") == ("analytics", "activity", "u1", "week")
        assert qk.storage.file("avatars", "a.png") == ("storage", "avatars", "a.png")
        assert qk.storage.list("avatars", "2024") == ("storage", "avatars", "list", "2024")
        assert qk.api.endpoint("ai/check-usage") == ("api", "ai/check-usage")


class TestParams:
    def test_key_order_does_not_matter(self):
        a = qk.tables.filtered("sessions", {"status": "active", "type": "word"})
        b = qk.tables.filtered("sessions", {"type": "word", "status": "active"})
        assert a == b
        assert hash(a) == hash(b)

    def test_nested_values_are_frozen(self):
        p = Params.of({"tags": ["a", "b"], "range": {"end": 2, "start": 1}})
        assert hash(p)
        assert p.as_dict() == {"range": {"end": 2, "start": 1}, "tags": ["a", "b"]}

    def test_different_values_differ(self):
        assert qk.api.with_params("x", {"page": 1}) != qk.api.with_params("x", {"page": 2})

    def test_booleans_differ_from_numbers(self):
        flag = qk.tables.filtered("vocabulary_collections", {"is_public": True})
        one = qk.tables.filtered("vocabulary_collections", {"is_public": 1})
        assert flag != one
        assert qk.tables.filtered("vocabulary_collections", {"is_public": False}) != qk.tables.filtered(
            "vocabulary_collections", {"is_public": 0}
        )
        assert Params.of({"tags": [True, 1]}).as_dict() == {"tags": [True, 1]}
        assert Params.of({"is_public": True}).as_dict()["is_public"] is True


class TestFactories:
    def test_table_key_set(self):
        words = table_keys("vocabulary_words")
        assert words.all() == qk.tables.table("vocabulary_words")
        assert words.list() == qk.tables.list("vocabulary_words")
        assert words.list({"difficulty": 2}) == qk.tables.filtered("vocabulary_words", {"difficulty": 2})
        assert words.detail("7") == qk.tables.detail("vocabulary_words", "7")

    def test_prefixed_key_set(self):
        sessions = prefixed_keys(["sessions"])
        assert sessions.all() == ("sessions",)
        assert sessions.list() == ("sessions", "list")
        assert sessions.detail("s1") == ("sessions", "detail", "s1")
        assert sessions.custom("stats", {"range": "week"}) == ("sessions", "stats", Params.of({"range": "week"}))


class TestUtilities:
    def test_matches_is_prefix(self):
        key = qk.tables.detail("vocabulary_words", "42")
        assert matches(key, qk.tables.table("vocabulary_words"))
        assert matches(key, qk.tables.ALL)
        assert matches(key, key)
        assert not matches(key, qk.tables.table("vocabulary_collections"))
        assert not matches(qk.tables.ALL, key)

    def test_get_base_key(self):
        assert get_base_key(qk.tables.detail("t", "1")) == ("tables", "t", "detail")
        assert get_base_key(qk.tables.list("t")) == ("tables", "t", "list")
        assert get_base_key(qk.auth.session()) == ("auth", "session")

    def test_table_name_and_id(self):
        key = qk.tables.detail("vocabulary_words", "42")
        assert get_table_name(key) == "vocabulary_words"
        assert get_id(key) == "42"
        assert get_table_name(qk.auth.user()) is None
        assert get_id(qk.tables.list("t")) is None

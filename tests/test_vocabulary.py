"""Vocabulary words, practice, collections and saving from analyses."""

import pytest

from conftest import USER_A, create_word


class TestWords:
    def test_create_word_lower_cases_and_owns(self, client, auth_headers):
        r = client.post(
            "/api/vocabulary/words",
            json={"word": "Run", "definition_en": "to move fast"},
            headers=auth_headers,
        )
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["data"]["word"] == "run"
        assert body["data"]["user_id"] == USER_A
        assert body["data"]["mastery_level"] == 0

    def test_duplicate_word_conflicts(self, client, auth_headers):
        create_word(client, auth_headers, word="Run")
        r = client.post(
            "/api/vocabulary/words",
            json={"word": "run", "definition_en": "again"},
            headers=auth_headers,
        )
        assert r.status_code == 409
        body = r.json()
        assert body["success"] is False
        assert body["error"] == "Word already exists in your vocabulary"
        assert "data" not in body

    def test_same_word_for_different_users(self, client, auth_headers, other_headers):
        create_word(client, auth_headers)
        create_word(client, other_headers)

        mine = client.get("/api/vocabulary/words", headers=auth_headers).json()["data"]
        theirs = client.get("/api/vocabulary/words", headers=other_headers).json()["data"]
        assert len(mine) == 1 and len(theirs) == 1
        assert mine[0]["id"] != theirs[0]["id"]

    def test_other_users_word_is_not_found(self, client, auth_headers, other_headers):
        word = create_word(client, auth_headers)
        for method, extra in (("get", {}), ("patch", {"json": {"definition_en": "x"}}), ("delete", {})):
            r = getattr(client, method)(f"/api/vocabulary/words/{word['id']}", headers=other_headers, **extra)
            assert r.status_code == 404, method
            assert r.json()["error"] == "Word not found or access denied"

        # still there for the owner
        assert client.get(f"/api/vocabulary/words/{word['id']}", headers=auth_headers).status_code == 200

    def test_get_word_attaches_related_lists(self, client, auth_headers, backend):
        word = create_word(client, auth_headers)
        backend.table("vocabulary_synonyms").insert(
            {"vocabulary_word_id": word["id"], "user_id": USER_A, "synonym_text": "sprint", "confidence_score": 0.8}
        ).execute()
        data = client.get(f"/api/vocabulary/words/{word['id']}", headers=auth_headers).json()["data"]
        assert [s["synonym_text"] for s in data["synonyms"]] == ["sprint"]
        assert data["contexts"] == [] and data["antonyms"] == [] and data["collocations"] == []

    def test_update_and_delete(self, client, auth_headers):
        word = create_word(client, auth_headers)
        r = client.patch(
            f"/api/vocabulary/words/{word['id']}",
            json={"personal_notes": "irregular", "difficulty_level": 3},
            headers=auth_headers,
        )
        assert r.status_code == 200
        assert r.json()["data"]["personal_notes"] == "irregular"
        assert r.json()["data"]["difficulty_level"] == 3

        r = client.delete(f"/api/vocabulary/words/{word['id']}", headers=auth_headers)
        assert r.json()["data"] == {"id": word["id"]}
        assert client.get(f"/api/vocabulary/words/{word['id']}", headers=auth_headers).status_code == 404

    def test_list_filters_and_pagination(self, client, auth_headers):
        for i, w in enumerate(["alpha", "beta", "gamma"]):
            create_word(client, auth_headers, word=w, difficulty_level=i + 1)

        r = client.get("/api/vocabulary/words", params={"difficulty": 2}, headers=auth_headers)
        assert [w["word"] for w in r.json()["data"]] == ["beta"]

        r = client.get("/api/vocabulary/words", params={"limit": 2, "offset": 0}, headers=auth_headers)
        body = r.json()
        assert len(body["data"]) == 2
        assert body["metadata"]["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}

    def test_invalid_filter_is_rejected(self, client, auth_headers):
        r = client.get("/api/vocabulary/words", params={"difficulty": "hard"}, headers=auth_headers)
        assert r.status_code == 400


class TestPractice:
    def _practice(self, client, headers, word_id, result):
        return client.post(f"/api/vocabulary/words/{word_id}/practice", json={"result": result}, headers=headers)

    def test_correct_answer_raises_mastery(self, client, auth_headers):
        word = create_word(client, auth_headers)
        r = self._practice(client, auth_headers, word["id"], "correct")
        assert r.json()["data"] == {"updated_mastery_level": 1, "review_count": 1, "correct_count": 1}

        stored = client.get(f"/api/vocabulary/words/{word['id']}", headers=auth_headers).json()["data"]
        assert stored["last_reviewed_at"] is not None

    def test_mastery_is_clamped(self, client, auth_headers):
        word = create_word(client, auth_headers, mastery_level=5)
        r = self._practice(client, auth_headers, word["id"], "correct")
        assert r.json()["data"]["updated_mastery_level"] == 5

        low = create_word(client, auth_headers, word="walk")
        r = self._practice(client, auth_headers, low["id"], "incorrect")
        assert r.json()["data"] == {"updated_mastery_level": 0, "review_count": 1, "correct_count": 0}

    def test_result_is_required(self, client, auth_headers):
        word = create_word(client, auth_headers)
        r = client.post(f"/api/vocabulary/words/{word['id']}/practice", json={}, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()["error"] == "result is required"

    def test_cannot_practice_other_users_word(self, client, auth_headers, other_headers):
        word = create_word(client, auth_headers)
        assert self._practice(client, other_headers, word["id"], "correct").status_code == 404


class TestCollections:
    def _collection(self, client, headers, name="Verbs"):
        r = client.post(
            "/api/vocabulary/collections",
            json={"name": name, "collection_type": "topic"},
            headers=headers,
        )
        assert r.status_code == 200, r.text
        return r.json()["data"]

    def test_create_requires_name_and_type(self, client, auth_headers):
        r = client.post("/api/vocabulary/collections", json={"name": "Verbs"}, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()["error"] == "name and collection_type are required"

    def test_add_and_remove_word_keeps_count(self, client, auth_headers):
        collection = self._collection(client, auth_headers)
        word = create_word(client, auth_headers)
        url = f"/api/vocabulary/collections/{collection['id']}/words"

        r = client.post(url, json={"word_id": word["id"]}, headers=auth_headers)
        assert r.status_code == 200
        got = client.get(f"/api/vocabulary/collections/{collection['id']}", headers=auth_headers).json()["data"]
        assert got["word_count"] == 1
        assert [w["id"] for w in client.get(url, headers=auth_headers).json()["data"]] == [word["id"]]

        filtered = client.get(
            "/api/vocabulary/words", params={"collection_id": collection["id"]}, headers=auth_headers
        ).json()["data"]
        assert [w["id"] for w in filtered] == [word["id"]]

        r = client.delete(f"{url}/{word['id']}", headers=auth_headers)
        assert r.json()["data"] == {"wordId": word["id"], "removedFromCollection": collection["id"]}
        got = client.get(f"/api/vocabulary/collections/{collection['id']}", headers=auth_headers).json()["data"]
        assert got["word_count"] == 0

    def test_adding_twice_conflicts(self, client, auth_headers):
        collection = self._collection(client, auth_headers)
        word = create_word(client, auth_headers)
        url = f"/api/vocabulary/collections/{collection['id']}/words"
        client.post(url, json={"word_id": word["id"]}, headers=auth_headers)
        assert client.post(url, json={"word_id": word["id"]}, headers=auth_headers).status_code == 409

    def test_deleting_a_word_updates_its_collections(self, client, auth_headers, other_headers):
        collection = self._collection(client, auth_headers)
        word = create_word(client, auth_headers)
        url = f"/api/vocabulary/collections/{collection['id']}"
        client.post(f"{url}/words", json={"word_id": word["id"]}, headers=auth_headers)

        assert client.delete(f"/api/vocabulary/words/{word['id']}", headers=other_headers).status_code == 404
        assert client.get(url, headers=auth_headers).json()["data"]["word_count"] == 1

        assert client.delete(f"/api/vocabulary/words/{word['id']}", headers=auth_headers).status_code == 200
        assert client.get(url, headers=auth_headers).json()["data"]["word_count"] == 0

    def test_both_collection_and_word_must_be_owned(self, client, auth_headers, other_headers):
        mine = self._collection(client, auth_headers)
        their_word = create_word(client, other_headers)
        r = client.post(
            f"/api/vocabulary/collections/{mine['id']}/words",
            json={"word_id": their_word["id"]},
            headers=auth_headers,
        )
        assert r.status_code == 404
        assert r.json()["error"] == "Word not found or access denied"

        r = client.get(f"/api/vocabulary/collections/{mine['id']}/words", headers=other_headers)
        assert r.status_code == 404

    def test_list_filters(self, client, auth_headers):
        self._collection(client, auth_headers, "Verbs")
        client.post(
            "/api/vocabulary/collections",
            json={"name": "Public", "collection_type": "custom", "is_public": True},
            headers=auth_headers,
        )
        r = client.get("/api/vocabulary/collections", params={"is_public": "true"}, headers=auth_headers)
        assert [c["name"] for c in r.json()["data"]] == ["Public"]
        r = client.get("/api/vocabulary/collections", params={"collection_type": "topic"}, headers=auth_headers)
        assert [c["name"] for c in r.json()["data"]] == ["Verbs"]

    def test_update_and_delete(self, client, auth_headers, other_headers):
        collection = self._collection(client, auth_headers)
        url = f"/api/vocabulary/collections/{collection['id']}"
        assert client.patch(url, json={"name": "Irregular verbs"}, headers=auth_headers).json()["data"]["name"] == (
            "Irregular verbs"
        )
        assert client.delete(url, headers=other_headers).status_code == 404
        assert client.delete(url, headers=auth_headers).status_code == 200
        assert client.get(url, headers=auth_headers).status_code == 404


class TestFromAnalysis:
    def test_word_keeps_first_token(self, client, auth_headers):
        r = client.post(
            "/api/vocabulary/from-analysis",
            json={"content": "  Running fast", "content_type": "word", "analysis_type": "word"},
            headers=auth_headers,
        )
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["word"] == "running"
        assert data["source_type"] == "analysis"
        assert data["source_reference"].startswith("word-analysis-")
        assert data["difficulty_level"] == 2

    def test_paragraph_is_truncated(self, client, auth_headers):
        text = "Lorem ipsum " * 40
        r = client.post(
            "/api/vocabulary/from-analysis",
            json={"content": text, "content_type": "paragraph"},
            headers=auth_headers,
        )
        assert len(r.json()["data"]["word"]) == 200

    def test_duplicate_content_conflicts(self, client, auth_headers):
        body = {"content": "break a leg", "content_type": "phrase"}
        client.post("/api/vocabulary/from-analysis", json=body, headers=auth_headers)
        r = client.post("/api/vocabulary/from-analysis", json=body, headers=auth_headers)
        assert r.status_code == 409
        assert r.json()["error"] == "Content already exists in your vocabulary"

    def test_existing_word_of_another_type_conflicts(self, client, auth_headers):
        create_word(client, auth_headers, word="run")
        r = client.post(
            "/api/vocabulary/from-analysis",
            json={"content": "Run", "content_type": "phrase"},
            headers=auth_headers,
        )
        assert r.status_code == 409
        assert r.json()["error"] == "Content already exists in your vocabulary"
        words = client.get("/api/vocabulary/words", headers=auth_headers).json()["data"]
        assert [(w["word"], w["content_type"]) for w in words] == [("run", "word")]

    @pytest.mark.parametrize(
        "content,expected,confidence",
        [
            ("run", "word", 0.9),
            ("break a leg", "phrase", 0.8),
            ("I usually run in the park before work.", "sentence", 0.85),
            (" ".join(["word"] * 21), "paragraph", 0.9),
        ],
    )
    def test_suggestion(self, client, auth_headers, content, expected, confidence):
        r = client.get("/api/vocabulary/from-analysis", params={"content": content}, headers=auth_headers)
        data = r.json()["data"]
        assert data["suggested_content_type"] == expected
        assert data["confidence"] == confidence
        scores = [a["confidence"] for a in data["alternatives"]]
        assert scores == sorted(scores, reverse=True)

    def test_suggestion_requires_content(self, client, auth_headers):
        r = client.get("/api/vocabulary/from-analysis", headers=auth_headers)
        assert r.status_code == 400
        assert r.json()["error"] == "content parameter is required"

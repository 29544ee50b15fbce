"""Page navigation guard driven by the session cookie."""

import pytest

from lingualens.middleware.route_guard import is_auth_only, is_exempt, is_protected, signin_redirect

from conftest import USER_A, token_for


class TestClassification:
    @pytest.mark.parametrize(
        "path",
        ["/api/sessions", "/static/app.css", "/_next/chunk", "/favicon.ico", "/health", "/logo.svg", "/img/a.PNG"],
    )
    def test_exempt(self, path):
        assert is_exempt(path)

    @pytest.mark.parametrize("path", ["/dashboard", "/analysis", "/vocabulary/review", "/sessions/abc"])
    def test_protected(self, path):
        assert is_protected(path)
        assert not is_exempt(path)

    def test_prefix_must_end_at_segment(self):
        assert not is_protected("/dashboards")
        assert not is_protected("/analysisx")

    def test_auth_only(self):
        assert is_auth_only("/")
        assert is_auth_only("/auth/signin")
        assert is_auth_only("/auth/signup")
        assert not is_auth_only("/auth/callback")

    def test_signin_redirect_keeps_query(self):
        assert signin_redirect("/dashboard") == "/auth/signin?redirect=%2Fdashboard"
        assert signin_redirect("/sessions/1", "tab=notes") == "/auth/signin?redirect=%2Fsessions%2F1%3Ftab%3Dnotes"


class TestSignedOut:
    def test_protected_page_redirects_to_signin(self, client):
        r = client.get("/dashboard", follow_redirects=False)
        assert r.status_code == 307
        assert r.headers["location"] == "/auth/signin?redirect=%2Fdashboard"

    def test_original_query_is_preserved(self, client):
        r = client.get("/vocabulary", params={"filter": "new"}, follow_redirects=False)
        assert r.headers["location"] == "/auth/signin?redirect=%2Fvocabulary%3Ffilter%3Dnew"

    def test_invalid_cookie_counts_as_signed_out(self, client):
        client.cookies.set("sb-access-token", "garbage")
        r = client.get("/analysis", follow_redirects=False)
        assert r.status_code == 307

    def test_public_pages_render(self, client):
        for path in ("/", "/auth/signin", "/auth/signup"):
            r = client.get(path, follow_redirects=False)
            assert r.status_code == 200, path
            assert "text/html" in r.headers["content-type"]

    def test_api_is_not_redirected(self, client):
        r = client.get("/api/sessions", follow_redirects=False)
        assert r.status_code == 401


class TestSignedIn:
    @pytest.fixture(autouse=True)
    def signed_in(self, client):
        client.cookies.set("sb-access-token", token_for(USER_A))

    def test_protected_page_renders(self, client):
        r = client.get("/dashboard", follow_redirects=False)
        assert r.status_code == 200

    @pytest.mark.parametrize("path", ["/", "/auth/signin", "/auth/signup"])
    def test_auth_pages_redirect_to_analysis(self, client, path):
        r = client.get(path, follow_redirects=False)
        assert r.status_code == 307
        assert r.headers["location"] == "/analysis"

    def test_cookie_authenticates_api_calls(self, client):
        r = client.get("/api/sessions")
        assert r.status_code == 200


def test_health(client):
    r = client.get("/health")
    assert r.json() == {"status": "ok", "database": True}

"""Token verification and caller resolution."""

from unittest.mock import Mock

import pytest

from lingualens.auth import JWTAuthVerifier, create_access_token, parse_bearer_token
from lingualens.deps import get_current_user
from lingualens.errors import AuthInvalidError, AuthRequiredError

from conftest import SECRET, USER_A, token_for


class TestParseBearerToken:
    def test_extracts_token(self):
        assert parse_bearer_token("Bearer abc.def") == "abc.def"

    def test_scheme_is_case_insensitive(self):
        assert parse_bearer_token("bearer abc") == "abc"

    @pytest.mark.parametrize("value", [None, "", "Token abc", "Bearer ", "abc"])
    def test_malformed_values(self, value):
        assert parse_bearer_token(value) is None


class TestJWTAuthVerifier:
    def test_valid_token_resolves_user(self):
        result = JWTAuthVerifier(SECRET).verify_token(token_for(USER_A))
        assert result.ok
        assert result.user.id == USER_A
        assert result.user.email.endswith("@example.com")

    def test_expired_token_is_rejected(self):
        token = create_access_token(USER_A, SECRET, expires_minutes=-5)
        result = JWTAuthVerifier(SECRET).verify_token(token)
        assert not result.ok

    def test_wrong_secret_is_rejected(self):
        token = create_access_token(USER_A, "another-secret")
        assert not JWTAuthVerifier(SECRET).verify_token(token).ok

    def test_wrong_audience_is_rejected(self):
        token = create_access_token(USER_A, SECRET, audience="service_role")
        assert not JWTAuthVerifier(SECRET).verify_token(token).ok

    def test_garbage_token_is_rejected(self):
        assert not JWTAuthVerifier(SECRET).verify_token("not-a-jwt").ok


class TestGetCurrentUser:
    """get_current_user called directly, the way FastAPI would."""

    @pytest.fixture
    def mock_request(self):
        request = Mock()
        request.cookies = {}
        return request

    def test_bearer_header_resolves_user(self, mock_request):
        user = get_current_user(mock_request, JWTAuthVerifier(SECRET), f"Bearer {token_for(USER_A)}")
        assert user.id == USER_A
        assert mock_request.state.user_id == USER_A

    def test_session_cookie_is_the_fallback(self, mock_request):
        mock_request.cookies = {"sb-access-token": token_for(USER_A)}
        user = get_current_user(mock_request, JWTAuthVerifier(SECRET), None)
        assert user.id == USER_A

    def test_header_wins_over_cookie(self, mock_request):
        verifier = Mock()
        verifier.verify_token.return_value = JWTAuthVerifier(SECRET).verify_token(token_for(USER_A))
        mock_request.cookies = {"sb-access-token": "cookie-token"}
        get_current_user(mock_request, verifier, "Bearer header-token")
        verifier.verify_token.assert_called_once_with("header-token")

    def test_no_credentials(self, mock_request):
        with pytest.raises(AuthRequiredError) as exc_info:
            get_current_user(mock_request, JWTAuthVerifier(SECRET), None)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Authorization header required"

    def test_invalid_token(self, mock_request):
        with pytest.raises(AuthInvalidError) as exc_info:
            get_current_user(mock_request, JWTAuthVerifier(SECRET), "Bearer nope")
        assert exc_info.value.message == "Invalid or expired token"


class TestAuthOverHttp:
    def test_missing_header_returns_401_envelope(self, client):
        r = client.get("/api/vocabulary/words")
        assert r.status_code == 401
        body = r.json()
        assert body["success"] is False
        assert body["error"] == "Authorization header required"
        assert "data" not in body

    def test_invalid_token_returns_401(self, client):
        r = client.get("/api/sessions", headers={"Authorization": "Bearer invalid"})
        assert r.status_code == 401
        assert r.json()["error"] == "Invalid or expired token"

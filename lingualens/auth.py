"""
Token verification against the hosted auth service.

Accounts, passwords and sessions live in the auth service; this module only
checks the JWTs it issues and maps them to an AuthUser.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


@dataclass
class AuthResult:
    user: Optional[AuthUser] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.user is not None and self.error is None


# =============================================================================
# JWT helpers
# =============================================================================

def create_access_token(
    subject: str,
    secret_key: str,
    email: Optional[str] = None,
    algorithm: str = "HS256",
    audience: str = "authenticated",
    expires_minutes: int = 60,
) -> str:
    """Mint a token shaped like the auth service's access tokens."""
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes)
    payload: Dict[str, Any] = {
        "sub": str(subject),
        "aud": audience,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_token(token: str, secret_key: str, algorithms: list[str], audience: Optional[str] = None) -> Optional[dict]:
    try:
        return jwt.decode(token, secret_key, algorithms=algorithms, audience=audience)
    except ExpiredSignatureError:
        logger.info("Token expired")
        return None
    except JWTError:
        return None


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract raw token from an Authorization header value.

    Accepts values like "Bearer <token>" (case-insensitive). Returns None when
    header is missing or malformed.
    """
    if not authorization:
        return None
    val = authorization.strip()
    if not val.lower().startswith("bearer "):
        return None
    token = val.split(" ", 1)[1].strip()
    return token or None


# =============================================================================
# Verifier
# =============================================================================

class AuthVerifier(ABC):
    """Auth collaborator: resolves tokens to users."""

    @abstractmethod
    def verify_token(self, token: str) -> AuthResult: ...

    @abstractmethod
    def get_session(self, cookie_token: Optional[str]) -> AuthResult: ...


class JWTAuthVerifier(AuthVerifier):
    def __init__(self, secret_key: str, algorithm: str = "HS256", audience: Optional[str] = "authenticated"):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience

    def verify_token(self, token: str) -> AuthResult:
        if not token or not token.strip():
            return AuthResult(error="Invalid token format")
        data = decode_token(token, self.secret_key, [self.algorithm], self.audience)
        if not data:
            return AuthResult(error="Invalid or expired token")
        sub = data.get("sub")
        if not sub or not isinstance(sub, str):
            return AuthResult(error="Invalid token payload")
        return AuthResult(user=AuthUser(id=sub, email=data.get("email"), role=data.get("role")))

    def get_session(self, cookie_token: Optional[str]) -> AuthResult:
        if not cookie_token:
            return AuthResult(error="No session")
        return self.verify_token(cookie_token)

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _default_db_url() -> str:
    data_dir = Path.cwd() / "data"
    return f"sqlite:///{data_dir / 'lingualens.db'}"


@dataclass
class _Settings:
    ENV: str = field(default_factory=lambda: os.getenv("LINGUA_ENV", "production"))
    DATABASE_URL: str = field(default_factory=lambda: os.getenv("LINGUA_DATABASE_URL", _default_db_url()))

    # Tokens are issued by the hosted auth service; we only verify them.
    JWT_SECRET: str = field(default_factory=lambda: os.getenv("LINGUA_JWT_SECRET", "dev-secret-change"))
    JWT_ALGORITHM: str = field(default_factory=lambda: os.getenv("LINGUA_JWT_ALGORITHM", "HS256"))
    JWT_AUDIENCE: str = field(default_factory=lambda: os.getenv("LINGUA_JWT_AUDIENCE", "authenticated"))
    SESSION_COOKIE: str = field(default_factory=lambda: os.getenv("LINGUA_SESSION_COOKIE", "sb-access-token"))

    AI_SERVICE_URL: str = field(default_factory=lambda: os.getenv("LINGUA_AI_SERVICE_URL", "http://localhost:8800"))
    AI_SERVICE_KEY: str = field(default_factory=lambda: os.getenv("LINGUA_AI_SERVICE_KEY", ""))
    AI_TIMEOUT_SEC: float = field(default_factory=lambda: float(os.getenv("LINGUA_AI_TIMEOUT_SEC", "60")))

    @property
    def is_dev(self) -> bool:
        return self.ENV == "development"


_SETTINGS = _Settings()


def get_settings() -> _Settings:
    return _SETTINGS

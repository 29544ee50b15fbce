from __future__ import annotations

import os
from typing import List


def _i(name: str, default: int) -> int:
    try:
        return int(float(os.getenv(name, str(default))))
    except Exception:
        return default


def _s(name: str, default: str) -> str:
    v = os.getenv(name)
    return v.strip() if v and v.strip() else default


def _list(name: str, default: List[str]) -> List[str]:
    v = os.getenv(name)
    if not v:
        return list(default)
    return [p.strip() for p in v.split(",") if p.strip()]


# Analysis input bounds (characters)
WORD_MAX_LEN: int = _i("LINGUA_WORD_MAX_LEN", 100)
SENTENCE_MAX_LEN: int = _i("LINGUA_SENTENCE_MAX_LEN", 1000)
SENTENCE_CONTEXT_MAX_LEN: int = _i("LINGUA_SENTENCE_CONTEXT_MAX_LEN", 1000)
PARAGRAPH_CONTEXT_MAX_LEN: int = _i("LINGUA_PARAGRAPH_CONTEXT_MAX_LEN", 2000)
PARAGRAPH_MIN_LEN: int = _i("LINGUA_PARAGRAPH_MIN_LEN", 50)
PARAGRAPH_MAX_LEN: int = _i("LINGUA_PARAGRAPH_MAX_LEN", 5000)

# Word analysis item count
MAX_ITEMS_DEFAULT: int = 5
MAX_ITEMS_MIN: int = 1
MAX_ITEMS_MAX: int = 10

# Generation parameters
TEMPERATURE_MIN: float = 0.0
TEMPERATURE_MAX: float = 2.0

# Vocabulary
VOCAB_WORD_MAX_LEN: int = _i("LINGUA_VOCAB_WORD_MAX_LEN", 100)
MASTERY_MIN: int = 0
MASTERY_MAX: int = 5
DIFFICULTY_MIN: int = 1
DIFFICULTY_MAX: int = 5
DIFFICULTY_DEFAULT: int = 2
FROM_ANALYSIS_PARAGRAPH_CHARS: int = 200

# Pagination
VOCAB_PAGE_DEFAULT: int = _i("LINGUA_VOCAB_PAGE_DEFAULT", 50)
SESSIONS_PER_PAGE_DEFAULT: int = _i("LINGUA_SESSIONS_PER_PAGE", 20)
RECENT_LIMIT_DEFAULT: int = 20
PAGE_LIMIT_MAX: int = 100


# Route guard
PROTECTED_PREFIXES: List[str] = _list(
    "LINGUA_PROTECTED_PREFIXES", ["/dashboard", "/analysis", "/vocabulary", "/sessions"]
)
AUTH_ONLY_PATHS: List[str] = _list("LINGUA_AUTH_ONLY_PATHS", ["/auth/signin", "/auth/signup"])
LANDING_PATH: str = "/"
SIGNIN_PATH: str = _s("LINGUA_SIGNIN_PATH", "/auth/signin")
AFTER_SIGNIN_PATH: str = _s("LINGUA_AFTER_SIGNIN_PATH", "/analysis")
GUARD_EXEMPT_PREFIXES: List[str] = ["/api", "/static", "/_next", "/favicon.ico", "/health"]
STATIC_EXTENSIONS: tuple[str, ...] = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico", ".css", ".js")


# Query cache policy (milliseconds)
CACHE_STALE_MS: int = _i("LINGUA_CACHE_STALE_MS", 5 * 60 * 1000)
CACHE_GC_MS: int = _i("LINGUA_CACHE_GC_MS", 10 * 60 * 1000)
QUERY_MAX_RETRIES: int = 3
QUERY_RETRY_CAP_MS: int = 30_000
MUTATION_MAX_RETRIES: int = 2
MUTATION_RETRY_CAP_MS: int = 10_000
RETRY_BASE_MS: int = 1000


# AI gateway retries
AI_MAX_RETRIES: int = _i("LINGUA_AI_MAX_RETRIES", 3)

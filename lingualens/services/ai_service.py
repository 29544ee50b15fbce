"""
AI collaborator: analysis, generation and usage accounting.

The model calls and quota rules live in a separate AI gateway; this module
only defines the interface the handlers use and an httpx client for it.
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .. import config
from ..errors import UpstreamError
from ..settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class AIResult:
    success: bool
    data: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "AIResult":
        if not isinstance(payload, dict):
            return cls(success=False, error="Malformed response from AI service")
        return cls(
            success=bool(payload.get("success", False)),
            data=payload.get("data"),
            error=payload.get("error"),
            metadata=payload.get("metadata") or {},
        )


class AIService(ABC):
    """Interface the AI endpoints delegate to."""

    @abstractmethod
    async def analyze_word(self, user_id: str, request: Dict[str, Any]) -> AIResult: ...

    @abstractmethod
    async def analyze_sentence(self, user_id: str, request: Dict[str, Any]) -> AIResult: ...

    @abstractmethod
    async def analyze_paragraph(self, user_id: str, request: Dict[str, Any]) -> AIResult: ...

    @abstractmethod
    async def check_usage(self, user_id: str) -> Dict[str, Any]:
        """{canUseAI, remainingRequests, remainingTokens, tier: {name, features}}"""

    @abstractmethod
    async def generate_text(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def generate_embedding(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_provider_status(self) -> Dict[str, Any]: ...


Sleep = Callable[[float], Awaitable[None]]


def _backoff_delay(attempt: int, retry_after: Optional[str] = None) -> float:
    delay = float(2**attempt)
    if retry_after:
        try:
            delay = float(retry_after)
        except (ValueError, TypeError):
            pass
    return delay + random.uniform(0, 0.5 * delay)


async def _retry_with_backoff(
    func: Callable[[], Awaitable[Any]], *, max_retries: int = 3, sleep: Sleep = asyncio.sleep
) -> Any:
    """Run func, retrying timeouts, network errors, 429 and 5xx with exponential backoff."""
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except httpx.TimeoutException as e:
            if attempt >= max_retries:
                logger.error(f"AI request timed out after {max_retries} retries: {e}")
                raise UpstreamError("AI service request timed out", service_name="ai") from e
            sleep_time = _backoff_delay(attempt)
            logger.warning(
                f"AI request timed out (attempt {attempt + 1}/{max_retries + 1}). Retrying in {sleep_time:.2f}s..."
            )
            await sleep(sleep_time)
        except httpx.NetworkError as e:
            if attempt >= max_retries:
                logger.error(f"AI request failed due to network error after {max_retries} retries: {e}")
                raise UpstreamError("Network error connecting to AI service", service_name="ai") from e
            sleep_time = _backoff_delay(attempt)
            logger.warning(
                f"AI request network error (attempt {attempt + 1}/{max_retries + 1}). Retrying in {sleep_time:.2f}s..."
            )
            await sleep(sleep_time)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            retryable = status_code == 429 or 500 <= status_code < 600
            if not retryable or attempt >= max_retries:
                logger.error(f"AI request failed with HTTP {status_code}: {e}")
                raise UpstreamError(
                    _error_message(e.response) or f"AI service returned HTTP {status_code}",
                    service_name="ai",
                    status_code=status_code,
                ) from e
            sleep_time = _backoff_delay(attempt, e.response.headers.get("Retry-After"))
            logger.warning(
                f"AI request failed (attempt {attempt + 1}/{max_retries + 1}): HTTP {status_code}. "
                f"Retrying in {sleep_time:.2f}s..."
            )
            await sleep(sleep_time)
    raise UpstreamError("AI service retries exhausted", service_name="ai")


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return None


class RemoteAIService(AIService):
    """AIService over the AI gateway's HTTP API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        max_retries: int = config.AI_MAX_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls) -> "RemoteAIService":
        s = get_settings()
        return cls(s.AI_SERVICE_URL, s.AI_SERVICE_KEY, s.AI_TIMEOUT_SEC)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"

        async def _execute():
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, json=payload, headers=self._headers())
                resp.raise_for_status()
                return resp.json()

        logger.debug(f"AI gateway {method} {path}")
        try:
            return await _retry_with_backoff(_execute, max_retries=self.max_retries, sleep=self._sleep)
        except ValueError as e:
            raise UpstreamError("Malformed response from AI service", service_name="ai") from e

    async def _analyze(self, kind: str, user_id: str, request: Dict[str, Any]) -> AIResult:
        payload = await self._call("POST", f"/v1/analyze/{kind}", {"userId": user_id, **request})
        return AIResult.from_payload(payload)

    async def analyze_word(self, user_id: str, request: Dict[str, Any]) -> AIResult:
        return await self._analyze("word", user_id, request)

    async def analyze_sentence(self, user_id: str, request: Dict[str, Any]) -> AIResult:
        return await self._analyze("sentence", user_id, request)

    async def analyze_paragraph(self, user_id: str, request: Dict[str, Any]) -> AIResult:
        return await self._analyze("paragraph", user_id, request)

    async def check_usage(self, user_id: str) -> Dict[str, Any]:
        return await self._call("GET", f"/v1/usage/{user_id}")

    async def generate_text(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", "/v1/generate/text", {"userId": user_id, **params})

    async def generate_embedding(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", "/v1/generate/embedding", {"userId": user_id, **params})

    async def get_provider_status(self) -> Dict[str, Any]:
        return await self._call("GET", "/v1/providers/status")

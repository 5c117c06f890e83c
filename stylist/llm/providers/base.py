from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional, Protocol

import httpx

from stylist.llm.cancellation import CancellationToken, guarded
from stylist.llm.errors import (
    InvalidResponseError,
    ProviderError,
    ProviderUnavailableError,
    QuotaExceededError,
)
from stylist.llm.types import GenerationResult
from stylist.llm.validate import parse_generation

logger = logging.getLogger("uvicorn.error")


class OutfitProvider(Protocol):
    name: str

    async def generate(self, prompt: str, *, token: Optional[CancellationToken] = None) -> GenerationResult:
        ...


class UpstreamHTTPError(Exception):
    """Non-2xx answer from an upstream API, before classification."""

    def __init__(
        self,
        status: int,
        message: str,
        *,
        code: Optional[str] = None,
        retry_after: Optional[float] = None,
        body: Any = None,
    ):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message
        self.code = code
        self.retry_after = retry_after
        self.body = body


class UpstreamTimeout(Exception):
    pass


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def error_fields(body: Any) -> tuple[Optional[str], Optional[str]]:
    """(message, code) from the usual ``{"error": {...}}`` / ``{"error": "..."}`` envelopes."""

    if isinstance(body, dict) and "error" in body:
        body = body["error"]
    if isinstance(body, str):
        return body or None, None
    if not isinstance(body, dict):
        return None, None
    message = body.get("message")
    code = body.get("status") or body.get("code") or body.get("type")
    return (str(message) if message else None), (str(code) if code is not None else None)


def http_error(response: httpx.Response, provider: str) -> UpstreamHTTPError:
    try:
        body: Any = response.json()
    except ValueError:
        body = response.text
    message, code = error_fields(body)
    return UpstreamHTTPError(
        response.status_code,
        message or (response.text or f"{provider} API error ({response.status_code})"),
        code=code,
        retry_after=parse_retry_after(response.headers.get("retry-after")),
        body=body,
    )


class HTTPOutfitProvider:
    """Shared request/retry loop; subclasses only build the request and read the envelope.

    Timeouts retry with a linear backoff. 429/503 retry on the provider's own
    linear schedule. Quota/billing failures surface at once as
    QuotaExceededError so the orchestrator can move to another provider.
    """

    name = "base"
    quota_codes: frozenset[str] = frozenset()
    quota_markers: tuple[str, ...] = ("quota", "billing")
    quota_statuses: frozenset[int] = frozenset()
    retry_statuses: frozenset[int] = frozenset({429, 503})
    retry_backoff_s: float = 1.0
    max_retry_after_s: float = 30.0

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_ms: int = 30000,
        max_attempts: int = 3,
        timeout_backoff_s: float = 1.0,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        require_distinct_names: bool = False,
    ):
        self.api_key = api_key
        self.model = model
        self.http_client = http_client
        self.timeout_ms = timeout_ms
        self.max_attempts = max(1, max_attempts)
        self.timeout_backoff_s = timeout_backoff_s
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.require_distinct_names = require_distinct_names

    async def _request(self, prompt: str) -> str:
        raise NotImplementedError

    async def _post_json(self, url: str, *, headers: Dict[str, str], payload: Dict[str, Any]) -> Any:
        try:
            if self.http_client is not None:
                resp = await self.http_client.post(url, headers=headers, json=payload, timeout=self.timeout_ms / 1000.0)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_ms / 1000.0) as client:
                    resp = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(str(e)) from e
        except httpx.TransportError as e:
            raise ProviderError(self.name, f"network error: {e}") from e
        if resp.status_code >= 400:
            raise http_error(resp, self.name)
        try:
            return resp.json()
        except ValueError as e:
            raise InvalidResponseError(f"Non-JSON envelope from {self.name}") from e

    def is_quota_error(self, err: UpstreamHTTPError) -> bool:
        if err.status in self.quota_statuses:
            return True
        if err.code and err.code in self.quota_codes:
            return True
        message = err.message.lower()
        return any(m in message for m in self.quota_markers)

    def retry_delay(self, attempt: int, err: UpstreamHTTPError) -> float:
        delay = attempt * self.retry_backoff_s
        if err.retry_after is not None:
            delay = max(delay, min(err.retry_after, self.max_retry_after_s))
        return delay

    async def complete(self, prompt: str, *, token: Optional[CancellationToken] = None) -> str:
        cause = "no attempts made"
        last_status: Optional[int] = None
        for attempt in range(1, self.max_attempts + 1):
            if token is not None:
                token.raise_if_cancelled()
            start = time.perf_counter()
            logger.info(
                "llm:%s request model=%s attempt=%s timeout_ms=%s", self.name, self.model, attempt, self.timeout_ms
            )
            try:
                text = await guarded(asyncio.wait_for(self._request(prompt), timeout=self.timeout_ms / 1000.0), token)
            except (asyncio.TimeoutError, UpstreamTimeout):
                last_status = None
                cause = f"timeout after {self.timeout_ms}ms"
                delay = attempt * self.timeout_backoff_s
                logger.warning("llm:%s timeout model=%s attempt=%s", self.name, self.model, attempt)
            except UpstreamHTTPError as e:
                if self.is_quota_error(e):
                    raise QuotaExceededError(self.name, f"quota exceeded: {e.message}", status=e.status) from e
                if e.status not in self.retry_statuses:
                    raise ProviderError(self.name, e.message, status=e.status) from e
                last_status = e.status
                cause = f"HTTP {e.status}: {e.message}"
                delay = self.retry_delay(attempt, e)
                logger.warning("llm:%s status=%s attempt=%s retry_in=%.1fs", self.name, e.status, attempt, delay)
            else:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.info("llm:%s response model=%s latency_ms=%s", self.name, self.model, latency_ms)
                if not text or not text.strip():
                    raise InvalidResponseError(f"No response from {self.name} - empty content")
                return text
            if attempt < self.max_attempts:
                await guarded(asyncio.sleep(delay), token)
        raise ProviderUnavailableError(
            self.name, f"gave up after {self.max_attempts} attempts: {cause}", status=last_status
        )

    async def generate(self, prompt: str, *, token: Optional[CancellationToken] = None) -> GenerationResult:
        text = await self.complete(prompt, token=token)
        return parse_generation(text, source=self.name, require_distinct_names=self.require_distinct_names)


ProviderFactory = Callable[..., OutfitProvider]


class ProviderRegistry:
    _factories: dict[str, ProviderFactory] = {}

    @classmethod
    def register(cls, name: str, factory: ProviderFactory) -> None:
        cls._factories[name] = factory

    @classmethod
    def get(cls, name: str) -> ProviderFactory:
        if name not in cls._factories:
            raise ValueError(f"Unknown provider: {name}")
        return cls._factories[name]

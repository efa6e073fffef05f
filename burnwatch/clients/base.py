"""Base HTTP client for the burnwatch API layer.

Provides:
- Rate limiting (token bucket)
- Timeout handling
- Structured error handling (APIError / RateLimitedError)

The Solana RPC and DexScreener clients are built on top of this.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import httpx


@dataclass
class RateLimiter:
    """Simple token-bucket rate limiter."""

    max_per_second: float
    _tokens: float = field(init=False)
    _last_refill: float = field(init=False)

    def __post_init__(self) -> None:
        self._tokens = self.max_per_second
        self._last_refill = time.monotonic()

    def acquire(self) -> float:
        """Acquire a token. Returns wait time in seconds (0 if immediate)."""
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self.max_per_second, self._tokens + elapsed * self.max_per_second)
        self._last_refill = now

        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0

        return (1.0 - self._tokens) / self.max_per_second


class APIError(Exception):
    """Structured API error."""

    def __init__(self, message: str, status_code: int = 0, provider: str = "", retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider
        self.retryable = retryable


class RateLimitedError(APIError):
    """HTTP 429 (or the JSON-RPC equivalent) from a provider."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message, status_code=429, provider=provider, retryable=True)


class BaseClient:
    """Base HTTP client with rate limiting and structured errors.

    Usage:
        client = BaseClient(
            base_url="https://api.example.com",
            rate_limit=5.0,  # 5 req/sec
            timeout=10.0,
        )
        data = await client.get("/endpoint", params={"q": "test"})

    One attempt per call. Retrying is the caller's decision: the poll
    loop backs off on RateLimitedError, start-up calls use
    ``burnwatch.utils.retry.with_retry``.

    ``transport`` is passed straight to ``httpx.AsyncClient`` (tests use
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        rate_limit: float = 10.0,
        timeout: float = 10.0,
        provider_name: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.provider_name = provider_name
        self.timeout = timeout
        self._rate_limiter = RateLimiter(max_per_second=rate_limit)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers or {},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET request with rate limiting."""
        return await self._request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST request with rate limiting."""
        return await self._request("POST", path, json_data=json_data, headers=headers)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Execute one rate-limited request and map failures to APIError."""
        wait = self._rate_limiter.acquire()
        if wait > 0:
            await asyncio.sleep(wait)

        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json_data,
                headers=headers,
            )
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise APIError(
                f"Connection error to {self.provider_name}: {e}",
                provider=self.provider_name,
                retryable=True,
            ) from e

        if response.status_code == 429:
            raise RateLimitedError(
                f"Rate limited by {self.provider_name}",
                provider=self.provider_name,
            )

        if response.status_code >= 500:
            raise APIError(
                f"Server error from {self.provider_name}: {response.status_code}",
                status_code=response.status_code,
                provider=self.provider_name,
                retryable=True,
            )

        if response.status_code >= 400:
            raise APIError(
                f"Client error from {self.provider_name}: {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
                provider=self.provider_name,
                retryable=False,
            )

        return response.json()

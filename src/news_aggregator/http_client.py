"""Hardened HTTP transport for outbound provider requests.

Every failure is raised as one of three TransportError subclasses:

- HttpStatusError: a response arrived with a non-2xx status
- NoResponseError: the request went out but nothing came back
- RequestBuildError: the request could not be built or sent

Retries are not handled here; that policy belongs to the aggregator.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger("news_aggregator.http")

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_USER_AGENT = "NewsAggregator/1.0"
DEFAULT_CACHE_MAX_ENTRIES = 500


# =============================================================================
# Transport errors
# =============================================================================

class TransportError(Exception):
    """Base class for transport failures."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class HttpStatusError(TransportError):
    """Response received with a non-2xx status code."""

    def __init__(self, status_code: int, body: str = "", reason: str = "", url: str = ""):
        super().__init__(f"Status {status_code}: {reason}".rstrip(": "), url=url)
        self.status_code = status_code
        self.body = body
        self.reason = reason

    @property
    def detail(self) -> str:
        """Best available description: provider message, then reason phrase."""
        try:
            data = json.loads(self.body) if self.body else None
        except ValueError:
            data = None
        if isinstance(data, dict):
            for key in ("message", "error", "errors"):
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
                if isinstance(value, list) and value:
                    return "; ".join(str(v) for v in value)
            # Guardian wraps errors in {"response": {"message": ...}}
            inner = data.get("response")
            if isinstance(inner, dict) and isinstance(inner.get("message"), str):
                return inner["message"]
        return self.reason or "Unknown error"


class NoResponseError(TransportError):
    """Request was sent but no response arrived (timeout, reset, refused)."""


class RequestBuildError(TransportError):
    """Request could not be constructed or sent."""


# =============================================================================
# Request / response
# =============================================================================

@dataclass
class HttpRequest:
    """An outbound request."""

    url: str
    method: str = "GET"
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None
    timeout: float | None = None

    # Requests sharing a key are spaced apart; defaults to the URL host
    rate_key: str | None = None

    def cache_key(self) -> str:
        return json.dumps(
            [self.method.upper(), self.url, self.params, self.headers, self.json],
            sort_keys=True,
            default=str,
        )


@dataclass
class RawResponse:
    """A successful (2xx) response."""

    status_code: int
    headers: dict[str, str]
    body: str

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.body)


# =============================================================================
# Client
# =============================================================================

class HttpClient:
    """Async HTTP client with timeout enforcement and failure classification.

    Usage:
        async with HttpClient(timeout=10) as client:
            response = await client.fetch(HttpRequest(url="https://example.com/api"))
            data = response.json()
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        cache_ttl_seconds: float = 0,
        requests_per_second: float = 0,
        transport: httpx.AsyncBaseTransport | None = None,
        cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
    ):
        """Initialize the client.

        Args:
            timeout: Default per-request timeout in seconds.
            user_agent: User agent sent with every request.
            cache_ttl_seconds: Cache successful responses this long (0 disables).
            requests_per_second: Minimum spacing between requests with the same
                rate key, i.e. per provider (0 disables).
            transport: Optional httpx transport (used in tests).
            cache_max_entries: Oldest cached responses are dropped beyond this.
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.cache_ttl_seconds = cache_ttl_seconds
        self.requests_per_second = requests_per_second
        self.cache_max_entries = cache_max_entries
        self._transport = transport

        self._http_client: httpx.AsyncClient | None = None
        self._cache: dict[str, tuple[float, RawResponse]] = {}
        self._rate_locks: dict[str, asyncio.Lock] = {}
        self._last_request_at: dict[str, float] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def clear_cache(self) -> None:
        self._cache.clear()

    def _get_cached(self, key: str) -> RawResponse | None:
        if self.cache_ttl_seconds <= 0:
            return None
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, response = entry
        if expires_at < time.monotonic():
            del self._cache[key]
            return None
        return response

    def _store_cached(self, key: str, response: RawResponse) -> None:
        """Cache a response, sweeping expired entries and capping the size."""
        now = time.monotonic()
        for stale_key in [k for k, (expires_at, _) in self._cache.items() if expires_at < now]:
            del self._cache[stale_key]
        self._cache.pop(key, None)
        while self._cache and len(self._cache) >= self.cache_max_entries:
            # Dicts keep insertion order, so the first key is the oldest
            del self._cache[next(iter(self._cache))]
        self._cache[key] = (now + self.cache_ttl_seconds, response)

    @staticmethod
    def _rate_key(request: HttpRequest) -> str:
        if request.rate_key:
            return request.rate_key
        try:
            return httpx.URL(request.url).host or request.url
        except httpx.InvalidURL:
            return request.url

    async def _throttle(self, key: str) -> None:
        """Space requests sharing a rate key at least 1/requests_per_second apart."""
        if self.requests_per_second <= 0:
            return
        min_interval = 1.0 / self.requests_per_second
        lock = self._rate_locks.setdefault(key, asyncio.Lock())
        async with lock:
            last = self._last_request_at.get(key)
            if last is not None:
                wait_for = last + min_interval - time.monotonic()
                if wait_for > 0:
                    await asyncio.sleep(wait_for)
            self._last_request_at[key] = time.monotonic()

    async def fetch(self, request: HttpRequest) -> RawResponse:
        """Send a request and return the raw response.

        Args:
            request: Request to send.

        Returns:
            RawResponse for a 2xx status.

        Raises:
            HttpStatusError: Non-2xx status received.
            NoResponseError: Timeout or connection failure.
            RequestBuildError: Request could not be built or sent.
        """
        key = request.cache_key()
        cached = self._get_cached(key)
        if cached is not None:
            logger.debug(f"HTTP_CACHE_HIT | {request.method} {request.url}")
            return cached

        await self._throttle(self._rate_key(request))
        client = await self._get_client()
        timeout = request.timeout if request.timeout is not None else self.timeout
        start_time = time.time()

        try:
            response = await client.request(
                request.method,
                request.url,
                params=request.params or None,
                headers=request.headers or None,
                json=request.json,
                timeout=timeout,
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError) as e:
            raise RequestBuildError(f"Invalid request: {e}", url=request.url) from e
        except httpx.TimeoutException as e:
            raise NoResponseError(
                f"No response received within {timeout}s", url=request.url
            ) from e
        except httpx.RequestError as e:
            raise NoResponseError(
                f"No response received: {type(e).__name__}: {e}", url=request.url
            ) from e
        except (TypeError, ValueError) as e:
            raise RequestBuildError(f"Invalid request: {e}", url=request.url) from e

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"HTTP_REQUEST | {request.method} {request.url} | "
            f"status:{response.status_code} | {duration_ms}ms"
        )

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(
                response.status_code,
                body=response.text,
                reason=response.reason_phrase,
                url=request.url,
            )

        raw = RawResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.text,
        )
        if self.cache_ttl_seconds > 0 and self.cache_max_entries > 0:
            self._store_cached(key, raw)
        return raw

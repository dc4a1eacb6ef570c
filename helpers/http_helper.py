"""
HTTP client utilities with retry support and observability.

Provides a small aiohttp wrapper used for every outbound call made while
validating or importing a listing:
- Configurable timeouts and concurrency
- Optional retry with exponential backoff for transient failures
- Clear error taxonomy (NotFoundError, RequestFailedError)
- Session lifecycle management
"""

import asyncio
import json
import random
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from utils.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Error Taxonomy
# ---------------------------------------------------------------------------

class NotFoundError(Exception):
    """Raised when a 404 is encountered and the caller should treat the resource as gone."""


class RequestFailedError(Exception):
    """Raised when the request could not be completed (bad URL, DNS, timeout, reset)."""


class BadStatusError(Exception):
    """Raised by ``get_json`` on a non-success status that is not a 404."""

    def __init__(self, status: int, url: str):
        super().__init__(f"HTTP {status} for {url}")
        self.status = status


# ---------------------------------------------------------------------------
# Retry Policy
# ---------------------------------------------------------------------------

@dataclass
class HTTPRetryPolicy:
    """Configuration for HTTP retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    # Status codes that trigger retry
    retryable_statuses: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})
    # Methods that are safe to retry
    retryable_methods: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS"})

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number (0-indexed)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Add ±25% jitter to prevent thundering herd
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.1, delay)

    def should_retry(self, status: int, method: str) -> bool:
        """Determine if a request should be retried based on status and method."""
        return status in self.retryable_statuses and method.upper() in self.retryable_methods


DEFAULT_RETRY_POLICY = HTTPRetryPolicy()
NO_RETRY_POLICY = HTTPRetryPolicy(max_attempts=1)


@dataclass
class HTTPResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""

    def json(self) -> Any:
        return json.loads(self.body)


class HTTPClient:
    """
    HTTP client with retry support and observability.

    A single client is shared by the services that call out; the session is
    opened lazily and closed on application shutdown.
    """

    def __init__(
        self,
        timeout: int = 10,
        concurrency: int = 8,
        user_agent: str | None = None,
        retry_policy: HTTPRetryPolicy | None = None,
    ) -> None:
        """
        Initialize HTTP client.

        Args:
            timeout: Total request timeout seconds.
            concurrency: Max in-flight requests.
            user_agent: Optional UA string.
            retry_policy: Retry configuration. Defaults to NO_RETRY_POLICY;
                callers opt in per request.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._sem = asyncio.Semaphore(concurrency)
        self._session: aiohttp.ClientSession | None = None
        self._user_agent = user_agent or "ListingAPI/1.0"
        self._retry_policy = retry_policy or NO_RETRY_POLICY

        self._request_count = 0
        self._error_count = 0
        self._retry_count = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout, raise_for_status=False
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session cleanly."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP session closed")

    def get_health_status(self) -> dict:
        """Return health metrics for observability endpoints."""
        return {
            "http_client_status": "ok" if self._session and not self._session.closed else "closed",
            "total_requests": self._request_count,
            "total_errors": self._error_count,
            "total_retries": self._retry_count,
        }

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        retry_policy: HTTPRetryPolicy | None = None,
        read_body: bool = True,
    ) -> HTTPResponse:
        """
        Perform a request and return status, headers and body.

        With ``read_body=False`` only the status line and headers are read;
        the connection is released without downloading the payload.

        Non-success statuses are returned, not raised; retryable statuses
        are retried per the policy and the last response is returned.

        Raises:
            RequestFailedError: The request never produced a response.
        """
        policy = retry_policy or self._retry_policy
        request_headers = {"User-Agent": self._user_agent, **(headers or {})}
        request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        last_error: Exception | None = None

        for attempt in range(policy.max_attempts):
            self._request_count += 1
            async with self._sem:
                session = await self._get_session()
                try:
                    logger.debug(f"HTTP {method} {url} (attempt {attempt + 1}/{policy.max_attempts})")
                    async with session.request(
                        method, url, headers=request_headers, timeout=request_timeout
                    ) as resp:
                        response = HTTPResponse(
                            status=resp.status,
                            headers=dict(resp.headers),
                            body=await resp.read() if read_body else b"",
                        )
                except (TimeoutError, aiohttp.ClientError, ValueError) as e:
                    # ValueError covers URLs aiohttp cannot parse
                    last_error = e
                    self._error_count += 1
                    if attempt < policy.max_attempts - 1:
                        delay = policy.calculate_delay(attempt)
                        logger.info(f"Request error for {url}: {e!r}; retrying in {delay:.1f}s")
                        self._retry_count += 1
                        await asyncio.sleep(delay)
                        continue
                    break

            if policy.should_retry(response.status, method) and attempt < policy.max_attempts - 1:
                delay = policy.calculate_delay(attempt)
                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    if retry_after:
                        try:
                            delay = min(float(retry_after), 60.0)
                        except ValueError:
                            pass
                logger.info(
                    f"HTTP {method} {url} failed ({response.status}); "
                    f"retrying in {delay:.1f}s (attempt {attempt + 1}/{policy.max_attempts})"
                )
                self._retry_count += 1
                await asyncio.sleep(delay)
                continue

            if not response.ok:
                self._error_count += 1
                logger.debug(f"HTTP {response.status} for {url}")
            return response

        logger.warning(f"All {policy.max_attempts} attempts failed for {url}: {last_error!r}")
        raise RequestFailedError(str(last_error) or type(last_error).__name__) from last_error

    async def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        retry_policy: HTTPRetryPolicy | None = None,
    ) -> Any:
        """
        GET a JSON document.

        Raises:
            NotFoundError: On 404.
            BadStatusError: On any other non-success status.
            RequestFailedError: On network failure.
            ValueError: When the body is not valid JSON.
        """
        response = await self.request(
            url, headers=headers, timeout=timeout, retry_policy=retry_policy
        )
        if response.status == 404:
            raise NotFoundError(f"Resource not found: {url}")
        if not response.ok:
            raise BadStatusError(response.status, url)
        return response.json()

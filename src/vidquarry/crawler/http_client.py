"""
Async HTTP client used to fetch pages and probe video URLs.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import aiohttp
import structlog

from vidquarry.config.config import Config
from vidquarry.exceptions import FetchError
from vidquarry.protocols import LoggerProtocol, ProbeResult

RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})
# Servers that refuse HEAD get a streamed GET instead
HEAD_UNSUPPORTED_STATUSES = frozenset({405, 501})


@dataclass
class CrawlerResponse:
    """Response from an HTTP request with timing and attempt information."""

    status: int
    headers: Dict[str, str]
    body: bytes
    start_ts: float
    end_ts: float
    attempts: int
    url: str
    final_url: str
    error: Optional[str] = None
    content_length: Optional[int] = field(default=None)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def text(self) -> str:
        charset = "utf-8"
        content_type = self.header("Content-Type") or ""
        for part in content_type.split(";")[1:]:
            key, _, value = part.strip().partition("=")
            if key.lower() == "charset" and value:
                charset = value.strip("\"'")
        try:
            return self.body.decode(charset, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")


class HttpClient:
    """HTTP client with timeouts, retries and exponential backoff."""

    def __init__(self, config: Optional[Config] = None, *, logger: Optional[LoggerProtocol] = None):
        self.config = config or Config()
        self.crawler_config = self.config.crawler
        self.logger = logger or structlog.get_logger(__name__)

        # Session and connector are created in initialize(), inside the running loop
        self.connector: Optional[aiohttp.TCPConnector] = None
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False

    async def initialize(self) -> None:
        """Initialize the HTTP client session."""
        if self.session is None:
            self.connector = aiohttp.TCPConnector(
                limit=0,
                ttl_dns_cache=30,
                use_dns_cache=True,
                keepalive_timeout=30,
            )
            timeout = aiohttp.ClientTimeout(total=self.crawler_config.timeout)
            self.session = aiohttp.ClientSession(
                connector=self.connector, timeout=timeout, headers={"User-Agent": self.crawler_config.user_agent}
            )
            self._is_initialized = True
            self.logger.debug("http_client_initialized", user_agent=self.crawler_config.user_agent)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self.session:
            await self.session.close()
            self.session = None
        self.connector = None
        self._is_initialized = False
        self.logger.debug("http_client_closed")

    async def __aenter__(self) -> "HttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # --- Request primitives ---

    async def _perform_request(
        self, method: str, url: str, timeout: float, read_body: bool
    ) -> tuple[aiohttp.ClientResponse, bytes]:
        """Perform one HTTP request; the body is read inside the same deadline."""
        if not self._is_initialized or self.session is None:
            raise RuntimeError("HTTP client not initialized")
        try:
            async with asyncio.timeout(timeout):
                response = await self.session.request(
                    method, url, timeout=aiohttp.ClientTimeout(total=timeout), allow_redirects=True
                )
                body = b""
                if read_body and response.status not in RETRYABLE_STATUSES:
                    try:
                        body = await response.read()
                    except BaseException:
                        response.release()
                        raise
                return response, body
        except asyncio.TimeoutError:
            raise asyncio.TimeoutError(f"Request timed out after {timeout}s")

    def _should_retry(self, response: aiohttp.ClientResponse, attempt: int, max_retries: int) -> bool:
        if attempt > max_retries:
            return False
        return response.status in RETRYABLE_STATUSES

    def _calculate_backoff_delay(self, attempt: int) -> float:
        """Exponential backoff with jitter."""
        base_delay = self.crawler_config.backoff_base_seconds * 2 ** (attempt - 1)
        jitter = random.uniform(0.8, 1.2)
        return base_delay * jitter

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        read_body: bool = True,
    ) -> CrawlerResponse:
        """
        Request ``url`` with retries on rate limiting and gateway errors.

        Transport failures and timeouts are retried too. When every attempt
        fails without a response, a ``CrawlerResponse`` with status 0 and an
        ``error`` description is returned instead of raising.
        """
        if not self._is_initialized:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")

        start_time = time.time()
        timeout = timeout if timeout is not None else self.crawler_config.timeout
        if max_retries is None:
            max_retries = self.crawler_config.max_retries

        try:
            parsed_url = urlparse(url)
            if parsed_url.scheme not in ("http", "https") or not parsed_url.netloc:
                raise ValueError("Missing scheme or netloc")
        except (ValueError, AttributeError, TypeError) as e:
            self.logger.warning("malformed_url", url=url, error=str(e))
            return CrawlerResponse(
                status=0,
                headers={},
                body=b"",
                start_ts=start_time,
                end_ts=time.time(),
                attempts=0,
                url=url,
                final_url=url,
                error=f"Malformed URL: {e}",
            )

        attempt = 0
        last_error: Optional[str] = None
        while attempt < max_retries + 1:
            attempt += 1
            try:
                response, body = await self._perform_request(method, url, timeout, read_body)
            except asyncio.TimeoutError as e:
                last_error = str(e) or f"Request timed out after {timeout}s"
                self.logger.warning("request_timed_out", url=url, attempt=attempt, timeout=timeout)
            except aiohttp.ClientError as e:
                last_error = str(e) or e.__class__.__name__
                self.logger.warning("request_failed", url=url, attempt=attempt, error=last_error)
            else:
                if self._should_retry(response, attempt, max_retries):
                    self.logger.info("retrying_request", url=url, status=response.status, attempt=attempt)
                    response.close()
                    await asyncio.sleep(self._calculate_backoff_delay(attempt))
                    continue

                result = CrawlerResponse(
                    status=response.status,
                    headers=dict(response.headers),
                    body=body,
                    start_ts=start_time,
                    end_ts=time.time(),
                    attempts=attempt,
                    url=url,
                    final_url=str(response.url),
                    error=None if 200 <= response.status < 300 else (response.reason or f"HTTP {response.status}"),
                    content_length=response.content_length,
                )
                response.close()
                return result

            if attempt < max_retries + 1:
                await asyncio.sleep(self._calculate_backoff_delay(attempt))

        return CrawlerResponse(
            status=0,
            headers={},
            body=b"",
            start_ts=start_time,
            end_ts=time.time(),
            attempts=attempt,
            url=url,
            final_url=url,
            error=last_error or "Request failed",
        )

    # --- Protocol operations ---

    async def fetch_html(self, url: str) -> str:
        """Return the page body, raising ``FetchError`` for anything but a 2xx."""
        response = await self.fetch(url)
        if response.status == 0:
            raise FetchError(url, response.error or "Request failed")
        if not response.ok:
            raise FetchError(url, response.error or "Request failed", status=response.status)
        self.logger.debug("page_fetched", url=url, status=response.status, size=len(response.body))
        return response.text()

    async def probe(self, url: str) -> ProbeResult:
        """HEAD request (GET without reading the body when HEAD is refused)."""
        timeout = self.crawler_config.probe_timeout
        response = await self.fetch(url, method="HEAD", timeout=timeout, read_body=False)
        if response.status in HEAD_UNSUPPORTED_STATUSES:
            response = await self.fetch(url, method="GET", timeout=timeout, read_body=False)
        return ProbeResult(
            url=url,
            status=response.status,
            final_url=response.final_url,
            content_length=response.content_length,
            content_type=response.header("Content-Type"),
            headers=response.headers,
        )

    async def check_accessibility(self, url: str) -> bool:
        return (await self.probe(url)).ok

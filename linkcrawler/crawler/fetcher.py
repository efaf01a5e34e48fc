"""
HTTP transport for the crawler, built on an aiohttp client session.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int
    body: Optional[bytes] = None
    headers: Optional[Dict[str, str]] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None


class ContentTooLargeError(Exception):
    """Raised when a response body exceeds the configured size limit."""


MARKUP_TYPES = (
    'text/html',
    'application/xhtml+xml',
    'text/xml',
    'application/xml',
    'text/plain',
)


def is_markup(content_type: Optional[str]) -> bool:
    """Check if a content type may contain anchor elements.

    A missing content type is treated as markup and left to the parser.
    """
    if not content_type:
        return True
    return any(markup_type in content_type for markup_type in MARKUP_TYPES)


class WebFetcher:
    """
    Issues GET requests with a concurrency ceiling and per-request timeout.

    Redirects are not followed: a 301/302 response is returned as-is with
    its body.
    """

    def __init__(self, user_agent: Optional[str] = None, request_timeout: float = 30,
                 max_concurrent_requests: int = 10,
                 max_content_size: int = 10 * 1024 * 1024,
                 session: Optional[ClientSession] = None):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session = session
        self._owns_session = session is None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent} if self.user_agent else None

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self._owns_session = True
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session if this fetcher created it."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL without following redirects.

        Transport failures do not raise; they are reported through
        ``FetchResult.error`` with a status code of 0.

        Args:
            url: The absolute URL to fetch

        Returns:
            FetchResult with the status code and full body, or error details
        """
        if self.session is None:
            await self.start()

        start_time = time.time()

        async with self.semaphore:
            self.logger.info(f"Fetching URL: {url}")
            try:
                self.stats['total_requests'] += 1

                async with self.session.get(url, allow_redirects=False) as response:
                    headers = dict(response.headers)
                    content_type = response.headers.get('content-type', '').lower()

                    body = await self._read_body(response)

                    self.stats['successful_requests'] += 1
                    self.stats['total_bytes_downloaded'] += len(body)

                    self.logger.debug(f"Fetched {url}: {response.status} ({len(body)} bytes)")
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        body=body,
                        headers=headers,
                        content_type=content_type,
                        fetch_time=time.time() - start_time
                    )

            except asyncio.TimeoutError:
                error_msg = "Request timeout"
                self.logger.warning(f"Timeout fetching {url}")

            except ClientError as e:
                error_msg = f"Client error: {e}"
                self.logger.warning(f"Client error fetching {url}: {e}")

            except ContentTooLargeError as e:
                error_msg = str(e)
                self.logger.warning(f"{e}: {url}")

            except Exception as e:
                error_msg = f"Unexpected error: {e}"
                self.logger.error(f"Unexpected error fetching {url}: {e}")

            self.stats['failed_requests'] += 1
            return FetchResult(
                url=url,
                status_code=0,
                error=error_msg,
                fetch_time=time.time() - start_time
            )

    async def _read_body(self, response) -> bytes:
        """
        Read the full response body, enforcing the size limit.

        Raises:
            ContentTooLargeError: if the body exceeds ``max_content_size``
        """
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_content_size:
                raise ContentTooLargeError(f"Content too large ({content_length} bytes)")

        body = bytearray()
        async for chunk in response.content.iter_chunked(8192):
            body.extend(chunk)
            if len(body) > self.max_content_size:
                raise ContentTooLargeError("Content exceeded size limit during reading")

        return bytes(body)

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()

    def reset_stats(self):
        """Reset statistics counters."""
        for key in self.stats:
            self.stats[key] = 0

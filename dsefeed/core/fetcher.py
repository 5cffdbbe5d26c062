"""
HTTP Fetcher - Exchange Page Request Module
===========================================

Async HTML client for the exchange website with:
- Async requests via httpx
- Browser-like rotating headers
- Bounded per-request timeout on every fetch
- Exponential backoff with jitter (tenacity) for flaky pages
- Structured FetchError classification (timeout / network / HTTP status)
"""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential, wait_random

from dsefeed.core.config import Config
from dsefeed.core.errors import FetchError
from dsefeed.utils.headers import HeaderManager
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.retryable


class Fetcher:
    """
    Robust HTTP client for scraping exchange pages
    """

    def __init__(
        self,
        header_manager: Optional[HeaderManager] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Sleep] = None,
        max_jitter: Optional[float] = None,
    ):
        """
        Args:
            header_manager: Header builder (defaults to a rotating desktop UA)
            timeout: Per-attempt timeout in seconds
            client: Pre-built httpx client (tests pass one with a MockTransport)
            sleep: Awaitable used between retries
            max_jitter: Upper bound of the random delay added to each backoff
        """
        self.header_manager = header_manager or HeaderManager()
        self.timeout = float(timeout if timeout is not None else Config.get("fetcher", "timeout_seconds", default=15.0))
        self.max_jitter = float(
            max_jitter if max_jitter is not None else Config.get("fetcher", "max_jitter_seconds", default=0.5)
        )
        self.client = client or self._create_client()
        self._sleep = sleep or asyncio.sleep
        log.debug(f"Fetcher initialized, timeout={self.timeout}s")

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), follow_redirects=True)

    async def close(self):
        await self.client.aclose()
        log.debug("Fetcher client closed")

    async def fetch_html(self, url: str, referer: Optional[str] = None, attempt: int = 1) -> str:
        """
        Single GET of ``url``.

        Raises:
            FetchError: on timeout, transport failure or a non-2xx status
        """
        headers = self.header_manager.get_headers(referer=referer)
        try:
            response = await self.client.get(url, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Timed out after {self.timeout:.0f}s fetching {url}", url=url, timeout=True, attempt=attempt
            ) from e
        except httpx.RequestError as e:
            raise FetchError(f"Network error fetching {url}: {e}", url=url, network=True, attempt=attempt) from e

        if not response.is_success:
            raise FetchError(
                f"HTTP {response.status_code} for {url}",
                url=url,
                status_code=response.status_code,
                attempt=attempt,
            )

        text = response.text
        log.debug(f"Fetched {len(text)} chars from {url} (attempt {attempt})")
        return text

    async def fetch_with_retry(
        self,
        url: str,
        max_retries: int = 3,
        base_delay: float = 1.0,
        referer: Optional[str] = None,
    ) -> str:
        """
        GET ``url``, retrying timeouts, network errors, HTTP 5xx and 429.

        The wait before retry ``n`` is ``base_delay * 2**(n-1)`` plus up to
        ``max_jitter`` seconds. Non-retryable failures raise immediately; the
        last error is re-raised once ``max_retries`` retries are spent.
        """

        def _log_retry(retry_state):
            exc = retry_state.outcome.exception()
            log.warning(
                f"Fetch attempt {retry_state.attempt_number}/{max_retries + 1} failed for {url}: {exc}. "
                f"Retrying in {retry_state.next_action.sleep:.2f}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_retries + 1),
            wait=wait_exponential(multiplier=base_delay, min=0) + wait_random(0, self.max_jitter),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self.fetch_html(url, referer=referer, attempt=attempt.retry_state.attempt_number)
        except FetchError as e:
            log.error(f"Giving up on {url} after attempt {e.attempt}: {e}")
            raise

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

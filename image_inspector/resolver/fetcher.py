from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from image_inspector.config import settings
from image_inspector.resolver.outcome import Failure, FailureReason, Outcome, Success

logger = logging.getLogger(__name__)

# User-Agent rotation pool
_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.2 Safari/605.1.15",
]

_IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8"


def _get_random_ua() -> str:
    return random.choice(_USER_AGENTS)


@dataclass(frozen=True)
class ProbeResult:
    """Response metadata from a header-only request."""

    content_length: int | None
    content_type: str | None


@dataclass(frozen=True)
class FetchedResource:
    data: bytes
    content_type: str | None

    @property
    def size(self) -> int:
        return len(self.data)


def _parse_content_length(value: str | None) -> int | None:
    if not value:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


def build_client(timeout: float | None = None) -> httpx.AsyncClient:
    """Create the shared client; an unset timeout keeps httpx's default."""
    timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT
    kwargs: dict = {"follow_redirects": True}
    if timeout is not None:
        kwargs["timeout"] = timeout
    return httpx.AsyncClient(**kwargs)


class ResourceFetcher:
    """Network probes for network-addressed image locators.

    Every public method returns an ``Outcome``; nothing network-related ever
    escapes to the caller.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        max_retries: int | None = None,
    ) -> None:
        self._client = client or build_client()
        self._owns_client = client is None
        if max_retries is None:
            max_retries = settings.FETCH_MAX_RETRIES
        self.max_retries = max(1, max_retries)

    async def __aenter__(self) -> ResourceFetcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def probe(self, url: str) -> Outcome[ProbeResult]:
        """Header-only request: declared length and content type."""

        async def _head() -> httpx.Response:
            return await self._client.head(url, headers=self._headers())

        outcome = await self._request_with_retry(url, _head)
        if not outcome.ok:
            return outcome
        response: httpx.Response = outcome.value
        return Success(ProbeResult(
            content_length=_parse_content_length(response.headers.get("content-length")),
            content_type=response.headers.get("content-type"),
        ))

    async def probe_size(self, url: str) -> Outcome[int]:
        outcome = await self.probe(url)
        if not outcome.ok:
            return outcome
        if outcome.value.content_length is None:
            return Failure(FailureReason.NETWORK_DENIED, "no content-length header")
        return Success(outcome.value.content_length)

    async def fetch_bytes(self, url: str) -> Outcome[FetchedResource]:
        """Full-body request: raw bytes and their exact length."""

        async def _get() -> httpx.Response:
            return await self._client.get(url, headers=self._headers())

        outcome = await self._request_with_retry(url, _get)
        if not outcome.ok:
            return outcome
        response: httpx.Response = outcome.value
        return Success(FetchedResource(
            data=response.content,
            content_type=response.headers.get("content-type"),
        ))

    @staticmethod
    def _headers() -> dict[str, str]:
        return {"User-Agent": _get_random_ua(), "Accept": _IMAGE_ACCEPT}

    async def _request_with_retry(
        self, url: str, send: Callable[[], Awaitable[httpx.Response]],
    ) -> Outcome[httpx.Response]:
        """Core retry logic shared by probe and fetch_bytes."""
        last_failure = Failure(FailureReason.NETWORK_DENIED, "no attempt made")
        for attempt in range(self.max_retries):
            try:
                response = await send()
                response.raise_for_status()
                return Success(response)
            except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as e:
                return Failure(FailureReason.MALFORMED_LOCATOR, str(e))
            except httpx.HTTPStatusError as e:
                last_failure = Failure(
                    FailureReason.NETWORK_DENIED, f"HTTP {e.response.status_code}",
                )
                if e.response.status_code < 500:
                    return last_failure
            except httpx.TimeoutException as e:
                last_failure = Failure(FailureReason.TIMEOUT, str(e) or type(e).__name__)
            except httpx.HTTPError as e:
                last_failure = Failure(FailureReason.NETWORK_DENIED, str(e) or type(e).__name__)

            if attempt + 1 < self.max_retries:
                wait_time = 2**attempt * 0.5 + random.uniform(0, 0.5)
                logger.debug(
                    "Request failed (attempt %d/%d) for %s: %s. Retrying in %.1fs",
                    attempt + 1, self.max_retries, url, last_failure.detail, wait_time,
                )
                await asyncio.sleep(wait_time)
        return last_failure

from __future__ import annotations

import logging
from urllib.parse import urlparse

from image_inspector.config import settings
from image_inspector.documents.playwright_document import PlaywrightDocument
from image_inspector.documents.playwright_pool import browser_pool
from image_inspector.documents.static_document import StaticDocument
from image_inspector.errors import DocumentUnavailableError, UnsupportedDocumentError
from image_inspector.resolver.aggregator import ImageCollector
from image_inspector.resolver.fetcher import ResourceFetcher, build_client
from image_inspector.resolver.image_resolver import ImageResolver
from image_inspector.resolver.thumbnail import ThumbnailRenderer
from image_inspector.schemas.image import ImageReport

logger = logging.getLogger(__name__)

_INSPECTABLE_SCHEMES = {"http", "https", "file"}


def check_page_url(url: str) -> None:
    """Reject page addresses a browser won't let us script (chrome://, about:, ...)."""
    try:
        scheme = urlparse(url).scheme.lower()
    except ValueError as e:
        raise UnsupportedDocumentError(f"Invalid page address: {url}") from e
    if scheme not in _INSPECTABLE_SCHEMES:
        raise UnsupportedDocumentError(
            "Cannot inspect images on this page type. Please use a regular web page."
        )


async def inspect_url(
    url: str,
    *,
    wait_for: str | None = None,
    wait_timeout: int | None = None,
) -> ImageReport:
    """Open ``url`` in the shared browser and run one resolution pass over it."""
    check_page_url(url)
    wait_for = wait_for or settings.PAGE_WAIT_FOR
    if wait_timeout is None:
        wait_timeout = settings.PAGE_LOAD_TIMEOUT

    async with browser_pool.page() as page:
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=wait_timeout)
        except Exception as e:
            raise DocumentUnavailableError(f"Failed to open {url}: {e}") from e

        try:
            if wait_for == "networkidle":
                await page.wait_for_load_state("networkidle", timeout=wait_timeout)
            else:
                await page.wait_for_selector(wait_for, timeout=wait_timeout)
        except Exception as e:
            # Late-loading pages are still worth inspecting
            logger.info("Page %s not settled (%s), inspecting as-is", url, e)

        async with ResourceFetcher() as fetcher:
            collector = ImageCollector(ImageResolver(fetcher, ThumbnailRenderer()))
            return await collector.collect(PlaywrightDocument(page))


async def inspect_html(
    html: str,
    base_url: str = "",
    *,
    ephemeral: dict[str, tuple[bytes, str | None]] | None = None,
) -> ImageReport:
    """Run one resolution pass over static HTML, without a browser."""
    async with build_client() as client:
        document = StaticDocument.from_html(html, base_url, client=client, ephemeral=ephemeral)
        fetcher = ResourceFetcher(client)
        collector = ImageCollector(ImageResolver(fetcher, ThumbnailRenderer()))
        return await collector.collect(document)

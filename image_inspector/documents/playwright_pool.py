from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from playwright.async_api import Browser, Page, Playwright, async_playwright

from image_inspector.config import settings

logger = logging.getLogger(__name__)

_DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

# Web security stays on: canvas taint must behave as in a real browser
_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]

_HIDE_WEBDRIVER = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });
"""


class BrowserPool:
    """Lazily launched shared Chromium with a cap on open contexts."""

    def __init__(self, max_contexts: int | None = None) -> None:
        self._pw: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()
        if max_contexts is None:
            max_contexts = settings.PLAYWRIGHT_MAX_CONTEXTS
        self._contexts = asyncio.Semaphore(max_contexts)

    async def _get_browser(self) -> Browser:
        if self._browser is None or not self._browser.is_connected():
            async with self._lock:
                if self._browser is None or not self._browser.is_connected():
                    self._pw = await async_playwright().start()
                    self._browser = await self._pw.chromium.launch(headless=True, args=_LAUNCH_ARGS)
                    logger.info("Playwright browser launched")
        return self._browser

    @asynccontextmanager
    async def page(self) -> AsyncGenerator[Page, None]:
        """Open a page in a fresh context; both are closed on exit."""
        async with self._contexts:
            browser = await self._get_browser()
            context = await browser.new_context(
                user_agent=_DESKTOP_UA,
                viewport={"width": 1920, "height": 1080},
            )
            await context.add_init_script(_HIDE_WEBDRIVER)
            page = await context.new_page()
            try:
                yield page
            finally:
                await page.close()
                await context.close()

    async def close(self) -> None:
        """Shut down the browser and Playwright subprocess (called during app shutdown)."""
        if self._browser and self._browser.is_connected():
            await self._browser.close()
            logger.info("Playwright browser closed")
        self._browser = None
        if self._pw:
            await self._pw.stop()
            self._pw = None
            logger.info("Playwright subprocess stopped")


browser_pool = BrowserPool()

"""Shared headless browser for the live-page tier.

One Chromium process serves every request. It is started on first use,
relaunched if it dies, and closed by shutdown_browser(), which the API
lifespan and the CLI call when the process is done. Requests never share
anything else: each scrape gets its own BrowserContext and Page.
"""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Browser, Playwright, async_playwright

from .. import config

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",                      # Docker's /dev/shm is tiny
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
]


class BrowserManager:
    """Owns the single Playwright driver + Chromium process.

    Usage:
        browser = await manager.acquire()
        context = await browser.new_context()
        ...
        await manager.shutdown()
    """

    def __init__(self, headless: bool | None = None) -> None:
        self.headless = headless
        self._pw: Playwright | None = None
        self._browser: Browser | None = None
        self._lock: asyncio.Lock | None = None

    @property
    def running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def acquire(self) -> Browser:
        """Return the shared browser, launching it if needed."""
        if self.running:
            return self._browser
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self.running:
                return self._browser
            if self._browser is not None:
                logger.warning("Shared browser disconnected, relaunching")
                await self._stop_driver()

            headless = self.headless
            if headless is None:
                headless = config.get_bool("POSTVIEW_HEADLESS", True)

            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(headless=headless, args=LAUNCH_ARGS)
            logger.info("Shared browser launched (headless=%s)", headless)
            return self._browser

    async def shutdown(self) -> None:
        if self._browser is None and self._pw is None:
            return
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                await self._browser.close()
                logger.info("Shared browser closed")
            await self._stop_driver()
        # the lock is bound to this event loop; the next acquire may run on another
        self._lock = None

    async def _stop_driver(self) -> None:
        self._browser = None
        if self._pw is not None:
            await self._pw.stop()
            self._pw = None


_manager = BrowserManager()


async def get_browser() -> Browser:
    return await _manager.acquire()


async def shutdown_browser() -> None:
    await _manager.shutdown()

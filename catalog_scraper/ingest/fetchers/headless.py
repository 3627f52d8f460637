"""Headless browser fetcher for challenge-protected listing pages."""

import asyncio
import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import BasePageFetcher, PageHandle, SourceId
from catalog_scraper.ingest.http_client import TransientFetchError
from catalog_scraper.ingest.stealth_browser import STEALTH_ARGS, stealth_browser

logger = logging.getLogger(__name__)


class PlaywrightPageHandle(PageHandle):
    """Live browser page; its title changes as a challenge resolves."""

    def __init__(self, page: Page, url: str, slot: asyncio.Semaphore):
        self.page = page
        self.url = url
        self._slot = slot
        self._closed = False

    async def title(self) -> str:
        return await self.page.title()

    async def content(self) -> str:
        return await self.page.content()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.page.close()
        except Exception as e:
            logger.debug(f"Error closing page {self.url}: {e}")
        finally:
            self._slot.release()


class PlaywrightPageFetcher(BasePageFetcher):
    """Loads pages in one shared stealth browser context."""

    def __init__(
        self,
        headless: Optional[bool] = None,
        max_pages: Optional[int] = None,
        navigation_timeout_ms: Optional[int] = None,
        post_load_delay: Optional[float] = None,
    ):
        """
        Initialize headless browser fetcher.

        Args:
            headless: Run without a visible window
            max_pages: Pages open at the same time across both sources
            navigation_timeout_ms: Timeout for the initial document load
            post_load_delay: Seconds to wait after the document loads
        """
        self.headless = settings.browser_headless if headless is None else headless
        self.navigation_timeout_ms = navigation_timeout_ms or settings.navigation_timeout_ms
        self.post_load_delay = (
            settings.post_load_delay_seconds if post_load_delay is None else post_load_delay
        )
        self._slots = asyncio.Semaphore(max_pages or settings.browser_max_pages)

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._init_lock = asyncio.Lock()

    async def _ensure_browser(self) -> BrowserContext:
        """Ensure browser and context are initialized."""
        async with self._init_lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()

            if self._browser is None:
                logger.info(f"Launching browser (headless={self.headless})")
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=STEALTH_ARGS,
                )

            if self._context is None:
                context_options = stealth_browser.get_stealth_context_options()
                self._context = await self._browser.new_context(**context_options)
                await stealth_browser.setup_stealth_context(self._context)

            return self._context

    async def fetch(self, url: str, source_id: SourceId) -> PageHandle:
        """
        Open a page and navigate to the URL.

        Args:
            url: Absolute URL to load
            source_id: Site the URL belongs to

        Returns:
            PlaywrightPageHandle; the caller closes it

        Raises:
            TransientFetchError: If navigation fails or times out
        """
        context = await self._ensure_browser()

        await self._slots.acquire()
        page: Optional[Page] = None
        try:
            page = await context.new_page()
            await stealth_browser.setup_stealth_page(
                page, {"Accept-Language": settings.accept_language}
            )

            logger.debug(f"Navigating to {url} ({source_id.value})")
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_ms,
            )

            if self.post_load_delay > 0:
                await asyncio.sleep(self.post_load_delay)

        except PlaywrightTimeoutError as e:
            await self._discard(page)
            raise TransientFetchError(f"Navigation timeout for {url}") from e
        except asyncio.CancelledError:
            await self._discard(page)
            raise
        except Exception as e:
            await self._discard(page)
            raise TransientFetchError(f"Failed to load {url}: {e}") from e

        return PlaywrightPageHandle(page, url, self._slots)

    async def _discard(self, page: Optional[Page]) -> None:
        try:
            if page is not None:
                await page.close()
        except Exception as e:
            logger.debug(f"Error closing failed page: {e}")
        finally:
            self._slots.release()

    async def close(self):
        """Close browser and cleanup."""
        if self._context:
            try:
                await self._context.close()
            except Exception as e:
                logger.error(f"Error closing browser context: {e}")
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

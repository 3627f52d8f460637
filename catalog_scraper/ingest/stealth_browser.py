"""Stealth enhancements for Playwright.

Hides WebDriver properties and other automation tells that the challenge
layer in front of both sites checks for.
"""

import logging
from typing import Any, Dict, Optional

from playwright.async_api import BrowserContext, Page

from catalog_scraper.config import settings

logger = logging.getLogger(__name__)

# Chromium launch flags that drop the most obvious automation markers
STEALTH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
]

STEALTH_SCRIPTS = [
    # Hide webdriver property
    """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => false
    });
    """,

    # Mock plugins
    """
    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5]
    });
    """,

    # Mock languages
    """
    Object.defineProperty(navigator, 'languages', {
        get: () => ['ka', 'en-US', 'en']
    });
    """,

    # Chrome runtime
    """
    window.chrome = {
        runtime: {}
    };
    """,
]


class StealthBrowser:
    """Applies stealth options and init scripts to Playwright contexts."""

    async def setup_stealth_context(self, context: BrowserContext) -> None:
        """
        Install stealth init scripts on every page the context opens.

        Args:
            context: Playwright browser context
        """
        for script in STEALTH_SCRIPTS:
            try:
                await context.add_init_script(script)
            except Exception as e:
                logger.debug(f"Error injecting stealth script: {e}")

    async def setup_stealth_page(self, page: Page, extra_headers: Optional[Dict[str, str]] = None) -> None:
        """
        Apply per-page headers.

        Args:
            page: Playwright page object
            extra_headers: Headers sent with every request of the page
        """
        if not extra_headers:
            return
        try:
            await page.set_extra_http_headers(extra_headers)
        except Exception as e:
            logger.warning(f"Error setting up stealth page: {e}")

    def get_stealth_context_options(self) -> Dict[str, Any]:
        """
        Get Playwright context options with stealth settings.

        Returns:
            Dict of context options
        """
        return {
            "viewport": {"width": 1920, "height": 1080},
            "user_agent": settings.user_agent,
            "locale": "ka-GE",
            "ignore_https_errors": False,
        }


# Global stealth browser instance
stealth_browser = StealthBrowser()

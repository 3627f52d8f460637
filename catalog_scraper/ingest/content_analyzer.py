"""Challenge detection for fetched listing pages.

Classifies a loaded document as:
- a challenge interstitial (expected to clear after a short wait)
- a hard block (will not clear by waiting, the page must be skipped)
- normal content
and drives a bounded wait-and-recheck loop over a live page handle.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import PageHandle

logger = logging.getLogger(__name__)


class PageState(str, Enum):
    """Classification of a loaded document."""

    CONTENT = "content"
    CHALLENGE = "challenge"
    BLOCKED = "blocked"


@dataclass
class ChallengeOutcome:
    """Result of waiting out a challenge."""

    challenge_cleared: bool
    state: PageState
    challenged: bool = False  # a challenge was seen at all
    waited_ms: int = 0


# Titles served by the interstitial while the browser is being checked
CHALLENGE_TITLE_MARKERS = [
    "just a moment",
    "verify you are human",
]

# Body text of the terminal block page
BLOCK_BODY_MARKERS = [
    "please unblock challenges.cloudflare.com",
]


class ContentAnalyzer:
    """Classifies documents and waits out challenge interstitials."""

    def __init__(
        self,
        poll_interval_ms: Optional[int] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.poll_interval_ms = (
            poll_interval_ms if poll_interval_ms is not None
            else settings.challenge_poll_interval_ms
        )
        self.settle_seconds = (
            settle_seconds if settle_seconds is not None
            else settings.challenge_settle_seconds
        )

    def classify(self, title: Optional[str], html: Optional[str] = None) -> PageState:
        """
        Classify a document from its title and (optionally) its markup.

        Args:
            title: Document title
            html: Document markup

        Returns:
            PageState
        """
        if html and self.is_blocked(html):
            return PageState.BLOCKED
        if self.is_challenge_title(title):
            return PageState.CHALLENGE
        return PageState.CONTENT

    @staticmethod
    def is_challenge_title(title: Optional[str]) -> bool:
        if not title:
            return False
        lowered = title.lower()
        return any(marker in lowered for marker in CHALLENGE_TITLE_MARKERS)

    @staticmethod
    def is_blocked(html: Optional[str]) -> bool:
        if not html:
            return False
        lowered = html.lower()
        return any(marker in lowered for marker in BLOCK_BODY_MARKERS)

    async def await_content(self, handle: PageHandle, timeout_ms: int) -> ChallengeOutcome:
        """
        Wait until the challenge marker leaves the document title.

        A challenge that does not clear within ``timeout_ms`` is reported as
        not cleared and the caller proceeds with whatever content is loaded.
        Never raises: internal errors report a clear page so the caller
        keeps making progress.

        Args:
            handle: Loaded page
            timeout_ms: Upper bound on the wait

        Returns:
            ChallengeOutcome
        """
        started = time.monotonic()
        try:
            title = await handle.title()
            if not self.is_challenge_title(title):
                return ChallengeOutcome(challenge_cleared=True, state=PageState.CONTENT)

            if not getattr(handle, "live", True):
                logger.warning(f"Challenge on static document {handle.url}, not waiting")
                return ChallengeOutcome(
                    challenge_cleared=False,
                    state=PageState.CHALLENGE,
                    challenged=True,
                )

            logger.info(f"Challenge detected on {handle.url}, waiting up to {timeout_ms}ms")
            deadline = started + timeout_ms / 1000
            cleared = False
            while time.monotonic() < deadline:
                await asyncio.sleep(self.poll_interval_ms / 1000)
                title = await handle.title()
                if not self.is_challenge_title(title):
                    cleared = True
                    break

            waited_ms = int((time.monotonic() - started) * 1000)
            if cleared:
                logger.info(f"Challenge passed on {handle.url} after {waited_ms}ms")
                if self.settle_seconds > 0:
                    await asyncio.sleep(self.settle_seconds)
                return ChallengeOutcome(
                    challenge_cleared=True,
                    state=PageState.CONTENT,
                    challenged=True,
                    waited_ms=waited_ms,
                )

            logger.warning(f"Challenge timeout on {handle.url} - continuing anyway")
            return ChallengeOutcome(
                challenge_cleared=False,
                state=PageState.CHALLENGE,
                challenged=True,
                waited_ms=waited_ms,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error checking challenge on {getattr(handle, 'url', '?')}: {e}")
            return ChallengeOutcome(challenge_cleared=True, state=PageState.CONTENT)


# Global instance
content_analyzer = ContentAnalyzer()

"""Tests for challenge detection."""

import asyncio

import pytest

from catalog_scraper.ingest.base import PageHandle, StaticPageHandle
from catalog_scraper.ingest.content_analyzer import ContentAnalyzer, PageState
from listing_pages import BLOCKED_PAGE


class TitleSequenceHandle(PageHandle):
    """Page whose title advances on every read, sticking at the last value."""

    def __init__(self, titles, html="<html></html>"):
        self.url = "https://example.test/page"
        self.titles = list(titles)
        self.html = html
        self.reads = 0

    async def title(self):
        index = min(self.reads, len(self.titles) - 1)
        self.reads += 1
        return self.titles[index]

    async def content(self):
        return self.html


class BrokenHandle(PageHandle):
    url = "https://example.test/broken"

    async def title(self):
        raise RuntimeError("target closed")

    async def content(self):
        return ""


def test_classify():
    analyzer = ContentAnalyzer()
    assert analyzer.classify("Just a moment...") is PageState.CHALLENGE
    assert analyzer.classify("Verify you are human") is PageState.CHALLENGE
    assert analyzer.classify("Aversi - მედიკამენტები", "<html></html>") is PageState.CONTENT
    assert analyzer.classify("Just a moment...", BLOCKED_PAGE) is PageState.BLOCKED
    assert analyzer.classify(None) is PageState.CONTENT


@pytest.mark.asyncio
async def test_clear_page_proceeds_immediately(fast_detector):
    handle = TitleSequenceHandle(["Aversi"])
    outcome = await fast_detector.await_content(handle, timeout_ms=1000)

    assert outcome.challenge_cleared is True
    assert outcome.challenged is False
    assert handle.reads == 1


@pytest.mark.asyncio
async def test_challenge_clears_after_polling(fast_detector):
    handle = TitleSequenceHandle(["Just a moment...", "Just a moment...", "Aversi"])
    outcome = await fast_detector.await_content(handle, timeout_ms=5000)

    assert outcome.challenge_cleared is True
    assert outcome.challenged is True
    assert outcome.state is PageState.CONTENT


@pytest.mark.asyncio
async def test_challenge_timeout_is_reported_not_raised(fast_detector):
    handle = TitleSequenceHandle(["Just a moment..."])
    outcome = await fast_detector.await_content(handle, timeout_ms=30)

    assert outcome.challenge_cleared is False
    assert outcome.state is PageState.CHALLENGE
    assert outcome.waited_ms >= 30


@pytest.mark.asyncio
async def test_internal_error_reports_clear(fast_detector):
    outcome = await fast_detector.await_content(BrokenHandle(), timeout_ms=100)
    assert outcome.challenge_cleared is True


@pytest.mark.asyncio
async def test_static_challenge_is_not_polled(fast_detector):
    handle = StaticPageHandle(url="https://www.aversi.ge/", html="<html></html>", page_title="Just a moment...")
    outcome = await asyncio.wait_for(fast_detector.await_content(handle, timeout_ms=120_000), timeout=1)

    assert outcome.challenged is True
    assert outcome.challenge_cleared is False
    assert outcome.state is PageState.CHALLENGE

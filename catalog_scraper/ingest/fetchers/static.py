"""Plain HTTP fetcher for pages that do not need a browser."""

import logging
from typing import Optional

import httpx
from selectolax.parser import HTMLParser

from catalog_scraper.ingest.base import BasePageFetcher, PageHandle, SourceId, StaticPageHandle
from catalog_scraper.ingest.http_client import fetch_with_policy, get_policy

logger = logging.getLogger(__name__)


class HttpPageFetcher(BasePageFetcher):
    """
    Fetches listing pages with httpx.

    The returned document never changes, so a challenge page stays a
    challenge page until the wait times out.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, max_attempts: Optional[int] = None):
        self._client = client
        self._owns_client = client is None
        self._policies = {source_id: get_policy(source_id, max_attempts) for source_id in SourceId}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def fetch(self, url: str, source_id: SourceId) -> PageHandle:
        """
        Download a page.

        Args:
            url: Absolute URL to load
            source_id: Site the URL belongs to

        Returns:
            StaticPageHandle over the downloaded markup

        Raises:
            TransientFetchError: If the download fails after retries
            PermanentURLError: If the server answers 404
        """
        resp = await fetch_with_policy(self._get_client(), url, self._policies[source_id])
        html = resp.text

        title = ""
        title_node = HTMLParser(html).css_first("title")
        if title_node is not None:
            title = title_node.text(strip=True)

        logger.debug(f"Fetched {url} ({resp.status_code}, {len(html)} bytes)")
        return StaticPageHandle(url=url, html=html, page_title=title)

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

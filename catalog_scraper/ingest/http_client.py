"""HTTP fetch helpers with per-source policies and status-aware retries."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Optional

import httpx

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import SourceId

logger = logging.getLogger(__name__)

# Transport errors worth another attempt
RETRYABLE_EXC = (
    httpx.ReadTimeout,
    httpx.ConnectTimeout,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    httpx.PoolTimeout,
)

# The challenge layer answers with these; the body still has to be classified
CHALLENGE_STATUSES = (403, 503)


class TransientFetchError(RuntimeError):
    """Raised when a page cannot be loaded (timeouts, transport errors, 5xx)."""
    pass


class PermanentURLError(RuntimeError):
    """Raised when URL is permanently invalid (404)."""
    pass


@dataclass(frozen=True)
class SitePolicy:
    """Retry and timeout policy for one source."""

    name: str
    max_attempts: int = 3
    timeout: Optional[httpx.Timeout] = None
    treat_404_as_permanent: bool = True
    max_retry_after: float = 60.0

    def __post_init__(self):
        if self.timeout is None:
            read_timeout = settings.navigation_timeout_ms / 1000
            object.__setattr__(
                self,
                "timeout",
                httpx.Timeout(connect=10.0, read=read_timeout, write=10.0, pool=10.0),
            )

    def backoff(self, attempt: int, retry_after: Optional[str] = None) -> float:
        """Seconds to wait before the next attempt."""
        if retry_after:
            try:
                return min(float(retry_after), self.max_retry_after)
            except ValueError:
                pass
        return (2 ** attempt) + random.random()


def get_policy(source_id: SourceId, max_attempts: Optional[int] = None) -> SitePolicy:
    """Build the policy for a source from settings."""
    return SitePolicy(
        name=source_id.value,
        max_attempts=max_attempts or settings.http_max_attempts,
    )


def default_headers() -> dict[str, str]:
    """Get browser-like headers for the listing sites."""
    return {
        "User-Agent": settings.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": settings.accept_language,
        "Accept-Encoding": "gzip, deflate, br",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }


async def fetch_with_policy(
    client: httpx.AsyncClient,
    url: str,
    policy: SitePolicy,
    headers: Optional[dict[str, str]] = None,
) -> httpx.Response:
    """
    Fetch URL with a source policy.

    2xx and challenge responses are returned. 429 and other statuses are
    retried, honoring Retry-After when the server sends one.

    Args:
        client: httpx AsyncClient instance
        url: URL to fetch
        policy: SitePolicy of the source
        headers: Optional additional headers (merged with defaults)

    Returns:
        httpx.Response

    Raises:
        PermanentURLError: If URL is permanently invalid (404)
        TransientFetchError: If fetch fails after retries
    """
    hdrs = default_headers()
    if headers:
        hdrs.update(headers)

    last_exc: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        retry_after = None
        try:
            resp = await client.get(url, headers=hdrs, timeout=policy.timeout, follow_redirects=True)
        except RETRYABLE_EXC as e:
            last_exc = e
            reason = type(e).__name__
        else:
            sc = resp.status_code
            if sc == 404 and policy.treat_404_as_permanent:
                raise PermanentURLError(f"{policy.name}: 404 for {url}")
            if 200 <= sc < 300 or sc in CHALLENGE_STATUSES:
                return resp

            if sc == 429:
                retry_after = resp.headers.get("Retry-After")
            last_exc = TransientFetchError(f"{policy.name}: status {sc} for {url}")
            reason = f"status {sc}"

        if attempt < policy.max_attempts:
            sleep_s = policy.backoff(attempt, retry_after)
            logger.warning(
                f"{policy.name}: {reason} for {url}, retrying in {sleep_s:.1f}s "
                f"(attempt {attempt}/{policy.max_attempts})"
            )
            await asyncio.sleep(sleep_s)

    raise TransientFetchError(
        f"{policy.name}: failed after {policy.max_attempts} attempts: {url}"
    ) from last_exc

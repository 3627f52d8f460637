"""Category discovery and category configuration loading."""

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin

from selectolax.parser import HTMLParser

from catalog_scraper.config import settings
from catalog_scraper.ingest.base import BasePageFetcher, CategoryTask, SourceId
from catalog_scraper.ingest.content_analyzer import ContentAnalyzer, content_analyzer
from catalog_scraper.ingest.http_client import PermanentURLError, TransientFetchError

logger = logging.getLogger(__name__)

MENU_LINK_SELECTOR = ".ty-menu__submenu-item .ty-menu__submenu-link"


class CategoryConfigError(RuntimeError):
    """Raised when a category configuration file cannot be used."""
    pass


class NoCategoriesError(RuntimeError):
    """Raised when a run has nothing to walk."""

    def __init__(self):
        super().__init__("No categories found")


def filter_menu_links(hrefs: Iterable[str]) -> List[str]:
    """
    Keep menu links that point at listing categories worth walking.

    A link is kept when it has a path segment after the language prefix,
    contains an include keyword and none of the exclude keywords.

    Args:
        hrefs: Raw href values from the menu

    Returns:
        Absolute category URLs in menu order, without duplicates
    """
    prefix = settings.shop_language_prefix
    segment = re.compile(re.escape(prefix) + r"[^/]+")
    kept: List[str] = []

    for href in hrefs:
        if not href or prefix not in href or not segment.search(href):
            continue
        if not any(keyword in href for keyword in settings.shop_include_keywords):
            continue
        if any(keyword in href for keyword in settings.shop_exclude_keywords):
            continue

        url = urljoin(settings.shop_base_url, href)
        if url not in kept:
            kept.append(url)

    return kept


async def discover_shop_categories(
    fetcher: BasePageFetcher,
    detector: Optional[ContentAnalyzer] = None,
) -> List[CategoryTask]:
    """
    Discover listing categories from the shop's navigation menu.

    Failures are logged and yield an empty list; static categories still
    apply.

    Args:
        fetcher: Page fetcher
        detector: Challenge detector (defaults to the shared instance)

    Returns:
        CategoryTask list with the default page budget
    """
    detector = detector or content_analyzer
    url = settings.shop_base_url

    try:
        handle = await fetcher.fetch(url, SourceId.SHOP)
        try:
            await detector.await_content(handle, settings.shop_challenge_timeout_ms)
            html = await handle.content()
        finally:
            await handle.close()
    except (TransientFetchError, PermanentURLError) as e:
        logger.error(f"Error fetching categories: {e}")
        return []
    except Exception as e:
        logger.error(f"Error fetching categories: {e}", exc_info=True)
        return []

    if detector.is_blocked(html):
        logger.warning("Category menu page is blocked, using static categories only")
        return []

    hrefs = [
        node.attributes.get("href") or ""
        for node in HTMLParser(html).css(MENU_LINK_SELECTOR)
    ]
    urls = filter_menu_links(hrefs)
    logger.info(f"Found {len(urls)} categories from the menu")

    return [
        CategoryTask(
            source_id=SourceId.SHOP,
            locator=category_url,
            start_page=1,
            end_page=settings.shop_default_end_page,
            page_size=settings.shop_default_page_size,
        )
        for category_url in urls
    ]


def load_static_categories(path: Path) -> List[CategoryTask]:
    """
    Load the static shop category list.

    Args:
        path: JSON file with a list of {category, startPage, endPage, perpage}

    Returns:
        CategoryTask list (empty if the file does not exist)

    Raises:
        CategoryConfigError: If the file is not valid
    """
    if not path.exists():
        logger.warning(f"{path} not found, no static categories")
        return []

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CategoryConfigError(f"Cannot read {path}: {e}") from e

    if not isinstance(entries, list):
        raise CategoryConfigError(f"{path} must contain a list of categories")

    tasks = []
    for entry in entries:
        try:
            tasks.append(CategoryTask(
                source_id=SourceId.SHOP,
                locator=str(entry["category"]),
                start_page=int(entry.get("startPage", 1)),
                end_page=int(entry.get("endPage", settings.shop_default_end_page)),
                page_size=int(entry.get("perpage", settings.shop_default_page_size)),
            ))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CategoryConfigError(f"Invalid category entry in {path}: {entry!r}") from e

    logger.info(f"Loaded {len(tasks)} static categories")
    return tasks


def load_farmid_categories(path: Path) -> Dict[str, str]:
    """
    Load the FarmID to category name mapping.

    Args:
        path: JSON object file {farmId: name}

    Returns:
        Mapping (empty with a warning if the file does not exist)

    Raises:
        CategoryConfigError: If the file is not valid
    """
    if not path.exists():
        logger.warning(f"{path} not found, skipping FarmID categories")
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CategoryConfigError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise CategoryConfigError(f"{path} must contain a FarmID to name object")

    categories = {str(farm_id): str(name) for farm_id, name in data.items()}
    logger.info(f"Loaded {len(categories)} FarmID categories")
    return categories


def resolve_tasks(
    discovered: List[CategoryTask],
    static: List[CategoryTask],
    farmid_categories: Dict[str, str],
) -> List[CategoryTask]:
    """
    Combine all category sources into the run's task list.

    Shop tasks are deduplicated by locator, first occurrence wins.

    Raises:
        NoCategoriesError: If there is nothing to walk
    """
    tasks: List[CategoryTask] = []
    seen = set()
    for task in list(discovered) + list(static):
        if task.locator in seen:
            continue
        seen.add(task.locator)
        tasks.append(task)

    logger.info(f"{len(tasks)} unique shop categories after deduplication")

    for farm_id, name in farmid_categories.items():
        tasks.append(CategoryTask(
            source_id=SourceId.FARMID,
            locator=farm_id,
            start_page=1,
            end_page=settings.farmid_max_pages,
            page_size=None,
            label=name,
        ))

    if not tasks:
        raise NoCategoriesError()
    return tasks


async def load_tasks(fetcher: BasePageFetcher, data_dir: Optional[Path] = None) -> List[CategoryTask]:
    """
    Build the task list for a run from discovery and the data directory.

    Raises:
        CategoryConfigError: If a configuration file is invalid
        NoCategoriesError: If there is nothing to walk
    """
    data_dir = Path(data_dir or settings.data_dir)

    discovered: List[CategoryTask] = []
    if settings.shop_discover_categories:
        discovered = await discover_shop_categories(fetcher)

    static = load_static_categories(data_dir / settings.static_categories_filename)
    farmid = load_farmid_categories(data_dir / settings.farmid_categories_filename)
    return resolve_tasks(discovered, static, farmid)

"""Fetch-every-page loop shared by activity and segment-effort downloads."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from activity_trend.services.errors import DataError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Strava's documented per_page cap
PER_PAGE = 200
ACTIVITY_PAGE_LIMIT = 500
EFFORT_PAGE_LIMIT = 50
PAGE_DELAY_SECONDS = 0.1

ProgressCallback = Callable[[int], None]


async def fetch_all(
    page_fetcher: Callable[[int], Awaitable[List[T]]],
    on_progress: Optional[ProgressCallback] = None,
    max_pages: int = ACTIVITY_PAGE_LIMIT,
) -> List[T]:
    """Request pages 1, 2, ... until one comes back empty.

    Strava may ignore ``per_page`` and serve a smaller default page, so a
    short page does not mean the history is exhausted; only an empty page
    ends the loop. ``max_pages`` bounds the work if that never happens.

    Args:
        page_fetcher: Coroutine function returning the items of one page
        on_progress: Called with the cumulative item count after each
            non-empty page. Never called for a page that failed.
        max_pages: Hard ceiling on the number of requests

    Returns:
        All items in page order

    Raises:
        DataError: if a page is not a list
        Any error raised by ``page_fetcher``, unchanged
    """
    results: List[T] = []
    page = 1

    while page <= max_pages:
        await asyncio.sleep(PAGE_DELAY_SECONDS)
        items = await page_fetcher(page)

        if not isinstance(items, list):
            raise DataError(f"Unexpected page response (page {page}): {type(items).__name__}")
        if not items:
            break

        results.extend(items)
        if on_progress:
            on_progress(len(results))
        logger.debug(f"Page {page}: {len(items)} item(s), {len(results)} total")
        page += 1
    else:
        logger.warning(f"Stopped after the {max_pages}-page safety cap with {len(results)} item(s)")

    return results

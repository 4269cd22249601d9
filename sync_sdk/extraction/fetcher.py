from typing import Any, Awaitable, Callable, List

from sync_sdk.common.error_codes import RateLimitError
from sync_sdk.common.rate_window import Rejected, RateWindowTracker
from sync_sdk.constants import PAGE_SIZE
from sync_sdk.extraction.models import FetchFailed, FetchOk, FetchResult, RateLimited
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)

PageFn = Callable[[int], Awaitable[Any]]
ExtractFn = Callable[[Any], List[Any]]


def default_extract(response: Any) -> List[Any]:
    return list(response or [])


class PaginatedFetcher:
    """Walks every page of a source collection through the rate window.

    Pages are requested from page 1 while the previous page came back full
    (its length equals ``page_size``). The result is all-or-nothing: a rate
    limit, whether rejected by the local tracker or by the source, discards
    every item accumulated so far.

    Args:
        tracker (RateWindowTracker): Gate consulted before every request.
        page_size (int): Page size the source was asked for.
    """

    def __init__(self, tracker: RateWindowTracker, page_size: int = PAGE_SIZE):
        self.tracker = tracker
        self.page_size = page_size

    async def fetch_all(
        self, page_fn: PageFn, extract_fn: ExtractFn = default_extract
    ) -> FetchResult:
        """Fetch every page.

        Args:
            page_fn: Coroutine function returning the raw response for a page.
            extract_fn: Returns the list of items held by a raw response.

        Returns:
            FetchResult: ``FetchOk`` with all items, ``RateLimited`` with the
            delay to wait, or ``FetchFailed`` with the error.
        """
        items: List[Any] = []
        page = 1

        while True:
            decision = self.tracker.attempt()
            if isinstance(decision, Rejected):
                logger.info(
                    f"Rate window exhausted on page {page}, discarding {len(items)} items"
                )
                return RateLimited(decision.remaining_cooldown_ms)

            try:
                response = await page_fn(page)
                page_items = extract_fn(response)
            except RateLimitError as e:
                logger.warning(
                    f"Source rate limited page {page}, retry in {e.delay_ms} ms"
                )
                return RateLimited(e.delay_ms)
            except Exception as e:
                logger.error(f"Failed to fetch page {page}: {e}")
                return FetchFailed(e)

            items.extend(page_items)
            if len(page_items) != self.page_size:
                return FetchOk(items=items, pages=page)
            page += 1

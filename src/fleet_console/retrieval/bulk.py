"""Complete-dataset retrieval for exports."""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config.logging_config import get_logger
from ..config.settings import config
from ..errors import ExportCancelledError, MalformedResponseError
from ..filters.criteria import FilterCriteria
from .client import PagedFetcher

logger = get_logger("bulk")


class CancelToken:
    """Cooperative cancellation flag checked before each page fetch."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ExportCancelledError(self.reason or "Export cancelled")


@dataclass
class PageProgress:
    """Progress snapshot after a page has been accumulated."""

    page: int
    total_pages: int
    accumulated: int


ProgressFn = Callable[[PageProgress], Any]


class BulkExporter:
    """
    Collects every record matching the criteria, one page at a time.

    Pages are requested sequentially with a fixed delay in between. A short
    page or an empty page ends the run even when the reported total says
    otherwise; the total is only read from the first response.
    """

    def __init__(
        self,
        fetcher: PagedFetcher,
        page_size: Optional[int] = None,
        request_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the exporter.

        Args:
            fetcher: Single-page fetcher for the endpoint.
            page_size: Records per export request (defaults to the endpoint's).
            request_delay: Seconds to wait between pages.
            sleep: Coroutine used for the inter-page delay.
        """
        self.fetcher = fetcher
        self.page_size = (
            page_size if page_size is not None else fetcher.endpoint.page_size or config.export.page_size
        )
        self.request_delay = (
            request_delay if request_delay is not None else config.export.request_delay_seconds
        )
        self._sleep = sleep
        if self.page_size < 1:
            raise ValueError("page_size must be > 0")

    async def collect_all(
        self,
        criteria: FilterCriteria,
        token: Optional[str],
        cancel: Optional[CancelToken] = None,
        on_page: Optional[ProgressFn] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch the full matching dataset.

        Args:
            criteria: Canonical filter criteria.
            token: Session token passed to every fetch.
            cancel: Optional cancel token checked before each page fetch.
            on_page: Optional callback receiving a PageProgress per page.

        Returns:
            All matching records in backend order.

        Raises:
            ExportCancelledError: If cancelled between pages.
            FleetAPIError: Any fetch failure; the partial buffer is discarded.
        """
        accumulated: List[Dict[str, Any]] = []
        total_pages = 1
        page = 1

        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()

            response = await self.fetcher.fetch_page(criteria, page, self.page_size, token)
            docs = response.docs
            if not isinstance(docs, list):
                raise MalformedResponseError("Page records are not a list")

            if not docs:
                logger.debug(f"Page {page} empty, stopping")
                break

            accumulated.extend(docs)
            if page == 1:
                total_pages = response.pages_or_default(1)
                logger.info(
                    f"Exporting {self.fetcher.endpoint.name}: "
                    f"{total_pages} page(s) reported, page size {self.page_size}"
                )

            if on_page is not None:
                on_page(PageProgress(page=page, total_pages=total_pages, accumulated=len(accumulated)))

            if len(docs) < self.page_size or page >= total_pages:
                break

            page += 1
            if self.request_delay > 0:
                await self._sleep(self.request_delay)

        logger.info(f"Collected {len(accumulated):,} records in {page} page(s)")
        return accumulated

"""Live listing view: filter, paginate and export one endpoint."""

import asyncio
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config.config_loader import EndpointConfig
from ..config.logging_config import get_logger
from ..config.settings import config
from ..errors import FleetAPIError, InvalidFilterError, UnauthorizedError, user_message
from ..export.orchestrator import ExportOrchestrator, ExportOutcome
from ..filters.criteria import FilterComposer, FilterCriteria
from ..filters.debounce import Debouncer
from ..retrieval.client import PagedFetcher

logger = get_logger("views")

FILTER_DEBOUNCE_KEY = "filters"


class ViewStatus(Enum):
    """Load state of the visible page."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


class ListingView:
    """
    State behind one paginated, filterable table.

    The view shows one page at a time, sized by entries_per_page. Filter
    edits are debounced and recomposed from the raw inputs; only a change
    in the canonical criteria resets the page and triggers a refetch.
    Exports always use the committed criteria, never half-typed input.
    """

    def __init__(
        self,
        endpoint: EndpointConfig,
        fetcher: PagedFetcher,
        orchestrator: Optional[ExportOrchestrator] = None,
        token_provider: Callable[[], Optional[str]] = lambda: None,
        on_unauthorized: Optional[Callable[[UnauthorizedError], Any]] = None,
        entries_per_page: Optional[int] = None,
        composer: Optional[FilterComposer] = None,
        debouncer: Optional[Debouncer] = None,
    ):
        """
        Initialize the view.

        Args:
            endpoint: Endpoint configuration.
            fetcher: Single-page fetcher for the endpoint.
            orchestrator: Export orchestrator; exports are disabled without one.
            token_provider: Returns the current session token on every call.
            on_unauthorized: Called when the backend rejects the session.
            entries_per_page: View page size (config.view.entries_per_page).
            composer: Filter composer (built from the endpoint if omitted).
            debouncer: Debouncer for filter edits.
        """
        self.endpoint = endpoint
        self.fetcher = fetcher
        self.orchestrator = orchestrator
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.entries_per_page = entries_per_page or config.view.entries_per_page
        self.composer = composer or FilterComposer.from_endpoint(endpoint)
        self.debouncer = debouncer or Debouncer()

        self.raw_inputs: Dict[str, Any] = {}
        self.criteria = FilterCriteria(identifier_field=self.composer.identifier_field)
        self.page = 1
        self.records: List[Dict[str, Any]] = []
        self.total_pages = 1
        self.total_count: Optional[int] = None
        self.status = ViewStatus.IDLE
        self.error: Optional[str] = None

        self._request_seq = 0

    # Filters

    def on_filter_change(
        self,
        raw: Mapping[str, Any],
        immediate: bool = False,
    ) -> "asyncio.Task":
        """
        Record raw filter edits and schedule recomposition.

        Args:
            raw: Changed inputs; None or "" clears a field.
            immediate: Skip the debounce delay.

        Returns:
            Task that applies the filters.
        """
        self.raw_inputs.update(raw)
        delay = 0 if immediate else self.endpoint.debounce_ms
        return self.debouncer.schedule(
            FILTER_DEBOUNCE_KEY, dict(self.raw_inputs), delay, self._apply_snapshot
        )

    async def _apply_snapshot(self, raw: Dict[str, Any]) -> None:
        await self._commit(raw)

    async def apply_filters(self, raw: Optional[Mapping[str, Any]] = None) -> FilterCriteria:
        """
        Merge raw inputs and commit them without debouncing.

        Returns:
            The committed criteria.
        """
        self.debouncer.cancel(FILTER_DEBOUNCE_KEY)
        if raw:
            self.raw_inputs.update(raw)
        await self._commit(dict(self.raw_inputs))
        return self.criteria

    async def clear_filters(self) -> FilterCriteria:
        """Drop every filter input and show unfiltered data."""
        self.debouncer.cancel(FILTER_DEBOUNCE_KEY)
        self.raw_inputs = {}
        await self._commit({})
        return self.criteria

    async def _commit(self, raw: Dict[str, Any]) -> None:
        try:
            criteria = self.composer.compose(raw)
        except InvalidFilterError as e:
            logger.warning(f"Rejected filter input for {self.endpoint.name}: {e}")
            self.error = str(e)
            return

        self.error = None
        if criteria == self.criteria:
            return

        if self.orchestrator is not None:
            self.orchestrator.cancel("filters changed")

        logger.debug(f"{self.endpoint.name} filters: {criteria.get_summary()}")
        self.criteria = criteria
        self.page = 1
        await self.refresh()

    # Pagination

    async def on_page_change(self, page: int) -> None:
        if page < 1:
            raise ValueError("page must be >= 1")
        self.page = page
        await self.refresh()

    async def on_entries_per_page_change(self, entries_per_page: int) -> None:
        if entries_per_page < 1:
            raise ValueError("entries_per_page must be > 0")
        self.entries_per_page = entries_per_page
        self.page = 1
        await self.refresh()

    async def refresh(self) -> None:
        """Fetch the current page. Responses to superseded requests are dropped."""
        self._request_seq += 1
        seq = self._request_seq
        self.status = ViewStatus.LOADING

        try:
            response = await self.fetcher.fetch_page(
                self.criteria, self.page, self.entries_per_page, self.token_provider()
            )
        except UnauthorizedError as e:
            if seq != self._request_seq:
                return
            self._show_error(e)
            if self.on_unauthorized is not None:
                self.on_unauthorized(e)
            return
        except FleetAPIError as e:
            if seq != self._request_seq:
                return
            logger.error(f"Failed to load {self.endpoint.name} page {self.page}: {e}")
            self._show_error(e)
            return

        if seq != self._request_seq:
            logger.debug(f"Discarding stale {self.endpoint.name} response #{seq}")
            return

        self.records = response.docs
        self.total_pages = response.pages_or_default(1)
        self.total_count = response.total_count
        self.error = None
        self.status = ViewStatus.READY if self.records else ViewStatus.EMPTY

    def _show_error(self, error: FleetAPIError) -> None:
        # Empty table plus banner; pagination keeps its last known extent
        self.records = []
        self.error = user_message(error)
        self.status = ViewStatus.ERROR

    # Export

    @property
    def can_export(self) -> bool:
        return self.orchestrator is not None and self.orchestrator.can_export

    async def on_export_click(self) -> Optional[ExportOutcome]:
        """
        Export everything matching the committed criteria.

        Returns:
            ExportOutcome, or None if exporting is unavailable or already running.
        """
        if self.orchestrator is None:
            logger.warning(f"No export configured for {self.endpoint.name}")
            return None

        outcome = await self.orchestrator.export(self.criteria, self.token_provider())
        if outcome is not None and outcome.unauthorized and self.on_unauthorized is not None:
            self.on_unauthorized(UnauthorizedError(outcome.error or "Unauthorized", status_code=401))
        return outcome

    async def close(self) -> None:
        """Cancel pending filter edits and wait for running ones."""
        self.debouncer.cancel_all()
        await self.debouncer.drain()

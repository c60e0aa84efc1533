"""Tests for complete-dataset collection."""

import pytest

from fleet_console.errors import ExportCancelledError, MalformedResponseError, NetworkOrServerError
from fleet_console.filters import FilterCriteria
from fleet_console.retrieval import BulkExporter, CancelToken


class RecordingSleep:
    """Stands in for asyncio.sleep and records the requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def exporter(fetcher, sleep):
    return BulkExporter(fetcher, page_size=100, request_delay=0.1, sleep=sleep)


class TestBulkExporter:
    """Test the page loop and its stop conditions."""

    @pytest.mark.asyncio
    async def test_collects_every_page(self, backend, exporter, record_factory, sleep):
        """Test 100/100/37 records: 237 rows in 3 fetches, ordered, no duplicates."""
        backend.records = record_factory(237)

        records = await exporter.collect_all(FilterCriteria(), "tok")

        assert len(records) == 237
        assert len(backend.requests) == 3
        assert [r["id"] for r in records] == [f"rec-{i:04d}" for i in range(237)]
        assert len({r["id"] for r in records}) == 237
        assert [p["page"] for p in backend.params] == ["1", "2", "3"]
        assert all(p["limit"] == "100" for p in backend.params)
        # Delay only between pages
        assert sleep.delays == [0.1, 0.1]

    @pytest.mark.asyncio
    async def test_empty_first_page(self, backend, exporter):
        """Test that an empty first page stops after one fetch whatever the total says."""
        backend.queue(200, json={"results": {"docs": [], "totalPages": 5}})

        records = await exporter.collect_all(FilterCriteria(), "tok")

        assert records == []
        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_short_page_stops(self, backend, exporter, record_factory):
        """Test that a short page ends the run even when more pages are reported."""
        backend.records = record_factory(150)
        backend.total_pages = 10

        records = await exporter.collect_all(FilterCriteria(), "tok")

        assert len(records) == 150
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_reported_total_stops(self, backend, exporter, record_factory):
        """Test that the first page's total caps the run."""
        backend.records = record_factory(300)
        backend.total_pages = 2

        records = await exporter.collect_all(FilterCriteria(), "tok")

        assert len(records) == 200
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_missing_total_assumes_one_page(self, backend, exporter, record_factory):
        """Test that an envelope without totals is treated as a single page."""
        backend.queue(200, json={"docs": record_factory(100)})
        backend.queue(200, json={"docs": record_factory(100, start=100)})

        records = await exporter.collect_all(FilterCriteria(), "tok")

        assert len(records) == 100
        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_empty_later_page_stops(self, backend, exporter, record_factory):
        """Test that an empty page after full ones stops the run."""
        backend.queue(200, json={"results": {"docs": record_factory(100), "totalPages": 4}})
        backend.queue(200, json={"results": {"docs": [], "totalPages": 4}})

        records = await exporter.collect_all(FilterCriteria(), "tok")

        assert len(records) == 100
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_failure_discards_buffer(self, backend, exporter, record_factory):
        """Test that a failing page aborts the whole job."""
        backend.queue(200, json={"results": {"docs": record_factory(100), "totalPages": 3}})
        backend.queue(503)

        with pytest.raises(NetworkOrServerError):
            await exporter.collect_all(FilterCriteria(), "tok")

    @pytest.mark.asyncio
    async def test_malformed_page_aborts(self, backend, exporter):
        """Test that a non-list page aborts with a format error."""
        backend.queue(200, json={"results": {"docs": "oops"}})

        with pytest.raises(MalformedResponseError):
            await exporter.collect_all(FilterCriteria(), "tok")

    @pytest.mark.asyncio
    async def test_cancel_before_next_page(self, backend, exporter, record_factory):
        """Test that cancellation is honored before the next fetch."""
        backend.records = record_factory(237)
        cancel = CancelToken()

        with pytest.raises(ExportCancelledError):
            await exporter.collect_all(
                FilterCriteria(), "tok", cancel=cancel, on_page=lambda progress: cancel.cancel()
            )

        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, backend, exporter):
        """Test that a pre-cancelled token sends nothing."""
        cancel = CancelToken()
        cancel.cancel("filters changed")

        with pytest.raises(ExportCancelledError, match="filters changed"):
            await exporter.collect_all(FilterCriteria(), "tok", cancel=cancel)

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_progress_reports(self, backend, exporter, record_factory):
        """Test the per-page progress callback."""
        backend.records = record_factory(237)
        progress = []

        await exporter.collect_all(FilterCriteria(), "tok", on_page=progress.append)

        assert [(p.page, p.total_pages, p.accumulated) for p in progress] == [
            (1, 3, 100),
            (2, 3, 200),
            (3, 3, 237),
        ]

    @pytest.mark.asyncio
    async def test_token_passed_to_every_fetch(self, backend, exporter, record_factory):
        """Test that each page request carries the token."""
        backend.records = record_factory(120)

        await exporter.collect_all(FilterCriteria(), "session-1")

        assert [r.headers["Authorization"] for r in backend.requests] == ["Bearer session-1"] * 2

    @pytest.mark.asyncio
    async def test_invalid_page_size(self, fetcher):
        """Test that a non-positive page size is rejected."""
        with pytest.raises(ValueError):
            BulkExporter(fetcher, page_size=-1)

"""Export orchestration: bulk retrieval, serialization and user-facing state."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from ..config.config_loader import EndpointConfig
from ..config.logging_config import get_logger
from ..errors import (
    ExportCancelledError,
    FleetAPIError,
    GENERIC_ERROR_MESSAGE,
    UnauthorizedError,
    user_message,
)
from ..filters.criteria import FilterCriteria
from ..retrieval.bulk import BulkExporter, CancelToken, PageProgress
from .columns import Column, get_columns
from .csv_serializer import CsvSerializer
from .download import DownloadSurface

logger = get_logger("orchestrator")

NO_DATA_MESSAGE = "No data to export"


class ExportState(Enum):
    """User-facing export state."""
    IDLE = "idle"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


class JobPhase(Enum):
    """Internal progress of a running export job."""
    IDLE = "idle"
    FETCHING = "fetching"
    SERIALIZING = "serializing"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


@dataclass
class ExportJob:
    """Transient state of the job in flight."""

    phase: JobPhase = JobPhase.IDLE
    page: int = 0
    total_pages: int = 0
    accumulated: int = 0


@dataclass
class ExportOutcome:
    """Result of a finished export."""

    state: ExportState
    row_count: int = 0
    filename: Optional[str] = None
    error: Optional[str] = None
    unauthorized: bool = False
    cancelled: bool = False
    duration_seconds: float = 0

    @property
    def succeeded(self) -> bool:
        return self.state == ExportState.DONE

    @property
    def message(self) -> str:
        """Text shown to the user once the job ends."""
        if self.state == ExportState.FAILED:
            return self.error or GENERIC_ERROR_MESSAGE
        if self.row_count == 0:
            return NO_DATA_MESSAGE
        return f"Exported {self.row_count:,} rows to {self.filename}"


class ExportOrchestrator:
    """
    Runs one export at a time for an endpoint.

    Usage:
        orchestrator = ExportOrchestrator(endpoint, exporter, FileDownloadSurface())
        outcome = await orchestrator.export(criteria, token)
    """

    def __init__(
        self,
        endpoint: EndpointConfig,
        exporter: BulkExporter,
        surface: DownloadSurface,
        columns: Optional[Sequence[Column]] = None,
        on_state_change: Optional[Callable[[ExportState], Any]] = None,
        on_progress: Optional[Callable[[PageProgress], Any]] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize the orchestrator.

        Args:
            endpoint: Endpoint configuration (entity name, filename rules).
            exporter: Bulk exporter for the endpoint.
            surface: Where the finished CSV is saved.
            columns: Column specs (defaults to the endpoint's registered spec).
            on_state_change: Called with each ExportState transition.
            on_progress: Called with a PageProgress after every page.
            today: Clock used for the filename date.
        """
        self.endpoint = endpoint
        self.exporter = exporter
        self.serializer = CsvSerializer(
            columns if columns is not None else get_columns(endpoint.name), surface
        )
        self.on_state_change = on_state_change
        self.on_progress = on_progress
        self._today = today

        self.state = ExportState.IDLE
        self.job = ExportJob()
        self.last_outcome: Optional[ExportOutcome] = None
        self._cancel: Optional[CancelToken] = None

    @property
    def can_export(self) -> bool:
        """False while a job is running."""
        return self.state != ExportState.EXPORTING

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Request cancellation of the running job. Returns True if one was running."""
        if self._cancel is None:
            return False
        logger.info(f"Cancelling {self.endpoint.name} export: {reason or 'requested'}")
        self._cancel.cancel(reason)
        return True

    async def export(self, criteria: FilterCriteria, token: Optional[str]) -> Optional[ExportOutcome]:
        """
        Export every record matching the criteria.

        Args:
            criteria: Committed filter criteria.
            token: Session token.

        Returns:
            ExportOutcome, or None when another export is already running.
        """
        if not self.can_export:
            logger.warning(f"{self.endpoint.name} export already in progress, request ignored")
            return None

        start_time = datetime.now()
        cancel = CancelToken()
        self._cancel = cancel
        self.job = ExportJob(phase=JobPhase.FETCHING)
        self._set_state(ExportState.EXPORTING)
        logger.info(f"Starting {self.endpoint.name} export ({criteria.get_summary()})")

        outcome = ExportOutcome(state=ExportState.FAILED)
        try:
            records = await self.exporter.collect_all(
                criteria, token, cancel=cancel, on_page=self._handle_progress
            )
            if not records:
                outcome = ExportOutcome(state=ExportState.DONE)
                self.job.phase = JobPhase.DOWNLOADED
                logger.info(f"{self.endpoint.name} export matched no records, nothing written")
            else:
                self.job.phase = JobPhase.SERIALIZING
                filename = self.serializer.download(
                    records,
                    self.endpoint.entity,
                    include_count=self.endpoint.include_count_in_filename,
                    today=self._today(),
                )
                self.job.phase = JobPhase.DOWNLOADED
                outcome = ExportOutcome(
                    state=ExportState.DONE, row_count=len(records), filename=filename
                )
        except ExportCancelledError as e:
            logger.info(f"{self.endpoint.name} export cancelled")
            outcome = ExportOutcome(state=ExportState.FAILED, error=user_message(e), cancelled=True)
        except UnauthorizedError as e:
            logger.warning(f"{self.endpoint.name} export rejected: {e}")
            outcome = ExportOutcome(
                state=ExportState.FAILED, error=user_message(e), unauthorized=True
            )
        except FleetAPIError as e:
            logger.error(f"{self.endpoint.name} export failed: {e}")
            outcome = ExportOutcome(state=ExportState.FAILED, error=user_message(e))
        except OSError as e:
            logger.error(f"{self.endpoint.name} export could not be saved: {e}")
            outcome = ExportOutcome(state=ExportState.FAILED, error=GENERIC_ERROR_MESSAGE)
        finally:
            self._cancel = None
            if outcome.state == ExportState.FAILED:
                self.job.phase = JobPhase.FAILED
            outcome.duration_seconds = (datetime.now() - start_time).total_seconds()
            self.last_outcome = outcome
            self._set_state(outcome.state)
            self._set_state(ExportState.IDLE)

        logger.info(
            f"{self.endpoint.name} export {outcome.state.value}: "
            f"{outcome.row_count:,} rows in {outcome.duration_seconds:.1f}s"
        )
        return outcome

    def _handle_progress(self, progress: PageProgress) -> None:
        self.job.page = progress.page
        self.job.total_pages = progress.total_pages
        self.job.accumulated = progress.accumulated
        if self.on_progress is not None:
            self.on_progress(progress)

    def _set_state(self, state: ExportState) -> None:
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

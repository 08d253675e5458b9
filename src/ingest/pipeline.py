"""Streaming import of one bulk dataset.

This module drives fetch, decompression, parsing, filtering and
reconciliation for a single dataset, with checkpoints and progress
observed on a timer rather than per record.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
import threading
from typing import Callable

from core.config import BulkImportConfig
from core.errors import CheckpointError, CourtBulkError, DecompressionError, FetchError
from core.logging_config import get_logger
from core.types import (
    DatasetResult,
    DatasetState,
    ImportOptions,
    ParsedRecord,
    ParseFailure,
    RawLine,
)
from ingest.checkpoint_store import CheckpointManager
from ingest.jurisdiction_filter import JurisdictionFilter
from ingest.line_reader import iter_archive_lines
from ingest.progress import ProgressEvent, ProgressReporter
from ingest.reconciler import ReconcileOutcome, UpsertReconciler
from ingest.record_parser import parse_line

_LOGGER = get_logger(__name__)

ArchiveFetcher = Callable[..., Path]

_OUTCOME_EVENTS = {
    ReconcileOutcome.CREATED: ProgressEvent.CREATED,
    ReconcileOutcome.UPDATED: ProgressEvent.UPDATED,
    ReconcileOutcome.UNCHANGED: ProgressEvent.UNCHANGED,
    ReconcileOutcome.FAILED: ProgressEvent.PERSISTENCE_ERROR,
}


@dataclass
class _PendingLine:
    """One line awaiting confirmation, in archive order."""

    line_number: int
    external_id: str | None = None
    future: Future[ReconcileOutcome] | None = None


class _ReconcileWindow:
    """Ordered window of lines whose reconciliation is not yet confirmed.

    ``confirmed_line`` only advances over a line once that line and every
    earlier line are confirmed, so a checkpoint never runs ahead of a
    write still in flight.
    """

    def __init__(
        self,
        reconciler: UpsertReconciler,
        reporter: ProgressReporter,
        start_line: int,
        executor: ThreadPoolExecutor | None,
        max_in_flight: int,
    ) -> None:
        self._reconciler = reconciler
        self._reporter = reporter
        self._executor = executor
        self._max_in_flight = max_in_flight
        self._pending: deque[_PendingLine] = deque()
        self._in_flight_ids: set[str] = set()
        self.confirmed_line = start_line

    def mark_done(self, line_number: int) -> None:
        """Record a line that needs no store write."""
        if not self._pending:
            self.confirmed_line = line_number
            return
        self._pending.append(_PendingLine(line_number))
        self._drain_ready()

    def submit(self, line_number: int, record: ParsedRecord) -> None:
        """Reconcile a record inline or on the worker pool."""
        if self._executor is None:
            self._apply(self._reconciler.reconcile(record))
            self.confirmed_line = line_number
            return
        while self._pending and (
            record.external_id in self._in_flight_ids
            or len(self._in_flight_ids) >= self._max_in_flight
        ):
            self._drain_one()
        future = self._executor.submit(self._reconciler.reconcile, record)
        self._in_flight_ids.add(record.external_id)
        self._pending.append(_PendingLine(line_number, record.external_id, future))
        self._drain_ready()

    def drain_all(self) -> None:
        """Wait for every in-flight write and confirm its line."""
        while self._pending:
            self._drain_one()

    def _drain_ready(self) -> None:
        while self._pending and (
            self._pending[0].future is None or self._pending[0].future.done()
        ):
            self._drain_one()

    def _drain_one(self) -> None:
        pending = self._pending.popleft()
        if pending.future is not None and pending.external_id is not None:
            self._apply(pending.future.result())
            self._in_flight_ids.discard(pending.external_id)
        self.confirmed_line = pending.line_number

    def _apply(self, outcome: ReconcileOutcome) -> None:
        self._reporter.record(_OUTCOME_EVENTS[outcome])


class DatasetImportRunner:
    """Stateful runner for one dataset: idle, fetching, streaming, done."""

    def __init__(
        self,
        dataset_name: str,
        config: BulkImportConfig,
        options: ImportOptions,
        reconciler: UpsertReconciler,
        jurisdiction_filter: JurisdictionFilter,
        checkpoints: CheckpointManager,
        fetcher: ArchiveFetcher,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._dataset_name = dataset_name
        self._config = config
        self._options = options
        self._reconciler = reconciler
        self._filter = jurisdiction_filter
        self._checkpoints = checkpoints
        self._fetcher = fetcher
        self._stop_event = stop_event or threading.Event()
        self._reporter = ProgressReporter(
            dataset_name=dataset_name,
            interval_seconds=config.progress_interval_seconds,
        )
        self._state = DatasetState.IDLE

    @property
    def state(self) -> DatasetState:
        """Current lifecycle state."""
        return self._state

    def run(self) -> DatasetResult:
        """Import the dataset and return its final state and counters."""
        self._transition(DatasetState.FETCHING)
        try:
            archive_path = self._fetcher(
                self._dataset_name,
                self._config,
                skip_download=self._options.skip_download,
                force_download=self._options.force_download,
            )
        except FetchError as error:
            return self._fail(error)
        start_line = self._resume_point()
        self._transition(DatasetState.STREAMING)
        self._reporter.start()
        try:
            cancelled = self._stream(archive_path, start_line)
        except (DecompressionError, CheckpointError) as error:
            return self._fail(error)
        final_state = DatasetState.CANCELLED if cancelled else DatasetState.COMPLETED
        self._transition(final_state)
        self._reporter.finish(final_state.value)
        return DatasetResult(self._dataset_name, final_state, self._reporter.stats)

    def _resume_point(self) -> int:
        if not self._options.resume:
            self._checkpoints.reset(self._dataset_name)
            return 0
        checkpoint = self._checkpoints.load(self._dataset_name)
        start_line = checkpoint.last_processed_line if checkpoint else 0
        _LOGGER.info(
            "dataset_resume_point",
            dataset_name=self._dataset_name,
            resume_after_line=start_line,
            checkpoint_found=checkpoint is not None,
        )
        return start_line

    def _stream(self, archive_path: Path, start_line: int) -> bool:
        """Stream every line; return True when stopped by cancellation."""
        max_in_flight = max(1, self._options.concurrency)
        executor = ThreadPoolExecutor(max_workers=max_in_flight) if max_in_flight > 1 else None
        window = _ReconcileWindow(
            self._reconciler, self._reporter, start_line, executor, max_in_flight
        )
        lines = iter_archive_lines(archive_path)
        cancelled = False
        try:
            for raw_line in lines:
                if self._stop_event.is_set():
                    cancelled = True
                    break
                if raw_line.line_number <= start_line:
                    self._reporter.record(ProgressEvent.RESUMED_PAST)
                    continue
                self._process_line(window, raw_line)
                self._checkpoints.maybe_save(self._dataset_name, window.confirmed_line)
                self._reporter.maybe_report(raw_line.line_number)
        finally:
            lines.close()
            window.drain_all()
            if executor is not None:
                executor.shutdown(wait=True)
            self._checkpoints.finalize(self._dataset_name, window.confirmed_line)
        if cancelled:
            _LOGGER.warning(
                "dataset_import_cancelled",
                dataset_name=self._dataset_name,
                last_processed_line=window.confirmed_line,
            )
        return cancelled

    def _process_line(self, window: _ReconcileWindow, raw_line: RawLine) -> None:
        line_number = raw_line.line_number
        self._reporter.record(ProgressEvent.PROCESSED)
        parsed = parse_line(raw_line, self._dataset_name)
        if isinstance(parsed, ParseFailure):
            self._reporter.record(ProgressEvent.PARSE_ERROR)
            _LOGGER.warning(
                "record_parse_failed",
                dataset_name=self._dataset_name,
                line_number=parsed.line_number,
                reason=parsed.reason,
                excerpt=parsed.excerpt,
            )
            window.mark_done(line_number)
            return
        if not self._filter.included(parsed):
            self._reporter.record(ProgressEvent.SKIPPED)
            window.mark_done(line_number)
            return
        window.submit(line_number, parsed)

    def _transition(self, state: DatasetState) -> None:
        _LOGGER.debug(
            "dataset_state_changed",
            dataset_name=self._dataset_name,
            from_state=self._state.value,
            to_state=state.value,
        )
        self._state = state

    def _fail(self, error: CourtBulkError) -> DatasetResult:
        self._transition(DatasetState.FAILED)
        _LOGGER.error(
            "dataset_import_failed",
            dataset_name=self._dataset_name,
            error_type=type(error).__name__,
            error=str(error),
        )
        self._reporter.finish(DatasetState.FAILED.value)
        return DatasetResult(
            self._dataset_name,
            DatasetState.FAILED,
            self._reporter.stats,
            error=str(error),
        )

"""Unit tests for single-dataset streaming imports."""

from __future__ import annotations

import threading
import time
from typing import Any

from core.config import BulkImportConfig
from core.errors import FetchError
from core.types import DatasetState, ImportOptions
from ingest.archive_fetcher import cached_archive_path
from ingest.checkpoint_store import CheckpointManager
from ingest.jurisdiction_filter import JurisdictionFilter
from ingest.pipeline import DatasetImportRunner
from ingest.reconciler import UpsertReconciler
from store.entity_store import COURTS_TABLE
from tests.archive_fixtures import (
    build_config,
    build_store,
    cached_fetcher,
    court_line,
    seed_cached_archive,
)


class _ThreadSafeStore:
    """In-memory store that records overlapping writes per identifier."""

    def __init__(self, write_delay: float = 0.0) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.overlaps: list[str] = []
        self._active: set[str] = set()
        self._lock = threading.Lock()
        self._write_delay = write_delay

    def find(self, _table_name: str, external_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self.rows.get(external_id)
            return dict(row) if row is not None else None

    def insert(self, _table_name: str, external_id: str, values: dict[str, Any]) -> str:
        self._write(external_id, values)
        return external_id

    def update(self, _table_name: str, external_id: str, values: dict[str, Any]) -> None:
        self._write(external_id, values)

    def _write(self, external_id: str, values: dict[str, Any]) -> None:
        with self._lock:
            if external_id in self._active:
                self.overlaps.append(external_id)
            self._active.add(external_id)
        time.sleep(self._write_delay)
        with self._lock:
            self.rows.setdefault(external_id, {}).update(values)
            self._active.discard(external_id)


def _runner(
    config: BulkImportConfig,
    store: Any,
    options: ImportOptions | None = None,
    fetcher: Any = None,
    stop_event: threading.Event | None = None,
    dataset_name: str = "courts",
) -> DatasetImportRunner:
    jurisdiction_filter = JurisdictionFilter(config.jurisdiction)
    return DatasetImportRunner(
        dataset_name=dataset_name,
        config=config,
        options=options or ImportOptions(),
        reconciler=UpsertReconciler(store, jurisdiction_filter, sleep=lambda _s: None),
        jurisdiction_filter=jurisdiction_filter,
        checkpoints=CheckpointManager(config.cache_dir, config.checkpoint_interval_seconds),
        fetcher=fetcher or cached_fetcher(),
        stop_event=stop_event,
    )


def _saved_line(config: BulkImportConfig, dataset_name: str = "courts") -> int | None:
    checkpoint = CheckpointManager(config.cache_dir).load(dataset_name)
    return checkpoint.last_processed_line if checkpoint else None


def test_run_isolates_malformed_line(tmp_path) -> None:
    """A malformed line between two valid ones should not stop the import."""
    config = build_config(tmp_path)
    store = build_store(config)
    seed_cached_archive(
        config,
        "courts",
        [court_line("calsuper_a", "A"), "{broken", court_line("calsuper_b", "B")],
    )

    result = _runner(config, store).run()

    assert result.state == DatasetState.COMPLETED
    assert (result.stats.parse_errors, result.stats.created) == (1, 2)
    assert store.count(COURTS_TABLE) == 2


def test_run_isolates_line_beyond_decoder_limits(tmp_path) -> None:
    """A line rejected by JSON decoder limits should only count as a parse error."""
    config = build_config(tmp_path)
    store = build_store(config)
    oversized_line = '{"id": ' + "9" * 5000 + "}"
    seed_cached_archive(
        config,
        "courts",
        [court_line("calsuper_a", "A"), oversized_line, court_line("calsuper_b", "B")],
    )

    result = _runner(config, store).run()

    assert result.state == DatasetState.COMPLETED
    assert (result.stats.parse_errors, result.stats.created) == (1, 2)


def test_run_skips_out_of_jurisdiction_records(tmp_path) -> None:
    """Excluded courts should be counted as skipped and never written."""
    config = build_config(tmp_path)
    store = build_store(config)
    seed_cached_archive(
        config,
        "courts",
        [
            court_line("calsuper_alameda", "Alameda"),
            court_line("nysuper_albany", "Albany", jurisdiction="NY"),
        ],
    )

    result = _runner(config, store).run()

    assert (result.stats.created, result.stats.skipped) == (1, 1)
    assert store.find(COURTS_TABLE, "nysuper_albany") is None


def test_run_resumes_after_checkpoint(tmp_path) -> None:
    """Resume should reconcile only lines after the saved checkpoint."""
    config = build_config(tmp_path)
    store = build_store(config)
    seed_cached_archive(
        config,
        "courts",
        [court_line(f"calsuper_{index}", f"Court {index}") for index in range(1, 1601)],
    )
    CheckpointManager(config.cache_dir).finalize("courts", 1500)

    result = _runner(config, store, ImportOptions(resume=True)).run()

    assert (result.stats.resumed_past, result.stats.processed) == (1500, 100)
    assert store.find(COURTS_TABLE, "calsuper_1500") is None
    assert store.find(COURTS_TABLE, "calsuper_1501") is not None
    assert _saved_line(config) == 1600


def test_run_without_resume_restarts_from_first_line(tmp_path) -> None:
    """A non-resume run should ignore and replace an old checkpoint."""
    config = build_config(tmp_path)
    store = build_store(config)
    seed_cached_archive(config, "courts", [court_line("calsuper_a", "A")])
    CheckpointManager(config.cache_dir).finalize("courts", 50)

    result = _runner(config, store).run()

    assert (result.stats.resumed_past, result.stats.created) == (0, 1)
    assert _saved_line(config) == 1


def test_run_fails_when_fetch_fails(tmp_path) -> None:
    """A fetch error should fail the dataset without streaming."""
    config = build_config(tmp_path)

    def _failing_fetcher(*_args: Any, **_kwargs: Any) -> Any:
        raise FetchError("network down")

    runner = _runner(config, _ThreadSafeStore(), fetcher=_failing_fetcher)
    result = runner.run()

    assert result.state == DatasetState.FAILED and runner.state == DatasetState.FAILED
    assert "network down" in (result.error or "")


def test_run_fails_on_corrupt_archive_and_keeps_confirmed_checkpoint(tmp_path) -> None:
    """Decompression failure should fail the dataset with progress kept."""
    config = build_config(tmp_path)
    store = _ThreadSafeStore()
    archive = cached_archive_path(config.cache_dir, "courts")
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b"BZh91AY&SY" + b"\x00garbage" * 64)

    result = _runner(config, store).run()

    assert result.state == DatasetState.FAILED
    assert _saved_line(config) == 0


def test_run_with_concurrency_never_overlaps_same_identifier(tmp_path) -> None:
    """Concurrent writes should serialize per identifier and confirm every line."""
    config = build_config(tmp_path)
    store = _ThreadSafeStore(write_delay=0.002)
    lines = [court_line(f"calsuper_{index % 5}", f"Court {index}") for index in range(60)]
    seed_cached_archive(config, "courts", lines)

    result = _runner(config, store, ImportOptions(concurrency=4)).run()

    assert result.state == DatasetState.COMPLETED
    assert store.overlaps == []
    assert result.stats.created + result.stats.updated + result.stats.unchanged == 60
    assert store.rows["calsuper_4"]["name"] == "Court 59"
    assert _saved_line(config) == 60


def test_run_stops_cooperatively_when_cancelled(tmp_path) -> None:
    """Cancellation should finish the current line and flush a checkpoint."""
    config = build_config(tmp_path)
    stop_event = threading.Event()

    class _StoppingStore(_ThreadSafeStore):
        def insert(self, table_name: str, external_id: str, values: dict[str, Any]) -> str:
            row_id = super().insert(table_name, external_id, values)
            if len(self.rows) == 3:
                stop_event.set()
            return row_id

    store = _StoppingStore()
    seed_cached_archive(
        config, "courts", [court_line(f"calsuper_{index}", "C") for index in range(1, 11)]
    )

    result = _runner(config, store, stop_event=stop_event).run()

    assert result.state == DatasetState.CANCELLED
    assert len(store.rows) == 3 and _saved_line(config) == 3

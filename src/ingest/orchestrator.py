"""Import orchestration across bulk datasets.

This module sequences the courts and judges datasets, applies run-mode
flags, and aggregates per-dataset results into one summary.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading

from core.config import BulkImportConfig
from core.constants import COURTS_DATASET, DATASET_ORDER, JUDGES_DATASET
from core.errors import ConfigurationError
from core.logging_config import get_logger
from core.types import DatasetResult, DatasetState, ImportOptions, ImportSummary
from ingest.archive_fetcher import fetch_archive
from ingest.checkpoint_store import CheckpointManager
from ingest.jurisdiction_filter import JurisdictionFilter
from ingest.pipeline import ArchiveFetcher, DatasetImportRunner
from ingest.progress import ImportStats
from ingest.reconciler import UpsertReconciler
from store.entity_store import EntityStore

_LOGGER = get_logger(__name__)


def select_datasets(options: ImportOptions) -> tuple[str, ...]:
    """Return the datasets to import, courts first.

    Raises:
        ConfigurationError: If the run-mode flags conflict.
    """
    if options.courts_only and options.judges_only:
        raise ConfigurationError(
            "Cannot combine --courts-only and --judges-only. Pick one or neither."
        )
    if options.concurrency < 1:
        raise ConfigurationError(
            f"Invalid concurrency {options.concurrency}: expected an integer of at least 1."
        )
    if options.courts_only:
        return (COURTS_DATASET,)
    if options.judges_only:
        return (JUDGES_DATASET,)
    return DATASET_ORDER


class ImportOrchestrator:
    """Run the selected datasets and report one summary."""

    def __init__(
        self,
        config: BulkImportConfig,
        store: EntityStore,
        checkpoints: CheckpointManager | None = None,
        fetcher: ArchiveFetcher = fetch_archive,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._checkpoints = checkpoints or CheckpointManager(
            config.cache_dir, config.checkpoint_interval_seconds
        )
        self._fetcher = fetcher
        self._stop_event = stop_event or threading.Event()
        self._filter = JurisdictionFilter(config.jurisdiction)
        self._reconciler = UpsertReconciler(store, self._filter)

    def run(self, options: ImportOptions) -> ImportSummary:
        """Import every selected dataset.

        Args:
            options: Run-mode flags.

        Returns:
            Per-dataset results in dataset order.

        Raises:
            ConfigurationError: If flags conflict or the store is unreachable.
        """
        datasets = select_datasets(options)
        self._store.check_connection()
        _LOGGER.info(
            "import_run_started",
            datasets=list(datasets),
            resume=options.resume,
            skip_download=options.skip_download,
            concurrency=options.concurrency,
            parallel_datasets=options.parallel_datasets,
        )
        if options.parallel_datasets and len(datasets) > 1:
            results = self._run_parallel(datasets, options)
        else:
            results = self._run_sequential(datasets, options)
        summary = ImportSummary(results=tuple(results))
        _LOGGER.info(
            "import_run_finished",
            succeeded=summary.succeeded,
            exit_code=summary.exit_code,
            states={result.dataset_name: result.state.value for result in results},
        )
        return summary

    def _run_sequential(
        self, datasets: tuple[str, ...], options: ImportOptions
    ) -> list[DatasetResult]:
        results: list[DatasetResult] = []
        for dataset_name in datasets:
            if self._stop_event.is_set():
                results.append(
                    DatasetResult(dataset_name, DatasetState.CANCELLED, ImportStats())
                )
                continue
            results.append(self._build_runner(dataset_name, options).run())
        return results

    def _run_parallel(
        self, datasets: tuple[str, ...], options: ImportOptions
    ) -> list[DatasetResult]:
        with ThreadPoolExecutor(max_workers=len(datasets)) as executor:
            futures = [
                executor.submit(self._build_runner(dataset_name, options).run)
                for dataset_name in datasets
            ]
            return [future.result() for future in futures]

    def _build_runner(self, dataset_name: str, options: ImportOptions) -> DatasetImportRunner:
        return DatasetImportRunner(
            dataset_name=dataset_name,
            config=self._config,
            options=options,
            reconciler=self._reconciler,
            jurisdiction_filter=self._filter,
            checkpoints=self._checkpoints,
            fetcher=self._fetcher,
            stop_event=self._stop_event,
        )


def run_import(
    options: ImportOptions,
    config: BulkImportConfig,
    stop_event: threading.Event | None = None,
) -> ImportSummary:
    """Run a bulk import against the configured entity store.

    Args:
        options: Run-mode flags.
        config: Runtime configuration.
        stop_event: Optional event that requests cooperative cancellation.

    Returns:
        Aggregated import summary.

    Raises:
        ConfigurationError: If credentials are missing, flags conflict, or
            the store is unreachable.
    """
    database_url = config.require_database_url()
    store = EntityStore.from_url(database_url, config.network_timeout_seconds)
    orchestrator = ImportOrchestrator(config, store, stop_event=stop_event)
    return orchestrator.run(options)

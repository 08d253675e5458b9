"""Per-dataset import counters and periodic progress events.

The reporter is the only writer of ``ImportStats``. Pipeline components
emit events; they never read or mutate counters themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Callable

from core.constants import DEFAULT_PROGRESS_INTERVAL_SECONDS
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


class ProgressEvent(str, Enum):
    """Events emitted by the streaming loop."""

    PROCESSED = "processed"
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    RESUMED_PAST = "resumed_past"
    PARSE_ERROR = "parse_errors"
    PERSISTENCE_ERROR = "persistence_errors"


@dataclass
class ImportStats:
    """Counters for one dataset import.

    Attributes:
        processed: Lines parsed after the resume point.
        created: Entities inserted.
        updated: Entities whose owned fields changed.
        unchanged: Entities already up to date.
        skipped: Records excluded by the jurisdiction filter.
        resumed_past: Lines at or before the loaded checkpoint.
        parse_errors: Malformed lines.
        persistence_errors: Records whose write failed after retries.
    """

    processed: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    resumed_past: int = 0
    parse_errors: int = 0
    persistence_errors: int = 0

    @property
    def errors(self) -> int:
        """Total recoverable errors."""
        return self.parse_errors + self.persistence_errors

    def as_dict(self) -> dict[str, int]:
        """Return counters as a plain mapping for log events."""
        return {event.value: getattr(self, event.value) for event in ProgressEvent}


@dataclass
class ProgressReporter:
    """Aggregate progress events and surface them on a timer."""

    dataset_name: str
    interval_seconds: float = DEFAULT_PROGRESS_INTERVAL_SECONDS
    clock: Callable[[], float] = time.monotonic
    stats: ImportStats = field(default_factory=ImportStats)
    started_at: float | None = None
    last_reported_at: float | None = None

    def start(self) -> None:
        """Log one event when streaming starts."""
        self.started_at = self.clock()
        self.last_reported_at = self.started_at
        _LOGGER.info("import_dataset_started", dataset_name=self.dataset_name)

    def record(self, event: ProgressEvent, count: int = 1) -> None:
        """Apply one event to the counters."""
        setattr(self.stats, event.value, getattr(self.stats, event.value) + count)

    def maybe_report(self, current_line: int) -> bool:
        """Emit a progress event if the report interval has elapsed."""
        now = self.clock()
        if self.last_reported_at is not None and now - self.last_reported_at < self.interval_seconds:
            return False
        self.last_reported_at = now
        _LOGGER.info(
            "import_progress",
            dataset_name=self.dataset_name,
            current_line=current_line,
            elapsed_seconds=round(self._elapsed(now), 3),
            **self.stats.as_dict(),
        )
        return True

    def finish(self, state: str) -> None:
        """Log the dataset completion summary."""
        _LOGGER.info(
            "import_dataset_finished",
            dataset_name=self.dataset_name,
            state=state,
            elapsed_seconds=round(self._elapsed(self.clock()), 3),
            **self.stats.as_dict(),
        )

    def _elapsed(self, now: float) -> float:
        if self.started_at is None:
            return 0.0
        return max(0.0, now - self.started_at)


def format_stats_line(dataset_name: str, state: str, stats: ImportStats) -> str:
    """Render the printed per-dataset summary line."""
    return (
        f"{dataset_name}\t{state}\t"
        f"processed={stats.processed}\t"
        f"created={stats.created}\t"
        f"updated={stats.updated}\t"
        f"unchanged={stats.unchanged}\t"
        f"skipped={stats.skipped}\t"
        f"resumed_past={stats.resumed_past}\t"
        f"errors={stats.errors}\t"
        f"(parse={stats.parse_errors}, persistence={stats.persistence_errors})"
    )

"""Shared typed models.

This module defines the record, checkpoint, and run-result models used by
the ingest and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Union

from core.constants import (
    EXIT_CANCELLED,
    EXIT_DATASET_FAILED,
    EXIT_OK,
)

if TYPE_CHECKING:
    from ingest.progress import ImportStats


@dataclass(frozen=True)
class RawLine:
    """One newline-delimited unit of a decompressed archive.

    Attributes:
        line_number: One-based ordinal within the dataset.
        text: Decoded line text without the trailing newline.
    """

    line_number: int
    text: str


@dataclass(frozen=True)
class CourtRecord:
    """Court row from the courts bulk archive.

    Attributes:
        external_id: Stable provider-assigned identifier.
        name: Display name.
        jurisdiction: Upstream jurisdiction code.
        court_level: Court-level classification.
        location: Free-form location or address text.
        website: Court website URL.
        payload: Full upstream record, preserved verbatim.
    """

    external_id: str
    name: str
    jurisdiction: str | None = None
    court_level: str | None = None
    location: str | None = None
    website: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JudgePosition:
    """One position held by a judge.

    Attributes:
        court_id: External identifier of the court.
        date_start: Start marker as sent upstream.
        date_end: End marker as sent upstream, None while current.
        role: Position or job title text.
    """

    court_id: str | None
    date_start: str | None = None
    date_end: str | None = None
    role: str | None = None


@dataclass(frozen=True)
class JudgeRecord:
    """Judge row from the judges bulk archive.

    Attributes:
        external_id: Stable provider-assigned identifier.
        full_name: Display name.
        positions: Positions in upstream order.
        payload: Full upstream record, preserved verbatim.
    """

    external_id: str
    full_name: str
    positions: tuple[JudgePosition, ...] = ()
    payload: Mapping[str, Any] = field(default_factory=dict)


ParsedRecord = Union[CourtRecord, JudgeRecord]


@dataclass(frozen=True)
class ParseFailure:
    """Structured parse error for one archive line.

    Attributes:
        line_number: One-based ordinal of the failing line.
        reason: Human-readable failure description.
        excerpt: Truncated line text for diagnostics.
    """

    line_number: int
    reason: str
    excerpt: str


@dataclass(frozen=True)
class Checkpoint:
    """Durable ingestion progress marker for one dataset.

    Attributes:
        dataset_name: Dataset identifier.
        last_processed_line: Highest fully reconciled line ordinal.
        saved_at: UTC time of the save.
    """

    dataset_name: str
    last_processed_line: int
    saved_at: datetime


class DatasetState(str, Enum):
    """Lifecycle of one dataset import."""

    IDLE = "idle"
    FETCHING = "fetching"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ImportOptions:
    """Import command options.

    Attributes:
        courts_only: Import only the courts dataset.
        judges_only: Import only the judges dataset.
        resume: Continue each dataset after its saved checkpoint.
        skip_download: Reuse cached archives when present.
        force_download: Always re-download archives.
        concurrency: Maximum in-flight store writes per dataset.
        parallel_datasets: Run datasets concurrently instead of courts first.
    """

    courts_only: bool = False
    judges_only: bool = False
    resume: bool = False
    skip_download: bool = False
    force_download: bool = False
    concurrency: int = 1
    parallel_datasets: bool = False


@dataclass
class DatasetResult:
    """Final state of one dataset import."""

    dataset_name: str
    state: DatasetState
    stats: "ImportStats"
    error: str | None = None


@dataclass(frozen=True)
class ImportSummary:
    """Aggregated outcome of one import run."""

    results: tuple[DatasetResult, ...]

    @property
    def succeeded(self) -> bool:
        """Return whether every dataset completed."""
        return all(result.state == DatasetState.COMPLETED for result in self.results)

    @property
    def exit_code(self) -> int:
        """Map dataset states onto a process exit status."""
        states = {result.state for result in self.results}
        if DatasetState.FAILED in states:
            return EXIT_DATASET_FAILED
        if DatasetState.CANCELLED in states:
            return EXIT_CANCELLED
        return EXIT_OK

"""Unit tests for run summary models."""

from __future__ import annotations

from core.types import DatasetResult, DatasetState, ImportSummary
from ingest.progress import ImportStats


def _summary(*states: DatasetState) -> ImportSummary:
    return ImportSummary(
        results=tuple(
            DatasetResult(f"dataset-{index}", state, ImportStats())
            for index, state in enumerate(states)
        )
    )


def test_summary_exit_code_is_zero_when_all_completed() -> None:
    """Completed datasets should map to a zero exit code."""
    summary = _summary(DatasetState.COMPLETED, DatasetState.COMPLETED)

    assert summary.succeeded and summary.exit_code == 0


def test_summary_exit_code_prefers_failure_over_cancellation() -> None:
    """A failed dataset should dominate the exit code."""
    summary = _summary(DatasetState.FAILED, DatasetState.CANCELLED)

    assert not summary.succeeded and summary.exit_code == 1


def test_summary_exit_code_reports_cancellation() -> None:
    """Cancelled runs should use the interrupt exit code."""
    summary = _summary(DatasetState.COMPLETED, DatasetState.CANCELLED)

    assert summary.exit_code == 130

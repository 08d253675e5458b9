"""Import checkpoint persistence.

This module stores the highest fully reconciled line per dataset so an
interrupted import can resume without reprocessing confirmed lines.
Saves are throttled to a fixed interval to bound file I/O.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import os
from pathlib import Path
import time
from typing import Callable

from core.constants import CHECKPOINTS_DIR_NAME, DEFAULT_CHECKPOINT_INTERVAL_SECONDS
from core.errors import CheckpointError
from core.logging_config import get_logger
from core.types import Checkpoint

_LOGGER = get_logger(__name__)


class CheckpointManager:
    """Filesystem-backed per-dataset checkpoint store."""

    def __init__(
        self,
        cache_dir: Path,
        save_interval_seconds: float = DEFAULT_CHECKPOINT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._checkpoint_dir = cache_dir / CHECKPOINTS_DIR_NAME
        self._checkpoint_dir.mkdir(parents=True, exist_ok=True)
        self._save_interval_seconds = save_interval_seconds
        self._clock = clock
        self._last_saved_at: dict[str, float] = {}
        self._last_saved_line: dict[str, int] = {}

    def load(self, dataset_name: str) -> Checkpoint | None:
        """Load the saved checkpoint for a dataset.

        A missing or malformed checkpoint file means "start from line 0".

        Args:
            dataset_name: Dataset identifier.

        Returns:
            Saved checkpoint, or None when none is usable.
        """
        checkpoint = self._read_checkpoint(dataset_name)
        if checkpoint is not None:
            self._last_saved_line[dataset_name] = checkpoint.last_processed_line
        return checkpoint

    def maybe_save(self, dataset_name: str, current_line: int, now: float | None = None) -> bool:
        """Save a checkpoint if the save interval has elapsed.

        The first call for a dataset starts its interval timer.

        Args:
            dataset_name: Dataset identifier.
            current_line: Highest fully reconciled line ordinal.
            now: Monotonic clock reading, taken from the manager clock if omitted.

        Returns:
            True when a checkpoint was written.
        """
        now_value = self._clock() if now is None else now
        last_saved_at = self._last_saved_at.get(dataset_name)
        if last_saved_at is None:
            self._last_saved_at[dataset_name] = now_value
            return False
        if now_value - last_saved_at < self._save_interval_seconds:
            return False
        self._save(dataset_name, current_line)
        self._last_saved_at[dataset_name] = now_value
        return True

    def finalize(self, dataset_name: str, current_line: int) -> Checkpoint:
        """Save a checkpoint unconditionally.

        Args:
            dataset_name: Dataset identifier.
            current_line: Highest fully reconciled line ordinal.

        Returns:
            The checkpoint now on disk.
        """
        checkpoint = self._save(dataset_name, current_line)
        self._last_saved_at[dataset_name] = self._clock()
        return checkpoint

    def reset(self, dataset_name: str) -> None:
        """Remove a dataset checkpoint so the next run starts at line 0."""
        self._checkpoint_path(dataset_name).unlink(missing_ok=True)
        self._last_saved_at.pop(dataset_name, None)
        self._last_saved_line.pop(dataset_name, None)

    def list_checkpoints(self) -> list[Checkpoint]:
        """Return every readable checkpoint, ordered by dataset name."""
        checkpoints: list[Checkpoint] = []
        for checkpoint_path in sorted(self._checkpoint_dir.glob("*.json")):
            checkpoint = self._read_checkpoint(checkpoint_path.stem)
            if checkpoint is not None:
                checkpoints.append(checkpoint)
        return checkpoints

    def _save(self, dataset_name: str, current_line: int) -> Checkpoint:
        previous_line = self._last_saved_line.get(dataset_name, 0)
        if current_line < previous_line:
            _LOGGER.warning(
                "checkpoint_regression_ignored",
                dataset_name=dataset_name,
                current_line=current_line,
                saved_line=previous_line,
            )
            current_line = previous_line
        checkpoint = Checkpoint(
            dataset_name=dataset_name,
            last_processed_line=current_line,
            saved_at=datetime.now(timezone.utc),
        )
        self._write_checkpoint(checkpoint)
        self._last_saved_line[dataset_name] = current_line
        _LOGGER.debug(
            "checkpoint_saved",
            dataset_name=dataset_name,
            last_processed_line=current_line,
        )
        return checkpoint

    def _read_checkpoint(self, dataset_name: str) -> Checkpoint | None:
        """Read a checkpoint file, treating unreadable content as absent."""
        checkpoint_path = self._checkpoint_path(dataset_name)
        if not checkpoint_path.exists():
            return None
        try:
            payload = json.loads(checkpoint_path.read_text(encoding="utf-8"))
            last_line = payload["last_processed_line"]
            if isinstance(last_line, bool) or not isinstance(last_line, int) or last_line < 0:
                raise ValueError(f"invalid last_processed_line {last_line!r}")
            return Checkpoint(
                dataset_name=str(payload["dataset"]),
                last_processed_line=last_line,
                saved_at=datetime.fromisoformat(str(payload["saved_at"])),
            )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as error:
            _LOGGER.warning(
                "checkpoint_unreadable",
                dataset_name=dataset_name,
                checkpoint_path=str(checkpoint_path),
                error=str(error),
            )
            return None

    def _write_checkpoint(self, checkpoint: Checkpoint) -> None:
        """Write a checkpoint file atomically."""
        checkpoint_path = self._checkpoint_path(checkpoint.dataset_name)
        temp_path = checkpoint_path.with_name(checkpoint_path.name + ".tmp")
        payload = {
            "dataset": checkpoint.dataset_name,
            "last_processed_line": checkpoint.last_processed_line,
            "saved_at": checkpoint.saved_at.isoformat(),
        }
        try:
            temp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            os.replace(temp_path, checkpoint_path)
        except OSError as error:
            raise CheckpointError(
                f"Failed to write checkpoint at {checkpoint_path}: {error}. "
                "Check free space and permissions of the cache directory."
            ) from error

    def _checkpoint_path(self, dataset_name: str) -> Path:
        return self._checkpoint_dir / f"{dataset_name}.json"

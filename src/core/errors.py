"""Bulk import exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Fatal errors stop one dataset; recoverable ones are counted and logged.
"""

from __future__ import annotations


class CourtBulkError(Exception):
    """Base exception for all bulk import failures."""


class ConfigurationError(CourtBulkError):
    """Raised for missing credentials, invalid flags, or an unreachable store."""


class FetchError(CourtBulkError):
    """Raised when an archive cannot be retrieved from remote storage."""


class DecompressionError(CourtBulkError):
    """Raised when a cached archive is corrupt and cannot be streamed."""


class CheckpointError(CourtBulkError):
    """Raised when a checkpoint file cannot be written."""


class PersistenceError(CourtBulkError):
    """Raised when an entity write fails after bounded retries."""

    def __init__(self, external_id: str, message: str) -> None:
        super().__init__(f"{message} (external_id={external_id})")
        self.external_id = external_id

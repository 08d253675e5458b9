"""Public SDK surface for courtbulk.

This module provides a stable import path for programmatic imports.
It re-exports the orchestrator, store, and typed option models.
"""

from __future__ import annotations

from core.config import BulkImportConfig, JurisdictionSettings
from core.types import (
    CourtRecord,
    DatasetResult,
    DatasetState,
    ImportOptions,
    ImportSummary,
    JudgeRecord,
)
from ingest.jurisdiction_filter import JurisdictionFilter
from ingest.orchestrator import ImportOrchestrator, run_import
from ingest.progress import ImportStats
from store.entity_store import EntityStore

__all__ = [
    "BulkImportConfig",
    "CourtRecord",
    "DatasetResult",
    "DatasetState",
    "EntityStore",
    "ImportOptions",
    "ImportOrchestrator",
    "ImportStats",
    "ImportSummary",
    "JudgeRecord",
    "JurisdictionFilter",
    "JurisdictionSettings",
    "run_import",
]

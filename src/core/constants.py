"""Core constants used across bulk import modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_CACHE_DIR = Path(".courtbulk")
ARCHIVES_DIR_NAME = "archives"
CHECKPOINTS_DIR_NAME = "checkpoints"
ARCHIVE_FILE_TEMPLATE = "{dataset}.jsonl.bz2"
PARTIAL_DOWNLOAD_SUFFIX = ".partial"
DEFAULT_BULK_DATA_URI = "s3://com-courtlistener-storage/bulk-data"

COURTS_DATASET = "courts"
JUDGES_DATASET = "judges"
DATASET_ORDER = (COURTS_DATASET, JUDGES_DATASET)

DEFAULT_CHECKPOINT_INTERVAL_SECONDS = 5.0
DEFAULT_PROGRESS_INTERVAL_SECONDS = 30.0
DEFAULT_NETWORK_TIMEOUT_SECONDS = 60.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 0.5
MAX_RETRY_DELAY_SECONDS = 30.0
PARSE_EXCERPT_LENGTH = 200

DEFAULT_STATE_PREFIX = "cal"
DEFAULT_FEDERAL_COURT_IDS = (
    "ca9",
    "cacd",
    "caed",
    "cand",
    "casd",
    "cacb",
    "caeb",
    "canb",
    "casb",
)
DEFAULT_JURISDICTION_CODE = "CA"
DEFAULT_STATE_NAME = "California"

EXIT_OK = 0
EXIT_DATASET_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_CANCELLED = 130

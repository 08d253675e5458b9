"""Runtime configuration model for bulk imports.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path

from core.constants import (
    DEFAULT_BULK_DATA_URI,
    DEFAULT_CACHE_DIR,
    DEFAULT_CHECKPOINT_INTERVAL_SECONDS,
    DEFAULT_FEDERAL_COURT_IDS,
    DEFAULT_JURISDICTION_CODE,
    DEFAULT_NETWORK_TIMEOUT_SECONDS,
    DEFAULT_PROGRESS_INTERVAL_SECONDS,
    DEFAULT_STATE_NAME,
    DEFAULT_STATE_PREFIX,
)
from core.errors import ConfigurationError


@dataclass(frozen=True)
class JurisdictionSettings:
    """Target jurisdiction used by the inclusion filter.

    Attributes:
        state_prefix: Court identifier prefix for state courts.
        federal_court_ids: Federal court identifiers inside the state.
        jurisdiction_code: Value of the upstream jurisdiction field.
        state_name: Token searched for in court display names.
        state_abbreviation: Token searched for in court location text.
    """

    state_prefix: str = DEFAULT_STATE_PREFIX
    federal_court_ids: frozenset[str] = frozenset(DEFAULT_FEDERAL_COURT_IDS)
    jurisdiction_code: str = DEFAULT_JURISDICTION_CODE
    state_name: str = DEFAULT_STATE_NAME
    state_abbreviation: str = DEFAULT_JURISDICTION_CODE


@dataclass(frozen=True)
class BulkImportConfig:
    """Validated runtime configuration.

    Attributes:
        cache_dir: Local directory for cached archives and checkpoints.
        database_url: SQLAlchemy URL of the court/judge entity store.
        bulk_data_uri: ``s3://bucket/prefix`` holding the bulk archives.
        s3_region: Optional default AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
        checkpoint_interval_seconds: Minimum delay between checkpoint saves.
        progress_interval_seconds: Minimum delay between progress events.
        network_timeout_seconds: Timeout applied to fetch and store calls.
        jurisdiction: Inclusion filter settings.
    """

    cache_dir: Path
    database_url: str | None
    bulk_data_uri: str = DEFAULT_BULK_DATA_URI
    s3_region: str | None = None
    s3_profile: str | None = None
    checkpoint_interval_seconds: float = DEFAULT_CHECKPOINT_INTERVAL_SECONDS
    progress_interval_seconds: float = DEFAULT_PROGRESS_INTERVAL_SECONDS
    network_timeout_seconds: float = DEFAULT_NETWORK_TIMEOUT_SECONDS
    jurisdiction: JurisdictionSettings = field(default_factory=JurisdictionSettings)

    @classmethod
    def from_env(cls) -> "BulkImportConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConfigurationError: If environment values are invalid.
        """
        cache_dir_value = os.getenv("COURTBULK_CACHE_DIR", str(DEFAULT_CACHE_DIR))
        return cls(
            cache_dir=Path(cache_dir_value).expanduser().resolve(),
            database_url=os.getenv("COURTBULK_DATABASE_URL") or None,
            bulk_data_uri=os.getenv("COURTBULK_BULK_DATA_URI", DEFAULT_BULK_DATA_URI),
            s3_region=os.getenv("COURTBULK_S3_REGION"),
            s3_profile=os.getenv("COURTBULK_S3_PROFILE"),
            checkpoint_interval_seconds=_parse_seconds(
                "COURTBULK_CHECKPOINT_INTERVAL_SECONDS",
                DEFAULT_CHECKPOINT_INTERVAL_SECONDS,
            ),
            progress_interval_seconds=_parse_seconds(
                "COURTBULK_PROGRESS_INTERVAL_SECONDS",
                DEFAULT_PROGRESS_INTERVAL_SECONDS,
            ),
            network_timeout_seconds=_parse_seconds(
                "COURTBULK_NETWORK_TIMEOUT_SECONDS",
                DEFAULT_NETWORK_TIMEOUT_SECONDS,
            ),
            jurisdiction=_jurisdiction_from_env(),
        )

    def require_database_url(self) -> str:
        """Return the store URL or fail before any dataset starts.

        Raises:
            ConfigurationError: If no store URL is configured.
        """
        if not self.database_url:
            raise ConfigurationError(
                "Entity store credentials missing: set COURTBULK_DATABASE_URL "
                "or pass --database-url."
            )
        return self.database_url


def _jurisdiction_from_env() -> JurisdictionSettings:
    """Read jurisdiction filter overrides from the environment."""
    jurisdiction_code = os.getenv("COURTBULK_JURISDICTION_CODE", DEFAULT_JURISDICTION_CODE)
    federal_value = os.getenv("COURTBULK_FEDERAL_COURTS")
    federal_court_ids = (
        _parse_id_list(federal_value)
        if federal_value is not None
        else frozenset(DEFAULT_FEDERAL_COURT_IDS)
    )
    return JurisdictionSettings(
        state_prefix=os.getenv("COURTBULK_STATE_PREFIX", DEFAULT_STATE_PREFIX),
        federal_court_ids=federal_court_ids,
        jurisdiction_code=jurisdiction_code,
        state_name=os.getenv("COURTBULK_STATE_NAME", DEFAULT_STATE_NAME),
        state_abbreviation=jurisdiction_code,
    )


def _parse_id_list(raw_value: str) -> frozenset[str]:
    """Parse a comma separated identifier list."""
    return frozenset(part.strip() for part in raw_value.split(",") if part.strip())


def _parse_seconds(variable_name: str, default: float) -> float:
    """Parse a positive duration environment value.

    Args:
        variable_name: Environment variable to read.
        default: Value used when the variable is unset.

    Returns:
        Parsed duration in seconds.

    Raises:
        ConfigurationError: If value is not a non-negative number.
    """
    raw_value = os.getenv(variable_name)
    if raw_value is None:
        return default
    try:
        seconds = float(raw_value)
    except ValueError as error:
        raise ConfigurationError(
            f"Invalid {variable_name} value: expected number of seconds, got '{raw_value}'."
        ) from error
    if seconds < 0:
        raise ConfigurationError(
            f"Invalid {variable_name} value: expected a non-negative number, got '{raw_value}'."
        )
    return seconds

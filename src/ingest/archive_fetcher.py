"""Bulk archive retrieval from remote object storage.

This module downloads named dataset snapshots from S3 into the local
cache directory. Downloads land on a partial path and are renamed into
place only once complete.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.config import BulkImportConfig
from core.constants import (
    ARCHIVE_FILE_TEMPLATE,
    ARCHIVES_DIR_NAME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    PARTIAL_DOWNLOAD_SUFFIX,
)
from core.errors import FetchError
from core.logging_config import get_logger
from core.retry import build_retrying
from core.s3_uri import parse_s3_uri

_LOGGER = get_logger(__name__)

_TRANSIENT_FETCH_ERRORS = (BotoCoreError, ClientError, OSError)


def archive_file_name(dataset_name: str) -> str:
    """Return the archive file name for a dataset."""
    return ARCHIVE_FILE_TEMPLATE.format(dataset=dataset_name)


def cached_archive_path(cache_dir: Path, dataset_name: str) -> Path:
    """Return the local cache path of a dataset archive."""
    return cache_dir / ARCHIVES_DIR_NAME / archive_file_name(dataset_name)


def fetch_archive(
    dataset_name: str,
    config: BulkImportConfig,
    skip_download: bool = False,
    force_download: bool = False,
    s3_client: Any | None = None,
    sleep: Callable[[float], None] | None = None,
) -> Path:
    """Make a dataset archive available in the local cache.

    A cached archive is trusted as-is and reused unless ``force_download``
    is set. Only missing archives are downloaded.

    Args:
        dataset_name: Dataset identifier, e.g. ``courts``.
        config: Runtime config with cache and remote locations.
        skip_download: Never touch the network; fail when nothing is cached.
        force_download: Re-download even when a cached archive exists.
        s3_client: Optional preconfigured boto3 S3 client.
        sleep: Optional sleep function used between retries.

    Returns:
        Path of the complete cached archive.

    Raises:
        FetchError: If the archive cannot be downloaded, or is not cached
            while ``skip_download`` is set.
    """
    local_path = cached_archive_path(config.cache_dir, dataset_name)
    if not force_download and local_path.is_file():
        _LOGGER.info(
            "dataset_archive_cache_hit",
            dataset_name=dataset_name,
            archive_path=str(local_path),
        )
        return local_path
    if skip_download and not force_download:
        raise FetchError(
            f"No cached archive at {local_path} and --skip-download forbids fetching it. "
            "Rerun without --skip-download."
        )
    location = parse_s3_uri(config.bulk_data_uri)
    object_key = location.object_key(archive_file_name(dataset_name))
    client = s3_client if s3_client is not None else create_s3_client(config)
    local_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = local_path.with_name(local_path.name + PARTIAL_DOWNLOAD_SUFFIX)
    _LOGGER.info(
        "dataset_archive_download_started",
        dataset_name=dataset_name,
        source_uri=f"s3://{location.bucket}/{object_key}",
    )
    retry_kwargs: dict[str, Any] = {}
    if sleep is not None:
        retry_kwargs["sleep"] = sleep
    retrying = build_retrying(
        attempts=DEFAULT_RETRY_ATTEMPTS,
        base_delay=DEFAULT_RETRY_BASE_DELAY_SECONDS,
        retry_on=_TRANSIENT_FETCH_ERRORS,
        description=f"download:{dataset_name}",
        **retry_kwargs,
    )
    try:
        retrying(client.download_file, location.bucket, object_key, str(partial_path))
        os.replace(partial_path, local_path)
    except _TRANSIENT_FETCH_ERRORS as error:
        partial_path.unlink(missing_ok=True)
        raise FetchError(
            f"Failed to download s3://{location.bucket}/{object_key} to {local_path}: "
            f"{error}. Check AWS credentials and network access, or place the "
            "archive in the cache directory."
        ) from error
    _LOGGER.info(
        "dataset_archive_download_completed",
        dataset_name=dataset_name,
        archive_path=str(local_path),
        size_bytes=local_path.stat().st_size,
    )
    return local_path


def create_s3_client(config: BulkImportConfig) -> Any:
    """Create a boto3 S3 client with explicit network timeouts.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.
    """
    session = boto3.session.Session(**_build_boto3_session_kwargs(config))
    client_config = Config(
        connect_timeout=config.network_timeout_seconds,
        read_timeout=config.network_timeout_seconds,
        retries={"max_attempts": 1, "mode": "standard"},
    )
    return session.client("s3", config=client_config)


def _build_boto3_session_kwargs(config: BulkImportConfig) -> dict[str, str]:
    """Build boto3 Session kwargs from config.

    Args:
        config: Runtime config.

    Returns:
        Session keyword arguments.
    """
    kwargs: dict[str, str] = {}
    if config.s3_profile:
        kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        kwargs["region_name"] = config.s3_region
    return kwargs

"""S3 URI parsing helpers.

This module centralizes S3 URI parsing for archive locations.
It keeps URI validation behavior consistent across the codebase.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import ConfigurationError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    prefix: str

    def object_key(self, file_name: str) -> str:
        """Join a file name onto the location prefix."""
        return f"{self.prefix.rstrip('/')}/{file_name}"


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 URI.

    Args:
        uri: URI in format ``s3://bucket/prefix``.

    Returns:
        Parsed bucket and prefix pair.

    Raises:
        ConfigurationError: If the URI lacks a scheme, bucket or prefix.
    """
    if not uri.startswith("s3://"):
        _raise_uri_error(uri)
    stripped_uri = uri.removeprefix("s3://")
    if "/" not in stripped_uri:
        _raise_uri_error(uri)
    bucket, prefix = stripped_uri.split("/", 1)
    if not bucket or not prefix.strip("/"):
        _raise_uri_error(uri)
    return S3Location(bucket=bucket, prefix=prefix.strip("/"))


def _raise_uri_error(uri: str) -> None:
    raise ConfigurationError(
        f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. "
        "Set COURTBULK_BULK_DATA_URI to the bulk-data location."
    )

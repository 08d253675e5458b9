"""Unit tests for S3 URI parsing."""

from __future__ import annotations

import pytest

from core.errors import ConfigurationError
from core.s3_uri import parse_s3_uri


def test_parse_s3_uri_splits_bucket_and_prefix() -> None:
    """Valid URIs should yield bucket, prefix and object keys."""
    location = parse_s3_uri("s3://com-courtlistener-storage/bulk-data/")

    assert location.bucket == "com-courtlistener-storage"
    assert location.object_key("courts.jsonl.bz2") == "bulk-data/courts.jsonl.bz2"


@pytest.mark.parametrize("uri", ["https://example.com/x", "s3://bucket-only", "s3:///prefix"])
def test_parse_s3_uri_rejects_invalid_uris(uri: str) -> None:
    """Malformed URIs should raise configuration errors."""
    with pytest.raises(ConfigurationError):
        parse_s3_uri(uri)

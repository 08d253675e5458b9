"""Streaming decompression and line splitting for bulk archives.

This module turns a cached archive into a lazy sequence of numbered
lines. The decompressed payload is never held in memory as a whole.
"""

from __future__ import annotations

import bz2
import gzip
from pathlib import Path
from typing import IO, Iterator

from core.errors import DecompressionError
from core.types import RawLine

_CORRUPT_STREAM_ERRORS = (OSError, EOFError)


def iter_archive_lines(archive_path: Path) -> Iterator[RawLine]:
    """Yield numbered lines from a compressed newline-delimited archive.

    Blank lines consume an ordinal but are not yielded, so ordinals stay
    stable between runs over the same archive.

    Args:
        archive_path: Local ``.bz2``, ``.gz`` or uncompressed file.

    Yields:
        One raw line per non-blank newline-delimited unit.

    Raises:
        DecompressionError: If the archive is missing or corrupt.
    """
    try:
        stream = _open_decompressed(archive_path)
    except OSError as error:
        raise DecompressionError(
            f"Failed to open archive {archive_path}: {error}. "
            "Re-download the archive and retry."
        ) from error
    with stream:
        line_number = 0
        while True:
            try:
                raw_bytes = stream.readline()
            except _CORRUPT_STREAM_ERRORS as error:
                raise DecompressionError(
                    f"Corrupt archive {archive_path} after line {line_number}: {error}. "
                    "Remove the cached archive and rerun without --skip-download."
                ) from error
            if not raw_bytes:
                return
            line_number += 1
            text = raw_bytes.decode("utf-8", errors="replace").rstrip("\r\n")
            if not text.strip():
                continue
            yield RawLine(line_number=line_number, text=text)


def _open_decompressed(archive_path: Path) -> IO[bytes]:
    """Open a binary reader that decompresses based on file suffix."""
    suffix = archive_path.suffix.lower()
    if suffix == ".bz2":
        return bz2.open(archive_path, "rb")
    if suffix == ".gz":
        return gzip.open(archive_path, "rb")
    return archive_path.open("rb")

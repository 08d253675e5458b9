"""Typed record parsing for bulk archive lines.

This module converts one JSON line into a court or judge record and keeps
the full upstream object as an opaque payload. Malformed lines become
structured parse failures instead of exceptions.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from core.constants import COURTS_DATASET, JUDGES_DATASET, PARSE_EXCERPT_LENGTH
from core.types import (
    CourtRecord,
    JudgePosition,
    JudgeRecord,
    ParsedRecord,
    ParseFailure,
    RawLine,
)


class _InvalidRecord(ValueError):
    """Internal signal for a structurally invalid upstream object."""


def parse_line(raw_line: RawLine, dataset_name: str) -> ParsedRecord | ParseFailure:
    """Parse one archive line for the given dataset.

    Args:
        raw_line: Numbered line text.
        dataset_name: ``courts`` or ``judges``.

    Returns:
        A typed record, or a parse failure describing why parsing failed.

    Raises:
        ValueError: If the dataset name is unknown.
    """
    if dataset_name not in (COURTS_DATASET, JUDGES_DATASET):
        raise ValueError(f"Unknown dataset '{dataset_name}'")
    try:
        payload = json.loads(raw_line.text)
    except json.JSONDecodeError as error:
        return _failure(raw_line, f"invalid JSON: {error.msg}")
    except (ValueError, RecursionError) as error:
        return _failure(raw_line, f"unparseable JSON: {type(error).__name__}")
    if not isinstance(payload, dict):
        return _failure(raw_line, f"expected JSON object, got {type(payload).__name__}")
    try:
        if dataset_name == COURTS_DATASET:
            return _court_from_payload(payload)
        return _judge_from_payload(payload)
    except _InvalidRecord as error:
        return _failure(raw_line, str(error))


def _court_from_payload(payload: dict[str, Any]) -> CourtRecord:
    return CourtRecord(
        external_id=_required_id(payload),
        name=_required_text(payload, ("full_name", "name", "short_name"), "court name"),
        jurisdiction=_optional_text(payload, ("jurisdiction",)),
        court_level=_optional_text(payload, ("level", "type")),
        location=_optional_text(payload, ("location", "address")),
        website=_optional_text(payload, ("url", "website")),
        payload=payload,
    )


def _judge_from_payload(payload: dict[str, Any]) -> JudgeRecord:
    raw_positions = payload.get("positions") or []
    if not isinstance(raw_positions, list):
        raise _InvalidRecord("field 'positions' must be a list")
    return JudgeRecord(
        external_id=_required_id(payload),
        full_name=_judge_name(payload),
        positions=tuple(_position_from_payload(entry) for entry in raw_positions),
        payload=payload,
    )


def _judge_name(payload: Mapping[str, Any]) -> str:
    full_name = _optional_text(payload, ("name_full", "name"))
    if full_name:
        return full_name
    parts = [
        _optional_text(payload, (key,))
        for key in ("name_first", "name_middle", "name_last", "name_suffix")
    ]
    composed = " ".join(part for part in parts if part)
    if not composed:
        raise _InvalidRecord("missing judge name")
    return composed


def _position_from_payload(entry: Any) -> JudgePosition:
    if not isinstance(entry, dict):
        raise _InvalidRecord("each position must be a JSON object")
    return JudgePosition(
        court_id=_court_reference(entry.get("court", entry.get("court_id"))),
        date_start=_optional_text(entry, ("date_start",)),
        date_end=_optional_text(entry, ("date_termination", "date_end")),
        role=_optional_text(entry, ("position_type", "job_title", "role")),
    )


def _court_reference(value: Any) -> str | None:
    """Normalize a court reference to its external identifier.

    Upstream positions reference courts by id, by API URL ending in the id,
    or by a nested court object.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        return _court_reference(value.get("id"))
    if not isinstance(value, (str, int)):
        raise _InvalidRecord("position court must be a string, number, or object")
    reference = str(value).strip()
    if "/" in reference:
        reference = reference.rstrip("/").rsplit("/", 1)[-1]
    return reference or None


def _required_id(payload: Mapping[str, Any]) -> str:
    value = payload.get("id")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise _InvalidRecord("missing or invalid field 'id'")
    external_id = str(value).strip()
    if not external_id:
        raise _InvalidRecord("empty field 'id'")
    return external_id


def _required_text(payload: Mapping[str, Any], keys: tuple[str, ...], label: str) -> str:
    value = _optional_text(payload, keys)
    if not value:
        raise _InvalidRecord(f"missing {label}")
    return value


def _optional_text(payload: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    """Return the first non-empty string among ``keys``."""
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise _InvalidRecord(f"field '{key}' must be a scalar")
        text = str(value).strip()
        if text:
            return text
    return None


def _failure(raw_line: RawLine, reason: str) -> ParseFailure:
    return ParseFailure(
        line_number=raw_line.line_number,
        reason=reason,
        excerpt=raw_line.text[:PARSE_EXCERPT_LENGTH],
    )

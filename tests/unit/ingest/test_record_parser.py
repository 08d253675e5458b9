"""Unit tests for archive line parsing."""

from __future__ import annotations

import json

import pytest

from core.types import CourtRecord, JudgeRecord, ParseFailure, RawLine
from ingest.record_parser import parse_line


def _line(payload: object, line_number: int = 1) -> RawLine:
    return RawLine(line_number=line_number, text=json.dumps(payload))


def test_parse_court_maps_fields_and_keeps_payload() -> None:
    """Court lines should map display fields and keep the full object."""
    payload = {
        "id": "calsuper_alameda",
        "full_name": "Superior Court of Alameda County",
        "jurisdiction": "S",
        "url": "https://www.alameda.courts.ca.gov",
        "location": "Oakland, CA",
        "extra": {"nested": [1, 2]},
    }

    record = parse_line(_line(payload), "courts")

    assert isinstance(record, CourtRecord)
    assert record.external_id == "calsuper_alameda"
    assert record.name == "Superior Court of Alameda County"
    assert record.website == "https://www.alameda.courts.ca.gov"
    assert record.payload == payload


def test_parse_court_falls_back_to_short_name() -> None:
    """Court name should fall back to the short name field."""
    record = parse_line(_line({"id": "cand", "short_name": "N.D. Cal."}), "courts")

    assert isinstance(record, CourtRecord) and record.name == "N.D. Cal."


def test_parse_judge_normalizes_position_court_references() -> None:
    """Position courts may arrive as ids, API URLs, or nested objects."""
    payload = {
        "id": 1234,
        "name_first": "Ada",
        "name_last": "Byron",
        "positions": [
            {"court": "https://www.courtlistener.com/api/rest/v4/courts/ca9/"},
            {"court": {"id": "calctapp"}, "date_start": "2001-05-01"},
            {"court_id": "cand", "date_termination": "2010-01-01", "job_title": "Judge"},
        ],
    }

    record = parse_line(_line(payload), "judges")

    assert isinstance(record, JudgeRecord)
    assert record.external_id == "1234" and record.full_name == "Ada Byron"
    assert [position.court_id for position in record.positions] == ["ca9", "calctapp", "cand"]
    assert record.positions[2].date_end == "2010-01-01"
    assert record.positions[2].role == "Judge"


def test_parse_line_returns_failure_for_invalid_json() -> None:
    """Non-JSON lines should become parse failures with an excerpt."""
    raw_line = RawLine(line_number=7, text="{not json" + "x" * 500)

    failure = parse_line(raw_line, "courts")

    assert isinstance(failure, ParseFailure)
    assert failure.line_number == 7 and len(failure.excerpt) == 200


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        {"full_name": "No identifier"},
        {"id": True, "full_name": "Boolean identifier"},
        {"id": "calsuper_x"},
    ],
)
def test_parse_court_rejects_structurally_invalid_objects(payload: object) -> None:
    """Objects without identifier or name should not parse as courts."""
    assert isinstance(parse_line(_line(payload), "courts"), ParseFailure)


def test_parse_judge_rejects_non_list_positions() -> None:
    """Judges with a malformed positions field should fail to parse."""
    failure = parse_line(_line({"id": 1, "name_full": "X", "positions": "ca9"}), "judges")

    assert isinstance(failure, ParseFailure) and "positions" in failure.reason


def test_parse_line_rejects_unknown_dataset() -> None:
    """Unknown dataset names are a programming error."""
    with pytest.raises(ValueError):
        parse_line(_line({"id": "x"}), "dockets")


@pytest.mark.parametrize(
    "text",
    ['{"id": ' + "1" * 5000 + "}", "[" * 200_000],
    ids=["oversized-integer", "deep-nesting"],
)
def test_parse_line_returns_failure_for_decoder_limits(text: str) -> None:
    """Lines that exceed JSON decoder limits should fail like any bad line."""
    failure = parse_line(RawLine(line_number=3, text=text), "courts")

    assert isinstance(failure, ParseFailure) and failure.line_number == 3

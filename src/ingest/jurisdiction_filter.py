"""Jurisdiction inclusion filter for parsed records.

This module restricts nationwide bulk data to one target jurisdiction.
Rules are evaluated in a fixed precedence order, most specific first,
and the first matching rule decides inclusion. The filter holds no
mutable state, so results never depend on resume position or call order.

Court rules:
    1. ``state_prefix``: identifier starts with the state prefix.
    2. ``federal_allow_list``: identifier is an allow-listed federal court.
    3. ``jurisdiction_code``: jurisdiction field equals the target code.
    4. ``state_name``: display name mentions the state name.
    5. ``state_abbreviation``: location mentions the state abbreviation.

Judge rule: any position, current or past, references a court that
satisfies rule 1 or rule 2.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Callable

from core.config import JurisdictionSettings
from core.types import CourtRecord, JudgeRecord, ParsedRecord

CourtPredicate = Callable[[JurisdictionSettings, CourtRecord], bool]


def _matches_state_prefix(settings: JurisdictionSettings, court_id: str) -> bool:
    return bool(settings.state_prefix) and court_id.startswith(settings.state_prefix)


def _matches_federal_allow_list(settings: JurisdictionSettings, court_id: str) -> bool:
    return court_id in settings.federal_court_ids


def _matches_jurisdiction_code(settings: JurisdictionSettings, record: CourtRecord) -> bool:
    if not record.jurisdiction:
        return False
    return record.jurisdiction.strip().upper() == settings.jurisdiction_code.upper()


def _matches_state_name(settings: JurisdictionSettings, record: CourtRecord) -> bool:
    if not record.name or not settings.state_name:
        return False
    return settings.state_name.casefold() in record.name.casefold()


def _matches_state_abbreviation(settings: JurisdictionSettings, record: CourtRecord) -> bool:
    if not record.location or not settings.state_abbreviation:
        return False
    pattern = rf"\b{re.escape(settings.state_abbreviation)}\b"
    return re.search(pattern, record.location) is not None


COURT_RULES: tuple[tuple[str, CourtPredicate], ...] = (
    ("state_prefix", lambda settings, record: _matches_state_prefix(settings, record.external_id)),
    (
        "federal_allow_list",
        lambda settings, record: _matches_federal_allow_list(settings, record.external_id),
    ),
    ("jurisdiction_code", _matches_jurisdiction_code),
    ("state_name", _matches_state_name),
    ("state_abbreviation", _matches_state_abbreviation),
)


@dataclass(frozen=True)
class JurisdictionFilter:
    """Pure inclusion predicate over parsed records."""

    settings: JurisdictionSettings

    def included(self, record: ParsedRecord) -> bool:
        """Return whether a record belongs to the target jurisdiction."""
        if isinstance(record, CourtRecord):
            return self.court_match_rule(record) is not None
        if isinstance(record, JudgeRecord):
            return self.judge_match_court(record) is not None
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    def court_match_rule(self, record: CourtRecord) -> str | None:
        """Return the name of the first court rule that matches, if any."""
        for rule_name, predicate in COURT_RULES:
            if predicate(self.settings, record):
                return rule_name
        return None

    def judge_match_court(self, record: JudgeRecord) -> str | None:
        """Return the first qualifying court identifier among positions."""
        for position in record.positions:
            if position.court_id and self.court_id_qualifies(position.court_id):
                return position.court_id
        return None

    def court_id_qualifies(self, court_id: str) -> bool:
        """Apply the identifier-only court rules to a referenced court."""
        return _matches_state_prefix(self.settings, court_id) or _matches_federal_allow_list(
            self.settings, court_id
        )

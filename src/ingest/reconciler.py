"""Upsert reconciliation of included records into the entity store.

This module maps typed records onto the columns the import owns and
either inserts a new entity or updates those columns on the existing one.
Columns owned by other subsystems (slug, analytics, bios) are never
written. A failing record is logged and reported, never raised.
"""

from __future__ import annotations

from dataclasses import asdict
from enum import Enum
import time
from typing import Any, Callable, Mapping

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from core.constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_BASE_DELAY_SECONDS
from core.errors import PersistenceError
from core.logging_config import get_logger
from core.retry import build_retrying
from core.types import CourtRecord, JudgePosition, JudgeRecord, ParsedRecord
from ingest.jurisdiction_filter import JurisdictionFilter
from store.entity_store import COURTS_TABLE, JUDGES_TABLE, EntityStore

_LOGGER = get_logger(__name__)

_TRANSIENT_STORE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError)


class ReconcileOutcome(str, Enum):
    """Result of reconciling one record."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class UpsertReconciler:
    """Insert-or-update records keyed by external identifier."""

    def __init__(
        self,
        store: EntityStore,
        jurisdiction_filter: JurisdictionFilter,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._filter = jurisdiction_filter
        self._retry_attempts = retry_attempts
        self._retry_base_delay = retry_base_delay
        self._sleep = sleep

    def reconcile(self, record: ParsedRecord) -> ReconcileOutcome:
        """Upsert one included record.

        Args:
            record: Court or judge record that passed the filter.

        Returns:
            Outcome of the write. ``FAILED`` after exhausted retries or a
            non-transient store error.
        """
        retrying = build_retrying(
            attempts=self._retry_attempts,
            base_delay=self._retry_base_delay,
            retry_on=_TRANSIENT_STORE_ERRORS,
            description=f"upsert:{record.external_id}",
            sleep=self._sleep,
        )
        try:
            return retrying(self._upsert, record)
        except (SQLAlchemyError, TimeoutError) as error:
            failure = PersistenceError(record.external_id, f"Failed to upsert record: {error}")
            _LOGGER.error(
                "record_persistence_failed",
                external_id=failure.external_id,
                record_type=type(record).__name__,
                error=str(failure),
            )
            return ReconcileOutcome.FAILED

    def _upsert(self, record: ParsedRecord) -> ReconcileOutcome:
        if isinstance(record, CourtRecord):
            table_name = COURTS_TABLE
            values = court_owned_values(record)
        else:
            table_name = JUDGES_TABLE
            values = self._judge_owned_values(record)
        existing = self._store.find(table_name, record.external_id)
        if existing is None:
            self._store.insert(table_name, record.external_id, values)
            return ReconcileOutcome.CREATED
        changed = _changed_values(existing, values)
        if not changed:
            return ReconcileOutcome.UNCHANGED
        self._store.update(table_name, record.external_id, changed)
        return ReconcileOutcome.UPDATED

    def _judge_owned_values(self, record: JudgeRecord) -> dict[str, Any]:
        court_row = self._resolve_current_court(record)
        return {
            "name": record.full_name,
            "positions": [asdict(position) for position in record.positions],
            "court_id": court_row["id"] if court_row else None,
            "court_name": court_row["name"] if court_row else None,
            "jurisdiction": self._filter.settings.jurisdiction_code,
            "courtlistener_data": dict(record.payload),
        }

    def _resolve_current_court(self, record: JudgeRecord) -> dict[str, Any] | None:
        """Find the stored court of the most recent qualifying position."""
        for position in _most_recent_first(record.positions):
            if not position.court_id or not self._filter.court_id_qualifies(position.court_id):
                continue
            court_row = self._store.find(COURTS_TABLE, position.court_id)
            if court_row is not None:
                return court_row
        return None


def court_owned_values(record: CourtRecord) -> dict[str, Any]:
    """Map a court record onto the court columns owned by the import."""
    return {
        "name": record.name,
        "type": record.court_level,
        "jurisdiction": record.jurisdiction,
        "address": record.location,
        "website": record.website,
        "courtlistener_data": dict(record.payload),
    }


def _most_recent_first(positions: tuple[JudgePosition, ...]) -> list[JudgePosition]:
    """Order positions by start marker, newest first, undated last.

    Current positions (no end marker) sort ahead of ended ones with the
    same start.
    """
    dated = [position for position in positions if position.date_start]
    undated = [position for position in positions if not position.date_start]
    dated.sort(
        key=lambda position: (position.date_start or "", position.date_end is None),
        reverse=True,
    )
    return dated + undated


def _changed_values(existing: Mapping[str, Any], values: Mapping[str, Any]) -> dict[str, Any]:
    return {column: value for column, value in values.items() if existing.get(column) != value}

"""Court and judge entity store.

This module wraps the shared relational store read by the directory and
search features. Rows are keyed by the provider's external identifier
(``courtlistener_id``). Updates are always column-scoped, so fields owned
by other subsystems survive every import.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping
import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Engine,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    func,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from core.errors import ConfigurationError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)

COURTS_TABLE = "courts"
JUDGES_TABLE = "judges"

metadata = MetaData()

courts = Table(
    COURTS_TABLE,
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("type", String(50)),
    Column("jurisdiction", String(100)),
    Column("address", Text),
    Column("website", String(255)),
    Column("courtlistener_id", String(100), unique=True),
    Column("courtlistener_data", JSON),
    Column("slug", String(255)),
    Column("judge_count", Integer, default=0),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

judges = Table(
    JUDGES_TABLE,
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("court_id", String(36), ForeignKey("courts.id", ondelete="SET NULL")),
    Column("court_name", String(255)),
    Column("jurisdiction", String(100)),
    Column("positions", JSON),
    Column("courtlistener_id", String(100), unique=True),
    Column("courtlistener_data", JSON),
    Column("slug", String(255)),
    Column("bio", Text),
    Column("profile_image_url", String(500)),
    Column("total_cases", Integer, default=0),
    Column("reversal_rate", Numeric(3, 2)),
    Column("average_decision_time", Integer),
    Column("analytics", JSON),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

_TABLES = {COURTS_TABLE: courts, JUDGES_TABLE: judges}
POSTGRES_DRIVERNAME = "postgresql+psycopg"


def create_store_engine(database_url: str, timeout_seconds: float) -> Engine:
    """Create an engine with connection checks and explicit timeouts.

    Args:
        database_url: SQLAlchemy database URL.
        timeout_seconds: Connect and pool checkout timeout.

    Returns:
        Configured SQLAlchemy engine.

    Raises:
        ConfigurationError: If the URL cannot be parsed or names a driver
            that is not installed.
    """
    try:
        url = make_url(database_url)
        if url.drivername == "postgresql":
            url = url.set(drivername=POSTGRES_DRIVERNAME)
        backend = url.get_backend_name()
        if backend == "sqlite":
            return create_engine(url, connect_args={"check_same_thread": False})
        connect_args: dict[str, Any] = {}
        if backend == "postgresql":
            connect_args["connect_timeout"] = max(1, int(timeout_seconds))
        return create_engine(
            url,
            pool_pre_ping=True,
            pool_timeout=timeout_seconds,
            connect_args=connect_args,
        )
    except ArgumentError as error:
        raise ConfigurationError(
            f"Invalid database URL: {error}. Set COURTBULK_DATABASE_URL to a SQLAlchemy URL."
        ) from error
    except ImportError as error:
        raise ConfigurationError(
            f"Database driver unavailable: {error}. Use a postgresql:// or "
            "postgresql+psycopg:// URL, or install the driver the URL names."
        ) from error


class EntityStore:
    """Column-scoped reads and writes against the court/judge tables."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str, timeout_seconds: float) -> "EntityStore":
        """Build a store from a database URL."""
        return cls(create_store_engine(database_url, timeout_seconds))

    def check_connection(self) -> None:
        """Verify the store is reachable before any dataset starts.

        Raises:
            ConfigurationError: If a connection cannot be opened.
        """
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as error:
            raise ConfigurationError(
                f"Entity store unreachable at {self._engine.url!r}: {error}. "
                "Check COURTBULK_DATABASE_URL and network access."
            ) from error

    def create_schema(self) -> None:
        """Create the court and judge tables when missing."""
        metadata.create_all(self._engine)
        _LOGGER.info("entity_store_schema_ready", url=repr(self._engine.url))

    def find(self, table_name: str, external_id: str) -> dict[str, Any] | None:
        """Return the row with ``external_id`` as a plain mapping, if any."""
        table = _TABLES[table_name]
        statement = select(table).where(table.c.courtlistener_id == external_id)
        with self._engine.connect() as conn:
            row = conn.execute(statement).mappings().first()
        return dict(row) if row is not None else None

    def insert(self, table_name: str, external_id: str, values: Mapping[str, Any]) -> str:
        """Insert a new row and return its generated primary key."""
        table = _TABLES[table_name]
        now = datetime.now(timezone.utc)
        row_id = str(uuid.uuid4())
        row_values = {
            **values,
            "id": row_id,
            "courtlistener_id": external_id,
            "created_at": now,
            "updated_at": now,
        }
        with self._engine.begin() as conn:
            conn.execute(insert(table).values(**row_values))
        return row_id

    def update(self, table_name: str, external_id: str, values: Mapping[str, Any]) -> None:
        """Update only the given columns of the row with ``external_id``."""
        table = _TABLES[table_name]
        statement = (
            update(table)
            .where(table.c.courtlistener_id == external_id)
            .values(**values, updated_at=datetime.now(timezone.utc))
        )
        with self._engine.begin() as conn:
            conn.execute(statement)

    def count(self, table_name: str) -> int:
        """Return the number of rows in a table."""
        table = _TABLES[table_name]
        with self._engine.connect() as conn:
            return int(conn.execute(select(func.count()).select_from(table)).scalar_one())

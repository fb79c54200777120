"""SQLite-backed record store.

Persists shipment orders and parsing logs to a local SQLite database at
``data/shipments.db``.  Uses ``aiosqlite`` for async I/O with one
connection per operation, so concurrent requests never share a cursor.

Timestamps are stored as UTC ISO-8601 strings with fixed microsecond
precision, which keeps lexicographic order equal to chronological order
and lets range filters compare plain text.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite
import structlog

from shipment_intake.interfaces.record_store import PARSING_LOGS, SHIPMENT_ORDERS, IRecordStore
from shipment_intake.utils.errors import RecordNotFoundError, StoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/shipments.db")
_PROVIDER = "sqlite"

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS shipment_orders (
    id                  TEXT    PRIMARY KEY,
    customer_name       TEXT    NOT NULL,
    address             TEXT    NOT NULL,
    tracking_id         TEXT,
    delivery_date       TEXT,
    package_weight      REAL,
    notes               TEXT,
    status              TEXT    NOT NULL DEFAULT 'pending',
    original_file_url   TEXT,
    original_file_name  TEXT,
    parsed_by_ai        INTEGER NOT NULL DEFAULT 1,
    parsing_log_id      TEXT,
    created_at          TEXT    NOT NULL,
    updated_at          TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS parsing_logs (
    id              TEXT    PRIMARY KEY,
    file_name       TEXT    NOT NULL,
    file_url        TEXT,
    status          TEXT    NOT NULL DEFAULT 'processing',
    error_message   TEXT,
    extracted_data  TEXT,
    created_at      TEXT    NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_shipments_created ON shipment_orders(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_shipments_status ON shipment_orders(status);",
    "CREATE INDEX IF NOT EXISTS idx_logs_created ON parsing_logs(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_logs_status ON parsing_logs(status);",
]

# Column name -> storage kind.  Anything not listed here is rejected, so
# caller-supplied keys never reach SQL text.
_TABLES: dict[str, dict[str, str]] = {
    SHIPMENT_ORDERS: {
        "id": "text",
        "customer_name": "text",
        "address": "text",
        "tracking_id": "text",
        "delivery_date": "date",
        "package_weight": "real",
        "notes": "text",
        "status": "text",
        "original_file_url": "text",
        "original_file_name": "text",
        "parsed_by_ai": "bool",
        "parsing_log_id": "text",
        "created_at": "datetime",
        "updated_at": "datetime",
    },
    PARSING_LOGS: {
        "id": "text",
        "file_name": "text",
        "file_url": "text",
        "status": "text",
        "error_message": "text",
        "extracted_data": "json",
        "created_at": "datetime",
    },
}

_SEARCH_COLUMNS: dict[str, tuple[str, ...]] = {
    SHIPMENT_ORDERS: ("customer_name", "address", "tracking_id"),
    PARSING_LOGS: ("file_name", "error_message"),
}

_RANGE_OPERATORS = {"gte": ">=", "lt": "<"}


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


def _encode(kind: str, value: Any) -> Any:
    """Convert a Python value into its SQLite storage form."""
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    if kind == "datetime":
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)  # noqa: UP017
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")  # noqa: UP017
    if kind == "date":
        return value.isoformat() if isinstance(value, date) else str(value)
    if kind == "bool":
        return 1 if value else 0
    if kind == "real":
        return float(value)
    if kind == "json":
        return json.dumps(value)
    return value


def _decode(kind: str, value: Any) -> Any:
    """Convert a stored SQLite value back into its Python form."""
    if value is None:
        return None
    if kind == "datetime":
        return datetime.fromisoformat(value)
    if kind == "date":
        return date.fromisoformat(value)
    if kind == "bool":
        return bool(value)
    if kind == "json":
        return json.loads(value)
    return value


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteRecordStore(IRecordStore):
    """SQLite-backed persistence for shipment orders and parsing logs."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create both tables and their indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                for table_sql in _CREATE_TABLES_SQL:
                    await db.execute(table_sql)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(f"Failed to initialize database: {exc}", _PROVIDER) from exc
        logger.info("record_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, table: str, fields: dict[str, Any]) -> dict[str, Any]:
        columns = self._columns(table)
        row = dict(fields)
        now = _utc_now()
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", now)
        if "updated_at" in columns:
            row.setdefault("updated_at", now)
        self._check_columns(table, row)

        names = list(row)
        sql = (
            f"INSERT INTO {table} ({', '.join(names)}) "
            f"VALUES ({', '.join('?' for _ in names)})"
        )
        params = [_encode(columns[name], row[name]) for name in names]

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                await db.execute(sql, params)
                await db.commit()
                stored = await self._fetch(db, table, row["id"])
        except aiosqlite.Error as exc:
            raise StoreError(f"Insert into {table} failed: {exc}", _PROVIDER) from exc

        logger.debug("record_inserted", table=table, record_id=row["id"])
        return stored

    async def update(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
        *,
        only_if: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        columns = self._columns(table)
        changes = {k: v for k, v in fields.items() if k not in ("id", "created_at")}
        if "updated_at" in columns:
            changes["updated_at"] = _utc_now()
        self._check_columns(table, changes)
        conditions = dict(only_if or {})
        self._check_columns(table, conditions)

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                if changes:
                    assignments = ", ".join(f"{name} = ?" for name in changes)
                    where = ["id = ?"] + [f"{name} = ?" for name in conditions]
                    params = [_encode(columns[n], v) for n, v in changes.items()]
                    params.append(record_id)
                    params.extend(_encode(columns[n], v) for n, v in conditions.items())
                    cursor = await db.execute(
                        f"UPDATE {table} SET {assignments} WHERE {' AND '.join(where)}",
                        params,
                    )
                    await db.commit()
                    updated = cursor.rowcount > 0
                else:
                    updated = True

                stored = await self._fetch(db, table, record_id)
        except aiosqlite.Error as exc:
            raise StoreError(f"Update of {table} failed: {exc}", _PROVIDER) from exc

        if stored is None:
            raise RecordNotFoundError(f"No {table} row with id {record_id}", _PROVIDER)
        if not updated:
            logger.debug("record_update_precondition_unmet", table=table, record_id=record_id)
            return None

        logger.debug("record_updated", table=table, record_id=record_id, fields=sorted(changes))
        return stored

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        self._columns(table)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                return await self._fetch(db, table, record_id)
        except aiosqlite.Error as exc:
            raise StoreError(f"Read from {table} failed: {exc}", _PROVIDER) from exc

    async def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        search: str | None = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        columns = self._columns(table)
        if order_by not in columns:
            raise StoreError(f"Cannot order {table} by unknown column {order_by!r}", _PROVIDER)

        where, params = self._where(table, filters, search)
        direction = "DESC" if descending else "ASC"
        # rowid breaks ties between rows written within the same microsecond.
        sql = (
            f"SELECT * FROM {table}{where} "
            f"ORDER BY {order_by} {direction}, rowid {direction}"
        )
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(offset)

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(f"Query on {table} failed: {exc}", _PROVIDER) from exc
        return [self._decode_row(table, r) for r in rows]

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        where, params = self._where(table, filters, None)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(f"SELECT COUNT(*) FROM {table}{where}", params)
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(f"Count on {table} failed: {exc}", _PROVIDER) from exc
        return int(row[0]) if row else 0

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return _PROVIDER

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _columns(table: str) -> dict[str, str]:
        try:
            return _TABLES[table]
        except KeyError:
            raise StoreError(f"Unknown table {table!r}", _PROVIDER) from None

    @staticmethod
    def _check_columns(table: str, fields: dict[str, Any]) -> None:
        unknown = sorted(set(fields) - set(_TABLES[table]))
        if unknown:
            raise StoreError(f"Unknown column(s) for {table}: {', '.join(unknown)}", _PROVIDER)

    def _where(
        self,
        table: str,
        filters: dict[str, Any] | None,
        search: str | None,
    ) -> tuple[str, list[Any]]:
        """Build a WHERE clause and its parameters from filters and a search term."""
        columns = self._columns(table)
        clauses: list[str] = []
        params: list[Any] = []

        for key, value in (filters or {}).items():
            name, _, op = key.partition("__")
            if name not in columns or (op and op not in _RANGE_OPERATORS):
                raise StoreError(f"Unsupported filter {key!r} for {table}", _PROVIDER)
            if value is None and not op:
                clauses.append(f"{name} IS NULL")
                continue
            clauses.append(f"{name} {_RANGE_OPERATORS.get(op, '=')} ?")
            params.append(_encode(columns[name], value))

        term = (search or "").strip()
        if term:
            pattern = f"%{_escape_like(term.lower())}%"
            alternatives = [
                f"lower({name}) LIKE ? ESCAPE '\\'" for name in _SEARCH_COLUMNS[table]
            ]
            clauses.append(f"({' OR '.join(alternatives)})")
            params.extend(pattern for _ in alternatives)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def _fetch(
        self, db: aiosqlite.Connection, table: str, record_id: str
    ) -> dict[str, Any] | None:
        cursor = await db.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,))
        row = await cursor.fetchone()
        return self._decode_row(table, row) if row is not None else None

    @staticmethod
    def _decode_row(table: str, row: aiosqlite.Row) -> dict[str, Any]:
        columns = _TABLES[table]
        return {key: _decode(columns.get(key, "text"), row[key]) for key in row.keys()}

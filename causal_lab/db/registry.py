"""
causal_lab/db/registry.py

Postgres record store on an asyncpg pool.

- The pool is owned by the store instance: opened on app startup, closed on shutdown
- Clear error messages when DATABASE_URL is missing or credentials are wrong
- JSONB columns are written as json text and decoded back to dict/list on read
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import asyncpg

from causal_lab.db.base import RecordStore, Row
from causal_lab.db.schema import JSON_COLUMNS, SCHEMA_SQL

logger = logging.getLogger(__name__)

TABLE_COLUMNS = {
    "datasets": (
        "name", "description", "file_path", "file_size", "columns_count",
        "rows_count", "status", "sample_rows", "uploaded_at", "processed_at",
    ),
    "column_info": (
        "dataset_id", "column_name", "data_type", "null_count", "unique_count",
        "sample_values", "is_potential_target", "is_potential_treatment",
    ),
    "analyses": (
        "dataset_id", "name", "target_variable", "treatment_variables",
        "control_variables", "method", "status", "results",
        "simple_explanation", "created_at", "completed_at",
    ),
}


def _coerce_json_value(value, default):
    """
    Accepts JSONB (dict/list), TEXT JSON (str), or NULL.
    Returns a Python dict/list, falling back to default on parse errors.
    """
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return default
        if isinstance(parsed, (dict, list)):
            return parsed
    return default


def _decode(table: str, record: Optional[asyncpg.Record]) -> Optional[Row]:
    if record is None:
        return None
    row = dict(record)
    for col in JSON_COLUMNS[table]:
        if col in row:
            row[col] = _coerce_json_value(row[col], default=None)
    return row


def _encode_values(table: str, values: Row, start: int) -> Tuple[List[str], List[str], List[Any]]:
    """Return (columns, placeholders, args) for known columns, numbering from ``start``."""
    allowed = TABLE_COLUMNS[table]
    cols: List[str] = []
    placeholders: List[str] = []
    args: List[Any] = []
    for col, value in values.items():
        if col not in allowed:
            raise ValueError(f"Unknown column for {table}: {col}")
        idx = start + len(args)
        cols.append(col)
        if col in JSON_COLUMNS[table]:
            placeholders.append(f"${idx}::jsonb")
            args.append(json.dumps(value) if value is not None else None)
        else:
            placeholders.append(f"${idx}")
            args.append(value)
    return cols, placeholders, args


def _insert_sql(table: str, values: Row) -> Tuple[str, List[Any]]:
    cols, placeholders, args = _encode_values(table, values, start=1)
    sql = f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({', '.join(placeholders)}) RETURNING *"
    return sql, args


def _update_sql(
    table: str, values: Row, only_if_status: Optional[Iterable[str]] = None
) -> Tuple[str, List[Any]]:
    """Placeholder $1 is the row id; a status guard takes the last placeholder."""
    cols, placeholders, args = _encode_values(table, values, start=2)
    parts = [f"{c} = {p}" for c, p in zip(cols, placeholders)]
    where = "id = $1"
    if only_if_status is not None:
        where += f" AND status = ANY(${len(args) + 2}::text[])"
        args.append(list(only_if_status))
    return f"UPDATE {table} SET {', '.join(parts)} WHERE {where} RETURNING *", args


class PostgresStore(RecordStore):
    def __init__(self, dsn: str, ssl: str = "prefer", auto_migrate: bool = True):
        self.dsn = (dsn or "").strip()
        self.ssl = ssl
        self.auto_migrate = auto_migrate
        self._pool: Optional[asyncpg.Pool] = None

    async def open(self) -> None:
        """
        Create the pool and (optionally) apply the schema.

        Fails fast with a RuntimeError if DATABASE_URL is missing or the
        connection cannot be established.
        """
        if self._pool is not None:
            return

        if not self.dsn:
            raise RuntimeError(
                "DATABASE_URL is empty or not set. "
                "Set DATABASE_URL to a Postgres connection string or use STORE_BACKEND=memory."
            )

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=1,
                max_size=10,
                timeout=30,
                command_timeout=60,
                ssl=self.ssl,
            )
        except asyncpg.InvalidPasswordError as e:
            raise RuntimeError(
                "DB authentication failed (InvalidPasswordError). "
                "Check DATABASE_URL user/password."
            ) from e
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as e:
            raise RuntimeError(
                f"Failed to create database pool: {type(e).__name__}: {e}. "
                "Check DATABASE_URL host/port."
            ) from e

        if self.auto_migrate:
            async with self._pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
            logger.info("database schema ensured")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("PostgresStore is not open")
        return self._pool

    async def _fetch(self, query: str, *args: Any) -> Sequence[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def _fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def _insert(self, table: str, values: Row) -> Row:
        sql, args = _insert_sql(table, values)
        record = await self._fetchrow(sql, *args)
        return _decode(table, record)

    async def _update(
        self,
        table: str,
        row_id: int,
        values: Row,
        only_if_status: Optional[Iterable[str]],
    ) -> Optional[Row]:
        sql, args = _update_sql(table, values, only_if_status)
        record = await self._fetchrow(sql, row_id, *args)
        return _decode(table, record)

    # -- datasets ------------------------------------------------------------
    async def insert_dataset(self, values: Row) -> Row:
        return await self._insert("datasets", values)

    async def get_dataset(self, dataset_id: int) -> Optional[Row]:
        record = await self._fetchrow("SELECT * FROM datasets WHERE id = $1", dataset_id)
        return _decode("datasets", record)

    async def update_dataset(self, dataset_id, values, only_if_status=None):
        return await self._update("datasets", dataset_id, values, only_if_status)

    async def list_datasets(self, limit: int, offset: int) -> List[Row]:
        records = await self._fetch(
            """
            SELECT *
            FROM datasets
            ORDER BY uploaded_at DESC, id DESC
            LIMIT $1 OFFSET $2
            """,
            limit,
            offset,
        )
        return [_decode("datasets", r) for r in records]

    # -- column_info ---------------------------------------------------------
    async def replace_columns(self, dataset_id: int, columns: List[Row]) -> List[Row]:
        inserted: List[Row] = []
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("DELETE FROM column_info WHERE dataset_id = $1", dataset_id)
                for values in columns:
                    payload: Dict[str, Any] = dict(values, dataset_id=dataset_id)
                    sql, args = _insert_sql("column_info", payload)
                    record = await conn.fetchrow(sql, *args)
                    inserted.append(_decode("column_info", record))
        return inserted

    async def list_columns(self, dataset_id: int) -> List[Row]:
        records = await self._fetch(
            "SELECT * FROM column_info WHERE dataset_id = $1 ORDER BY id",
            dataset_id,
        )
        return [_decode("column_info", r) for r in records]

    # -- analyses ------------------------------------------------------------
    async def insert_analysis(self, values: Row) -> Row:
        return await self._insert("analyses", values)

    async def get_analysis(self, analysis_id: int) -> Optional[Row]:
        record = await self._fetchrow("SELECT * FROM analyses WHERE id = $1", analysis_id)
        return _decode("analyses", record)

    async def update_analysis(self, analysis_id, values, only_if_status=None):
        return await self._update("analyses", analysis_id, values, only_if_status)

    async def list_analyses(self, dataset_id: Optional[int], limit: int, offset: int) -> List[Row]:
        if dataset_id is None:
            records = await self._fetch(
                "SELECT * FROM analyses ORDER BY id LIMIT $1 OFFSET $2",
                limit,
                offset,
            )
        else:
            records = await self._fetch(
                "SELECT * FROM analyses WHERE dataset_id = $1 ORDER BY id LIMIT $2 OFFSET $3",
                dataset_id,
                limit,
                offset,
            )
        return [_decode("analyses", r) for r in records]

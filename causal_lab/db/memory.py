"""
In-process record store for local runs and tests.
"""
from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from causal_lab.db.base import RecordStore, Row


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore(RecordStore):
    """Dict-backed tables with serial ids; mutations are serialised by a lock."""

    def __init__(self):
        self.datasets: Dict[int, Row] = {}
        self.columns: Dict[int, Row] = {}
        self.analyses: Dict[int, Row] = {}
        self._seq = {"datasets": 0, "column_info": 0, "analyses": 0}
        self._lock = asyncio.Lock()

    def _next_id(self, table: str) -> int:
        self._seq[table] += 1
        return self._seq[table]

    @staticmethod
    def _out(row: Optional[Row]) -> Optional[Row]:
        return copy.deepcopy(row) if row is not None else None

    @staticmethod
    def _apply(row: Optional[Row], values: Row, only_if_status: Optional[Iterable[str]]) -> Optional[Row]:
        if row is None:
            return None
        if only_if_status is not None and row["status"] not in set(only_if_status):
            return None
        row.update(copy.deepcopy(values))
        return row

    # -- datasets ------------------------------------------------------------
    async def insert_dataset(self, values: Row) -> Row:
        async with self._lock:
            row: Row = {
                "description": None,
                "columns_count": 0,
                "rows_count": 0,
                "status": "uploading",
                "sample_rows": None,
                "uploaded_at": _now(),
                "processed_at": None,
            }
            row.update(copy.deepcopy(values))
            row["id"] = self._next_id("datasets")
            self.datasets[row["id"]] = row
            return self._out(row)

    async def get_dataset(self, dataset_id: int) -> Optional[Row]:
        return self._out(self.datasets.get(dataset_id))

    async def update_dataset(self, dataset_id, values, only_if_status=None):
        async with self._lock:
            return self._out(self._apply(self.datasets.get(dataset_id), values, only_if_status))

    async def list_datasets(self, limit: int, offset: int) -> List[Row]:
        rows = sorted(
            self.datasets.values(),
            key=lambda r: (r["uploaded_at"], r["id"]),
            reverse=True,
        )
        return [self._out(r) for r in rows[offset:offset + limit]]

    # -- column_info ---------------------------------------------------------
    async def replace_columns(self, dataset_id: int, columns: List[Row]) -> List[Row]:
        async with self._lock:
            if dataset_id not in self.datasets:
                raise KeyError(f"dataset {dataset_id} does not exist")
            for cid in [cid for cid, c in self.columns.items() if c["dataset_id"] == dataset_id]:
                del self.columns[cid]
            inserted = []
            for values in columns:
                row = copy.deepcopy(values)
                row["dataset_id"] = dataset_id
                row["id"] = self._next_id("column_info")
                self.columns[row["id"]] = row
                inserted.append(self._out(row))
            return inserted

    async def list_columns(self, dataset_id: int) -> List[Row]:
        rows = [c for c in self.columns.values() if c["dataset_id"] == dataset_id]
        return [self._out(r) for r in sorted(rows, key=lambda r: r["id"])]

    # -- analyses ------------------------------------------------------------
    async def insert_analysis(self, values: Row) -> Row:
        async with self._lock:
            if values.get("dataset_id") not in self.datasets:
                raise KeyError(f"dataset {values.get('dataset_id')} does not exist")
            row: Row = {
                "control_variables": [],
                "status": "pending",
                "results": None,
                "simple_explanation": None,
                "created_at": _now(),
                "completed_at": None,
            }
            row.update(copy.deepcopy(values))
            row["id"] = self._next_id("analyses")
            self.analyses[row["id"]] = row
            return self._out(row)

    async def get_analysis(self, analysis_id: int) -> Optional[Row]:
        return self._out(self.analyses.get(analysis_id))

    async def update_analysis(self, analysis_id, values, only_if_status=None):
        async with self._lock:
            return self._out(self._apply(self.analyses.get(analysis_id), values, only_if_status))

    async def list_analyses(self, dataset_id: Optional[int], limit: int, offset: int) -> List[Row]:
        rows = sorted(self.analyses.values(), key=lambda r: r["id"])
        if dataset_id is not None:
            rows = [r for r in rows if r["dataset_id"] == dataset_id]
        return [self._out(r) for r in rows[offset:offset + limit]]

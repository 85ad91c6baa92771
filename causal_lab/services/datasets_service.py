from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from causal_lab.db.base import RecordStore
from causal_lab.engine.ingest import coarse_shape
from causal_lab.engine.profiling import build_profile
from causal_lab.errors import InvalidStateError, NotFoundError, StorageError, ValidationError
from causal_lab.models.common import Page
from causal_lab.models.datasets import ColumnInfo, Dataset, DatasetStatus, DatasetWithColumns
from causal_lab.services.storage import LocalFileStorage

logger = logging.getLogger(__name__)

# Statuses from which process() may start (first run, or a retry after error)
PROCESSABLE_STATUSES = (DatasetStatus.UPLOADING.value, DatasetStatus.ERROR.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------------------------------------------------------
# Dataset Service
# -----------------------------------------------------------------------------
class DatasetService:
    def __init__(self, store: RecordStore, storage: LocalFileStorage):
        self.store = store
        self.storage = storage

    async def _require(self, dataset_id: int) -> dict:
        row = await self.store.get_dataset(dataset_id)
        if row is None:
            raise NotFoundError(f"Dataset with id {dataset_id} not found")
        return row

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------
    async def upload(
        self,
        name: str,
        description: Optional[str],
        file_bytes: bytes,
        file_name: str,
    ) -> Dataset:
        if not name or not name.strip():
            raise ValidationError("Dataset name must not be empty")
        if not file_name or not file_name.strip():
            raise ValidationError("file_name must not be empty")
        if "\x00" in file_name:
            raise ValidationError("file_name must not contain NUL characters")

        file_path = self.storage.save(file_name, file_bytes)
        columns_count, rows_count = coarse_shape(file_bytes)

        try:
            row = await self.store.insert_dataset({
                "name": name,
                "description": description,
                "file_path": file_path,
                "file_size": len(file_bytes),
                "columns_count": columns_count,
                "rows_count": rows_count,
                "status": DatasetStatus.UPLOADING.value,
                "uploaded_at": _utcnow(),
                "processed_at": None,
            })
        except Exception:
            # no row points at the file, so it must not outlive the failed insert
            try:
                self.storage.delete(file_path)
            except StorageError:
                logger.exception("could not remove orphaned upload %s", file_path)
            raise
        logger.info(
            "dataset %s uploaded: %s (%d bytes, %d cols, %d rows)",
            row["id"], file_path, len(file_bytes), columns_count, rows_count,
        )
        return Dataset.model_validate(row)

    # -------------------------------------------------------------------------
    # Profiling
    # -------------------------------------------------------------------------
    async def process(self, dataset_id: int) -> Dataset:
        # check-and-claim in one conditional write
        dataset = await self.store.update_dataset(
            dataset_id,
            {"status": DatasetStatus.PROCESSING.value},
            only_if_status=PROCESSABLE_STATUSES,
        )
        if dataset is None:
            current = await self._require(dataset_id)
            raise InvalidStateError(
                f"Dataset {dataset_id} is not in a processable state. "
                f"Current status: {current['status']}"
            )

        try:
            try:
                content = self.storage.read(dataset["file_path"])
            except StorageError as e:
                logger.warning("dataset %s: profiling without file contents: %s", dataset_id, e)
                profile = {"columns_count": 0, "rows_count": 0, "sample_rows": None, "columns": []}
            else:
                profile = build_profile(content)

            if profile["columns"]:
                await self.store.replace_columns(dataset_id, profile["columns"])

            updated = await self.store.update_dataset(dataset_id, {
                "columns_count": profile["columns_count"] or dataset["columns_count"],
                "rows_count": profile["rows_count"] or dataset["rows_count"],
                "sample_rows": profile["sample_rows"],
                "status": DatasetStatus.READY.value,
                "processed_at": _utcnow(),
            })
            if updated is None:
                raise NotFoundError(f"Dataset with id {dataset_id} disappeared during processing")

        except Exception:
            logger.exception("dataset %s processing failed", dataset_id)
            try:
                await self.store.update_dataset(dataset_id, {"status": DatasetStatus.ERROR.value})
            except Exception:
                logger.exception("dataset %s: could not record error status", dataset_id)
            raise

        logger.info(
            "dataset %s ready: %d cols, %d rows",
            dataset_id, updated["columns_count"], updated["rows_count"],
        )
        return Dataset.model_validate(updated)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    async def list_datasets(self, page: Optional[Page] = None) -> List[Dataset]:
        page = page or Page()
        rows = await self.store.list_datasets(page.limit, page.offset)
        return [Dataset.model_validate(r) for r in rows]

    async def get_dataset(self, dataset_id: int) -> DatasetWithColumns:
        row = await self._require(dataset_id)
        columns = await self.store.list_columns(dataset_id)
        return DatasetWithColumns.model_validate(
            {**row, "columns": [ColumnInfo.model_validate(c) for c in columns]}
        )

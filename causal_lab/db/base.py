from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

Row = Dict[str, Any]


class RecordStore(ABC):
    """Persistence contract for datasets, column_info and analyses.

    Rows are plain dicts keyed by column name; status/enum columns hold their
    string values. ``update_*`` methods accept ``only_if_status``: when given,
    the update is applied only if the current status is one of those values,
    and ``None`` is returned otherwise (same as for a missing row). This is
    the conditional update services use for check-then-set transitions.
    """

    async def open(self) -> None:
        return None

    async def close(self) -> None:
        return None

    # -- datasets ------------------------------------------------------------
    @abstractmethod
    async def insert_dataset(self, values: Row) -> Row:
        raise NotImplementedError

    @abstractmethod
    async def get_dataset(self, dataset_id: int) -> Optional[Row]:
        raise NotImplementedError

    @abstractmethod
    async def update_dataset(
        self,
        dataset_id: int,
        values: Row,
        only_if_status: Optional[Iterable[str]] = None,
    ) -> Optional[Row]:
        raise NotImplementedError

    @abstractmethod
    async def list_datasets(self, limit: int, offset: int) -> List[Row]:
        """Most recently uploaded first."""
        raise NotImplementedError

    # -- column_info ---------------------------------------------------------
    @abstractmethod
    async def replace_columns(self, dataset_id: int, columns: List[Row]) -> List[Row]:
        """Delete the dataset's column rows, then insert ``columns``, atomically."""
        raise NotImplementedError

    @abstractmethod
    async def list_columns(self, dataset_id: int) -> List[Row]:
        raise NotImplementedError

    # -- analyses ------------------------------------------------------------
    @abstractmethod
    async def insert_analysis(self, values: Row) -> Row:
        raise NotImplementedError

    @abstractmethod
    async def get_analysis(self, analysis_id: int) -> Optional[Row]:
        raise NotImplementedError

    @abstractmethod
    async def update_analysis(
        self,
        analysis_id: int,
        values: Row,
        only_if_status: Optional[Iterable[str]] = None,
    ) -> Optional[Row]:
        raise NotImplementedError

    @abstractmethod
    async def list_analyses(
        self,
        dataset_id: Optional[int],
        limit: int,
        offset: int,
    ) -> List[Row]:
        """Ordered by id; ``dataset_id`` is an exact-match filter when given."""
        raise NotImplementedError

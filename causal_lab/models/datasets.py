from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DatasetStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class ColumnDataType(str, Enum):
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    BOOLEAN = "boolean"
    # Reserved: the profiling heuristics never assign it.
    DATETIME = "datetime"
    TEXT = "text"


class ColumnInfo(BaseModel):
    id: int
    dataset_id: int
    column_name: str
    data_type: ColumnDataType
    null_count: int = Field(0, ge=0)
    unique_count: int = Field(0, ge=0)
    sample_values: Optional[List[str]] = None
    is_potential_target: bool = False
    is_potential_treatment: bool = False


class Dataset(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    file_path: str
    file_size: int = Field(..., ge=0)
    columns_count: int = Field(0, ge=0)
    rows_count: int = Field(0, ge=0)
    status: DatasetStatus

    # Small preview (<= 5 rows), populated by profiling
    sample_rows: Optional[List[List[str]]] = None

    uploaded_at: datetime
    processed_at: Optional[datetime] = None


class DatasetWithColumns(Dataset):
    columns: List[ColumnInfo] = Field(default_factory=list)


class UploadDatasetRequest(BaseModel):
    name: str
    description: Optional[str] = None
    file_data: str = Field(..., description="Base64 encoded file content")
    file_name: str

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from causal_lab.deps import get_dataset_service, get_page
from causal_lab.engine.ingest import decode_file_data
from causal_lab.models.common import ErrorResponse, Page
from causal_lab.models.datasets import Dataset, DatasetWithColumns, UploadDatasetRequest
from causal_lab.services.datasets_service import DatasetService

router = APIRouter(responses={404: {"model": ErrorResponse}})


def _normalize_optional_text(value: Optional[str]) -> Optional[str]:
    """
    Treat empty form values (and the literal placeholders some clients send)
    as missing.
    """
    if value is None:
        return None
    v = value.strip()
    if v in ("", "string", "null", "None"):
        return None
    return value


@router.post("", response_model=Dataset)
async def upload_dataset(
    body: UploadDatasetRequest,
    service: DatasetService = Depends(get_dataset_service),
):
    file_bytes = decode_file_data(body.file_data)
    return await service.upload(body.name, body.description, file_bytes, body.file_name)


@router.post("/upload", response_model=Dataset)
async def upload_dataset_file(
    file: UploadFile = File(...),
    name: str = Form(...),
    description: Optional[str] = Form(None),
    service: DatasetService = Depends(get_dataset_service),
):
    file_bytes = await file.read()
    return await service.upload(
        name,
        _normalize_optional_text(description),
        file_bytes,
        file.filename or "",
    )


@router.get("", response_model=List[Dataset])
async def get_datasets(
    page: Page = Depends(get_page),
    service: DatasetService = Depends(get_dataset_service),
):
    return await service.list_datasets(page)


@router.get("/{dataset_id}", response_model=DatasetWithColumns)
async def get_dataset(
    dataset_id: int,
    service: DatasetService = Depends(get_dataset_service),
):
    return await service.get_dataset(dataset_id)


@router.post("/{dataset_id}/process", response_model=Dataset)
async def process_dataset(
    dataset_id: int,
    service: DatasetService = Depends(get_dataset_service),
):
    return await service.process(dataset_id)

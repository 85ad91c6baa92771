from __future__ import annotations

from fastapi import Query, Request

from causal_lab.config import Settings
from causal_lab.models.common import Page
from causal_lab.services.analyses_service import AnalysisService
from causal_lab.services.datasets_service import DatasetService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dataset_service(request: Request) -> DatasetService:
    return request.app.state.dataset_service


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service


def get_page(
    request: Request,
    limit: int | None = Query(None, gt=0),
    offset: int | None = Query(None, ge=0),
) -> Page:
    """Pagination query params with defaults applied here, at the API boundary."""
    default_limit = get_settings(request).default_page_limit
    return Page(
        limit=limit if limit is not None else default_limit,
        offset=offset if offset is not None else 0,
    )

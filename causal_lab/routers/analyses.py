from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from causal_lab.deps import get_analysis_service, get_page
from causal_lab.models.analyses import Analysis, CreateAnalysisRequest
from causal_lab.models.common import ErrorResponse, Page
from causal_lab.services.analyses_service import AnalysisService

router = APIRouter(responses={404: {"model": ErrorResponse}})


@router.post("", response_model=Analysis)
async def create_analysis(
    body: CreateAnalysisRequest,
    service: AnalysisService = Depends(get_analysis_service),
):
    return await service.create(
        dataset_id=body.dataset_id,
        name=body.name,
        target_variable=body.target_variable,
        treatment_variables=body.treatment_variables,
        control_variables=body.control_variables,
        method=body.method,
    )


@router.get("", response_model=List[Analysis])
async def get_analyses(
    dataset_id: Optional[int] = Query(None),
    page: Page = Depends(get_page),
    service: AnalysisService = Depends(get_analysis_service),
):
    return await service.list_analyses(dataset_id, page)


@router.get("/{analysis_id}", response_model=Analysis)
async def get_analysis_results(
    analysis_id: int,
    service: AnalysisService = Depends(get_analysis_service),
):
    return await service.get_analysis_results(analysis_id)


@router.post(
    "/{analysis_id}/run",
    response_model=Analysis,
    responses={409: {"model": ErrorResponse}, 412: {"model": ErrorResponse}},
)
async def run_causal_analysis(
    analysis_id: int,
    service: AnalysisService = Depends(get_analysis_service),
):
    return await service.run(analysis_id)

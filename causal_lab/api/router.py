from fastapi import APIRouter
from causal_lab.routers import analyses, datasets

api_router = APIRouter()
api_router.include_router(datasets.router, prefix="/datasets", tags=["datasets"])
api_router.include_router(analyses.router, prefix="/analyses", tags=["analyses"])

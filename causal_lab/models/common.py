from pydantic import BaseModel, Field
from typing import Optional


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    detail: ErrorDetail


class Page(BaseModel):
    """Pagination window applied after ordering."""

    limit: int = Field(50, gt=0)
    offset: int = Field(0, ge=0)


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    version: Optional[str] = None

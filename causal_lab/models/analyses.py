from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AnalysisMethod(str, Enum):
    DOUBLEML = "doubleml"
    CAUSALML = "causalml"
    ECONML = "econml"
    PYWHY = "pywhy"


class Analysis(BaseModel):
    id: int
    dataset_id: int
    name: str
    target_variable: str
    treatment_variables: List[str]
    control_variables: List[str] = Field(default_factory=list)
    method: AnalysisMethod
    status: AnalysisStatus
    results: Optional[Dict[str, Any]] = None
    simple_explanation: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class CreateAnalysisRequest(BaseModel):
    dataset_id: int
    name: str
    target_variable: str
    treatment_variables: List[str]
    control_variables: List[str] = Field(default_factory=list)
    method: AnalysisMethod

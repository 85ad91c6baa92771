"""causal_lab/services/analyses_service.py

Analyses move through a small state machine:

  pending ──run──► running ──► completed   (terminal; re-running returns it unchanged)
     │                 └─────► failed ──run──► running ...
     └── dataset not ready ──► failed

The pending/failed → running step is a conditional update so two concurrent
runs cannot both execute the estimator.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from causal_lab.db.base import RecordStore
from causal_lab.engine.estimators import EstimatorRegistry, default_registry
from causal_lab.errors import ConflictError, NotFoundError, PreconditionError, ValidationError
from causal_lab.models.analyses import Analysis, AnalysisMethod, AnalysisStatus
from causal_lab.models.common import Page
from causal_lab.models.datasets import Dataset, DatasetStatus

logger = logging.getLogger(__name__)

RUNNABLE_STATUSES = (AnalysisStatus.PENDING.value, AnalysisStatus.FAILED.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisService:
    def __init__(
        self,
        store: RecordStore,
        estimators: Optional[EstimatorRegistry] = None,
        validate_columns: bool = False,
    ):
        self.store = store
        self.estimators = estimators or default_registry()
        self.validate_columns = validate_columns

    async def _require(self, analysis_id: int) -> dict:
        row = await self.store.get_analysis(analysis_id)
        if row is None:
            raise NotFoundError(f"Analysis with id {analysis_id} not found")
        return row

    async def _check_variables(self, dataset_id: int, variables: List[str]) -> None:
        known = {c["column_name"] for c in await self.store.list_columns(dataset_id)}
        unknown = [v for v in variables if v not in known]
        if unknown:
            raise ValidationError(
                f"Unknown columns for dataset {dataset_id}: {', '.join(unknown)}"
            )

    async def create(
        self,
        dataset_id: int,
        name: str,
        target_variable: str,
        treatment_variables: List[str],
        control_variables: Optional[List[str]],
        method: AnalysisMethod,
    ) -> Analysis:
        if not name or not name.strip():
            raise ValidationError("Analysis name must not be empty")
        if not treatment_variables:
            raise ValidationError("At least one treatment variable is required")
        try:
            method = AnalysisMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown analysis method: {method}")

        if await self.store.get_dataset(dataset_id) is None:
            raise NotFoundError(f"Dataset with ID {dataset_id} not found")

        control_variables = list(control_variables or [])
        if self.validate_columns:
            await self._check_variables(
                dataset_id, [target_variable, *treatment_variables, *control_variables]
            )

        row = await self.store.insert_analysis({
            "dataset_id": dataset_id,
            "name": name,
            "target_variable": target_variable,
            "treatment_variables": list(treatment_variables),
            "control_variables": control_variables,
            "method": method.value,
            "status": AnalysisStatus.PENDING.value,
            "results": None,
            "simple_explanation": None,
            "created_at": _utcnow(),
            "completed_at": None,
        })
        logger.info("analysis %s created for dataset %s (%s)", row["id"], dataset_id, method.value)
        return Analysis.model_validate(row)

    async def run(self, analysis_id: int) -> Analysis:
        row = await self._require(analysis_id)
        status = row["status"]

        if status == AnalysisStatus.COMPLETED.value:
            return Analysis.model_validate(row)
        if status == AnalysisStatus.RUNNING.value:
            raise ConflictError(f"Analysis {analysis_id} is already running")

        dataset_row = await self.store.get_dataset(row["dataset_id"])
        if dataset_row is None or dataset_row["status"] != DatasetStatus.READY.value:
            await self.store.update_analysis(analysis_id, {"status": AnalysisStatus.FAILED.value})
            raise PreconditionError(
                f"Dataset {row['dataset_id']} not found or not ready for analysis"
            )

        claimed = await self.store.update_analysis(
            analysis_id,
            {"status": AnalysisStatus.RUNNING.value},
            only_if_status=RUNNABLE_STATUSES,
        )
        if claimed is None:
            # lost the race to another run
            current = await self._require(analysis_id)
            if current["status"] == AnalysisStatus.COMPLETED.value:
                return Analysis.model_validate(current)
            raise ConflictError(f"Analysis {analysis_id} is already running")

        analysis = Analysis.model_validate(claimed)
        try:
            estimator = self.estimators.get(analysis.method)
            outcome = estimator.estimate(analysis, Dataset.model_validate(dataset_row))
            updated = await self.store.update_analysis(analysis_id, {
                "status": AnalysisStatus.COMPLETED.value,
                "results": outcome.results,
                "simple_explanation": outcome.simple_explanation,
                "completed_at": _utcnow(),
            })
        except Exception:
            logger.exception("analysis %s failed", analysis_id)
            try:
                await self.store.update_analysis(analysis_id, {"status": AnalysisStatus.FAILED.value})
            except Exception:
                logger.exception("analysis %s: could not record failed status", analysis_id)
            raise

        logger.info("analysis %s completed", analysis_id)
        return Analysis.model_validate(updated)

    async def list_analyses(
        self,
        dataset_id: Optional[int] = None,
        page: Optional[Page] = None,
    ) -> List[Analysis]:
        page = page or Page()
        rows = await self.store.list_analyses(dataset_id, page.limit, page.offset)
        return [Analysis.model_validate(r) for r in rows]

    async def get_analysis_results(self, analysis_id: int) -> Analysis:
        return Analysis.model_validate(await self._require(analysis_id))

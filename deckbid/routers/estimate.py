"""
Estimate API — roll materials + labor up into the bid total.

POST /api/estimate/{project_id}/calculate — Totals from the latest takeoff and labor plan; upserts the estimate
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..engines.estimate import estimate_totals
from .projects import get_project_or_404
from .takeoffs import latest_takeoff, row_to_item

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/estimate", tags=["estimate"])


class EstimateRequest(BaseModel):
    """Anything left out falls back to the project's saved estimate, then the shop defaults."""
    overhead_pct: Optional[float] = Field(default=None, ge=0, le=1)
    profit_pct: Optional[float] = Field(default=None, ge=0, le=1)
    tax_pct: Optional[float] = Field(default=None, ge=0, le=1)
    tax_mode: Optional[schemas.TaxMode] = None


def _resolve_settings(request: EstimateRequest,
                      saved: Optional[models.Estimate]) -> schemas.EstimateSettings:
    def pick(field, default):
        value = getattr(request, field)
        if value is not None:
            return value
        if saved is not None and getattr(saved, field) is not None:
            return getattr(saved, field)
        return default

    return schemas.EstimateSettings(
        overhead_pct=pick("overhead_pct", settings.DEFAULT_OVERHEAD_PCT),
        profit_pct=pick("profit_pct", settings.DEFAULT_PROFIT_PCT),
        tax_pct=pick("tax_pct", settings.DEFAULT_TAX_PCT),
        tax_mode=pick("tax_mode", settings.DEFAULT_TAX_MODE),
    )


@router.post("/{project_id}/calculate")
def calculate(project_id: int, request: Optional[EstimateRequest] = None,
              db: Session = Depends(get_db)):
    request = request or EstimateRequest()
    get_project_or_404(db, project_id)

    takeoff_row = latest_takeoff(db, project_id)
    if not takeoff_row:
        raise HTTPException(status_code=400, detail="Generate a takeoff before calculating the estimate")

    plan_row = db.query(models.LaborPlan).filter(models.LaborPlan.project_id == project_id).first()
    labor = None
    if plan_row:
        labor = schemas.LaborPlanResult(
            total_hours=plan_row.total_hours or 0.0,
            total_labor_cost=plan_row.total_labor_cost or 0.0,
        )
    else:
        logger.warning("Project %d has no labor plan; estimating materials only", project_id)

    row = db.query(models.Estimate).filter(models.Estimate.project_id == project_id).first()
    est_settings = _resolve_settings(request, row)

    totals = estimate_totals(
        [row_to_item(r) for r in takeoff_row.items],
        labor,
        est_settings.overhead_pct,
        est_settings.profit_pct,
        est_settings.tax_pct,
        est_settings.tax_mode,
    )

    if not row:
        row = models.Estimate(project_id=project_id)
        db.add(row)
    for field, value in est_settings.model_dump().items():
        setattr(row, field, value)
    for field, value in totals.model_dump().items():
        setattr(row, field, value)
    db.commit()

    return {
        "takeoff_version": takeoff_row.version,
        "settings": est_settings.model_dump(),
        "totals": totals.model_dump(),
    }

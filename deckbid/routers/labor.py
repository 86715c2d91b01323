"""
Labor API — production-rate templates and per-project labor plans.

GET  /api/labor/templates              — List templates (defaults seeded on first use)
POST /api/labor/{project_id}/generate  — Build the labor plan from latest inputs + takeoff
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..engines.labor import DEFAULT_LABOR_TEMPLATES, generate_labor_plan, template_from_json
from .projects import get_project_or_404, load_design_inputs
from .takeoffs import latest_takeoff, row_to_item

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/labor", tags=["labor"])

# Template picked when the request doesn't name one
DEFAULT_TEMPLATE_BY_PROJECT_TYPE = {
    "deck": "Deck Only - Standard",
    "covered_deck": "Covered Deck - Standard",
    "fence": "Fence - Standard",
}


class LaborPlanRequest(BaseModel):
    template_id: Optional[int] = None
    include_demo: bool = False
    overrides: Dict[str, schemas.LaborTaskOverride] = {}


def seed_labor_templates(db: Session) -> int:
    """Insert any default template that isn't in the table yet. Returns how many were added."""
    added = 0
    for template in DEFAULT_LABOR_TEMPLATES:
        existing = db.query(models.LaborTemplate).filter(
            models.LaborTemplate.name == template.name
        ).first()
        if not existing:
            db.add(models.LaborTemplate(
                name=template.name,
                rates_json=template.rates.model_dump(),
                production_json=template.production.model_dump(),
            ))
            added += 1
    if added:
        db.commit()
    return added


def _template_dict(row: models.LaborTemplate) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "rates": row.rates_json,
        "production": row.production_json,
    }


@router.get("/templates")
def list_templates(db: Session = Depends(get_db)):
    seed_labor_templates(db)
    rows = db.query(models.LaborTemplate).order_by(models.LaborTemplate.id).all()
    return [_template_dict(row) for row in rows]


@router.post("/{project_id}/generate")
def generate(project_id: int, request: Optional[LaborPlanRequest] = None,
             db: Session = Depends(get_db)):
    request = request or LaborPlanRequest()
    project = get_project_or_404(db, project_id)
    inputs = load_design_inputs(db, project_id)

    takeoff_row = latest_takeoff(db, project_id)
    if not takeoff_row:
        raise HTTPException(status_code=400, detail="Generate a takeoff before the labor plan")

    seed_labor_templates(db)
    if request.template_id is not None:
        template_row = db.query(models.LaborTemplate).filter(
            models.LaborTemplate.id == request.template_id
        ).first()
        if not template_row:
            raise HTTPException(status_code=404, detail="Labor template not found")
    else:
        name = DEFAULT_TEMPLATE_BY_PROJECT_TYPE.get(project.type, "Deck Only - Standard")
        template_row = db.query(models.LaborTemplate).filter(
            models.LaborTemplate.name == name
        ).first()

    template = template_from_json(template_row.name, template_row.rates_json,
                                  template_row.production_json)
    takeoff = schemas.TakeoffResult(
        assumptions=schemas.TakeoffAssumptions(**takeoff_row.assumptions_json),
        items=tuple(row_to_item(r) for r in takeoff_row.items),
        totals=schemas.TakeoffTotals(**takeoff_row.totals_json),
    )
    plan = generate_labor_plan(inputs, takeoff, template,
                               include_demo=request.include_demo, overrides=request.overrides)

    row = db.query(models.LaborPlan).filter(models.LaborPlan.project_id == project_id).first()
    if not row:
        row = models.LaborPlan(project_id=project_id)
        db.add(row)
    row.template_id = template_row.id
    row.include_demo = request.include_demo
    row.overrides_json = {k: v.model_dump() for k, v in request.overrides.items()}
    row.tasks_json = [t.model_dump() for t in plan.tasks]
    row.total_hours = plan.total_hours
    row.total_labor_cost = plan.total_labor_cost
    db.commit()

    return {
        "template": template_row.name,
        "takeoff_version": takeoff_row.version,
        **plan.model_dump(mode="json"),
    }

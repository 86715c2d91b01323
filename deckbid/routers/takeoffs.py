"""
Takeoff API — generate, version, edit and diff material takeoffs.

POST  /api/takeoffs/{project_id}/generate  — Run the itemizer on the latest inputs, store a new version
GET   /api/takeoffs/{project_id}           — Latest takeoff with items
GET   /api/takeoffs/{project_id}/history   — Version list (no items)
GET   /api/takeoffs/{project_id}/diff      — Added / removed / changed items, previous -> latest
PATCH /api/takeoffs/item/{item_id}         — Edit one line (qty, waste, unit cost, vendor, lead time, notes)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..engines.estimate import materials_subtotal
from ..engines.price_book import load_price_book
from ..engines.rounding import round2
from ..engines.takeoff import compute_takeoff_diff, generate_takeoff
from .projects import get_project_or_404, load_design_inputs, load_overrides

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/takeoffs", tags=["takeoffs"])


# --- Request schemas ---

class TakeoffItemUpdate(BaseModel):
    qty: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    waste_factor: Optional[float] = Field(default=None, ge=0, le=1, allow_inf_nan=False)
    unit_cost: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    lead_time_days: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    vendor: Optional[str] = None


# --- Helpers ---

def row_to_item(row: models.TakeoffLineItem) -> schemas.TakeoffItem:
    return schemas.TakeoffItem(
        category=row.category,
        name=row.name,
        unit=row.unit,
        qty=row.qty or 0.0,
        waste_factor=row.waste_factor or 0.0,
        unit_cost=row.unit_cost or 0.0,
        vendor=row.vendor,
        lead_time_days=row.lead_time_days or 0,
        notes=row.notes,
        is_allowance=bool(row.is_allowance),
        sku=row.sku,
    )


def latest_takeoff(db: Session, project_id: int, offset: int = 0) -> Optional[models.Takeoff]:
    return db.query(models.Takeoff).filter(
        models.Takeoff.project_id == project_id
    ).order_by(models.Takeoff.version.desc()).offset(offset).first()


def serialize_takeoff(takeoff: models.Takeoff) -> dict:
    items = []
    for row in takeoff.items:
        item = row_to_item(row)
        data = item.model_dump(exclude={"price_key"})
        data["id"] = row.id
        data["line_total"] = round2(item.line_total)
        items.append(data)
    return {
        "id": takeoff.id,
        "project_id": takeoff.project_id,
        "version": takeoff.version,
        "created_at": takeoff.created_at.isoformat() if takeoff.created_at else None,
        "assumptions": takeoff.assumptions_json,
        "totals": takeoff.totals_json,
        "items": items,
    }


# --- Endpoints ---

@router.post("/{project_id}/generate")
def generate(project_id: int, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    inputs = load_design_inputs(db, project_id)
    overrides = load_overrides(db, project_id)

    result = generate_takeoff(inputs, overrides, load_price_book(settings.PRICE_BOOK_PATH))

    previous = latest_takeoff(db, project_id)
    takeoff = models.Takeoff(
        project_id=project_id,
        version=previous.version + 1 if previous else 1,
        assumptions_json=result.assumptions.model_dump(mode="json"),
        totals_json=result.totals.model_dump(mode="json"),
    )
    for position, item in enumerate(result.items):
        takeoff.items.append(models.TakeoffLineItem(
            position=position,
            **item.model_dump(exclude={"price_key", "line_total"}),
        ))
    db.add(takeoff)
    db.commit()
    db.refresh(takeoff)

    logger.info("Project %d takeoff v%d: %d items, %.2f sqft",
                project_id, takeoff.version, result.totals.item_count, result.totals.deck_sqft)
    return serialize_takeoff(takeoff)


@router.get("/{project_id}")
def get_latest(project_id: int, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    takeoff = latest_takeoff(db, project_id)
    if not takeoff:
        raise HTTPException(status_code=404, detail="No takeoff generated yet")
    return serialize_takeoff(takeoff)


@router.get("/{project_id}/history")
def history(project_id: int, db: Session = Depends(get_db)) -> List[dict]:
    get_project_or_404(db, project_id)
    rows = db.query(models.Takeoff).filter(
        models.Takeoff.project_id == project_id
    ).order_by(models.Takeoff.version.desc()).all()
    return [
        {
            "id": row.id,
            "version": row.version,
            "created_at": row.created_at.isoformat() if row.created_at else None,
            "totals": row.totals_json,
        }
        for row in rows
    ]


@router.get("/{project_id}/diff")
def diff(project_id: int, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    current = latest_takeoff(db, project_id)
    previous = latest_takeoff(db, project_id, offset=1)
    if not current or not previous:
        raise HTTPException(status_code=400, detail="Need at least two takeoff versions to compare")

    result = compute_takeoff_diff(
        [row_to_item(r) for r in previous.items],
        [row_to_item(r) for r in current.items],
    )
    return {
        "from_version": previous.version,
        "to_version": current.version,
        **result.model_dump(mode="json", exclude={"added": {"__all__": {"price_key"}},
                                                  "removed": {"__all__": {"price_key"}}}),
    }


@router.patch("/item/{item_id}")
def update_item(item_id: int, update: TakeoffItemUpdate, db: Session = Depends(get_db)):
    row = db.query(models.TakeoffLineItem).filter(models.TakeoffLineItem.id == item_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Takeoff item not found")
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(row, field, value)

    # Edited lines change the stored subtotal
    takeoff = row.takeoff
    totals = dict(takeoff.totals_json or {})
    totals["materials_subtotal"] = materials_subtotal(row_to_item(r) for r in takeoff.items)
    takeoff.totals_json = totals
    db.commit()
    db.refresh(row)

    item = row_to_item(row)
    data = item.model_dump(exclude={"price_key"})
    data["id"] = row.id
    data["line_total"] = round2(item.line_total)
    return {"item": data, "totals": totals}

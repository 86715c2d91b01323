"""
Projects API — project records, versioned design inputs, assumption overrides.

POST /api/projects/                  — Create a project
GET  /api/projects/                  — List projects
GET  /api/projects/{id}              — Project detail + latest inputs/assumptions
POST /api/projects/{id}/inputs       — Validate and store a new design-inputs version
POST /api/projects/{id}/assumptions  — Upsert the project's AssumptionOverrides
"""

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..engines.covered import validate_covered_package

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


# --- Shared lookups (used by the takeoff / labor / estimate routers) ---

def get_project_or_404(db: Session, project_id: int) -> models.Project:
    project = db.query(models.Project).filter(models.Project.id == project_id).first()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def latest_inputs_row(db: Session, project_id: int) -> Optional[models.DesignInputsVersion]:
    return db.query(models.DesignInputsVersion).filter(
        models.DesignInputsVersion.project_id == project_id
    ).order_by(models.DesignInputsVersion.version.desc()).first()


def load_design_inputs(db: Session, project_id: int) -> Union[schemas.DeckInputs, schemas.FenceInputs]:
    """Latest stored inputs, re-validated. 400 when missing or no longer valid."""
    row = latest_inputs_row(db, project_id)
    if not row:
        raise HTTPException(status_code=400, detail="No design inputs — save the design form first")
    try:
        return schemas.parse_design_inputs(row.inputs_json)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid design inputs for takeoff generation")


def load_overrides(db: Session, project_id: int) -> schemas.AssumptionOverrides:
    row = db.query(models.ProjectAssumptions).filter(
        models.ProjectAssumptions.project_id == project_id
    ).first()
    if not row or not row.overrides_json:
        return schemas.AssumptionOverrides()
    return schemas.AssumptionOverrides(**row.overrides_json)


def _validation_detail(exc: ValidationError) -> list:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
        for err in exc.errors()
    ]


# --- Endpoints ---

@router.post("/", response_model=schemas.Project)
def create_project(project: schemas.ProjectCreate, db: Session = Depends(get_db)):
    db_project = models.Project(**project.model_dump())
    db.add(db_project)
    db.commit()
    db.refresh(db_project)
    logger.info("Created %s project %d: %s", db_project.type, db_project.id, db_project.name)
    return db_project


@router.get("/", response_model=List[schemas.Project])
def list_projects(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return db.query(models.Project).order_by(models.Project.id.desc()).offset(skip).limit(limit).all()


@router.get("/{project_id}")
def get_project(project_id: int, db: Session = Depends(get_db)):
    project = get_project_or_404(db, project_id)
    inputs = latest_inputs_row(db, project_id)
    return {
        "project": schemas.Project.model_validate(project).model_dump(),
        "inputs_version": inputs.version if inputs else None,
        "inputs": inputs.inputs_json if inputs else None,
        "assumptions": load_overrides(db, project_id).model_dump(),
    }


@router.post("/{project_id}/inputs")
def save_inputs(project_id: int, payload: dict, db: Session = Depends(get_db)):
    """
    Validate and version the design form.

    Fence projects are always fence inputs; covered-deck projects default to
    is_covered. When the project requires a complete covered package, a
    covered deck missing any package field is rejected with the list of
    what's missing.
    """
    project = get_project_or_404(db, project_id)

    raw = dict(payload)
    if project.type == "fence":
        raw["design_mode"] = "fence"
    elif project.type == "covered_deck":
        raw.setdefault("is_covered", True)

    try:
        inputs = schemas.parse_design_inputs(raw)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_detail(e))

    overrides = load_overrides(db, project_id)
    if (isinstance(inputs, schemas.DeckInputs) and inputs.is_covered
            and overrides.require_complete_covered_package):
        check = validate_covered_package(raw)
        if not check.ready:
            raise HTTPException(
                status_code=400,
                detail=f"Covered package incomplete: {', '.join(check.missing)}",
            )

    previous = latest_inputs_row(db, project_id)
    version = previous.version + 1 if previous else 1
    row = models.DesignInputsVersion(
        project_id=project_id,
        version=version,
        inputs_json=inputs.model_dump(mode="json"),
    )
    db.add(row)
    if project.status == "draft":
        project.status = "estimating"
    db.commit()

    return {"ok": True, "version": version, "design_mode": inputs.design_mode}


@router.post("/{project_id}/assumptions")
def save_assumptions(project_id: int, overrides: schemas.AssumptionOverrides,
                     db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    row = db.query(models.ProjectAssumptions).filter(
        models.ProjectAssumptions.project_id == project_id
    ).first()
    if row:
        row.overrides_json = overrides.model_dump()
    else:
        db.add(models.ProjectAssumptions(project_id=project_id, overrides_json=overrides.model_dump()))
    db.commit()
    return {"ok": True, "assumptions": overrides.model_dump()}

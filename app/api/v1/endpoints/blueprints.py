import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any, Optional

from app.schemas import blueprint as schemas_blueprint
from app.schemas import question as schemas_question
from app.api import deps
from app.crud.crud_blueprint import crud_blueprint
from app.crud.crud_question import crud_question
from app.generation.errors import InfeasibleBlueprintError

log = logging.getLogger(__name__)

router = APIRouter()

def _infeasible_detail(e: InfeasibleBlueprintError) -> dict:
    return {
        "message": str(e),
        "details": e.details,
        "shortfalls": [s.as_dict() for s in e.shortfalls],
    }

@router.get("/pool-metadata", response_model=schemas_question.PoolMetadataResponse)
async def read_pool_metadata(
    db: AsyncSession = Depends(deps.get_db),
    subject: str = Query(..., min_length=1),
) -> Any:
    """
    Availability grid for a subject (module x marks, plus RBT and type breakdowns),
    used to draft a blueprint that the pool can actually satisfy.
    """
    availability = await crud_question.get_availability(db, subject=subject)
    return {"subject": subject, "meta": schemas_question.PoolMetadata.model_validate(availability)}

@router.post("/", response_model=schemas_blueprint.Blueprint, status_code=status.HTTP_201_CREATED)
async def create_blueprint(
    *,
    db: AsyncSession = Depends(deps.get_db),
    blueprint_in: schemas_blueprint.BlueprintCreate,
) -> Any:
    """
    Create a blueprint.

    `distribution` maps module -> marks -> count. Totals must match and every
    cell must be covered by the current pool; otherwise a 400 lists each shortfall.
    """
    try:
        return await crud_blueprint.create(db=db, obj_in=blueprint_in)
    except InfeasibleBlueprintError as e:
        raise HTTPException(status_code=400, detail=_infeasible_detail(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/", response_model=List[schemas_blueprint.Blueprint])
async def read_blueprints(
    db: AsyncSession = Depends(deps.get_db),
    subject: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
) -> Any:
    """
    Retrieve blueprints, newest first.
    """
    return await crud_blueprint.get_multi(db, subject=subject, skip=skip, limit=limit)

@router.get("/{blueprint_id}", response_model=schemas_blueprint.Blueprint)
async def read_blueprint(
    blueprint_id: int,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    blueprint = await crud_blueprint.get(db, id=blueprint_id)
    if not blueprint:
        raise HTTPException(status_code=404, detail="Blueprint not found")
    return blueprint

@router.put("/{blueprint_id}", response_model=schemas_blueprint.Blueprint)
async def update_blueprint(
    blueprint_id: int,
    *,
    db: AsyncSession = Depends(deps.get_db),
    blueprint_in: schemas_blueprint.BlueprintUpdate,
) -> Any:
    """
    Update a blueprint. The merged distribution is re-validated against the pool.
    """
    blueprint = await crud_blueprint.get(db, id=blueprint_id)
    if not blueprint:
        raise HTTPException(status_code=404, detail="Blueprint not found")
    try:
        return await crud_blueprint.update(db=db, db_obj=blueprint, obj_in=blueprint_in)
    except InfeasibleBlueprintError as e:
        raise HTTPException(status_code=400, detail=_infeasible_detail(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/{blueprint_id}/validate", response_model=schemas_blueprint.BlueprintValidation)
async def validate_blueprint(
    blueprint_id: int,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Re-check a stored blueprint against the pool as it is now.
    """
    blueprint = await crud_blueprint.get(db, id=blueprint_id)
    if not blueprint:
        raise HTTPException(status_code=404, detail="Blueprint not found")
    try:
        return await crud_blueprint.validate(db, db_obj=blueprint)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

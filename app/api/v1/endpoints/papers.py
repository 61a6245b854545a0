import io
import logging
import re
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Any

from starlette.responses import StreamingResponse

from app.schemas import paper as schemas_paper
from app.api import deps
from app.core.config import settings
from app.crud.crud_blueprint import crud_blueprint
from app.crud.crud_paper import crud_paper
from app.generation import orchestrator
from app.generation.difficulty import DIFFICULTY_CONFIGS
from app.utils.pdf_renderer import render_paper_pdf

log = logging.getLogger(__name__)

router = APIRouter()

@router.post("/generate", response_model=schemas_paper.PaperGenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_papers(
    *,
    db: AsyncSession = Depends(deps.get_db),
    request_in: schemas_paper.PaperGenerateRequest,
) -> Any:
    """
    Generate 1-3 papers from a blueprint.

    - **1 paper**: `difficulty` is required (`easy`, `medium` or `hard`)
    - **2 papers**: easy + hard
    - **3 papers**: easy + medium + hard

    No question appears in two papers of the same request, and questions used by
    earlier papers of the blueprint are avoided while the pool allows it.
    Shortfalls are reported in `warnings`; the papers are still created.
    """
    blueprint = await crud_blueprint.get(db, id=request_in.blueprint_id)
    if not blueprint:
        raise HTTPException(status_code=404, detail="Blueprint not found")

    number_of_papers = request_in.number_of_papers or blueprint.number_of_papers
    try:
        result = await orchestrator.generate_papers(
            db,
            blueprint=blueprint,
            number_of_papers=number_of_papers,
            difficulty=request_in.difficulty,
            exam_type=request_in.exam_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return schemas_paper.PaperGenerateResponse(
        message=f"{len(result.papers)} paper(s) generated successfully",
        count=len(result.papers),
        papers=[schemas_paper.Paper.model_validate(p) for p in result.papers],
        difficulty_levels=result.difficulties,
        warnings=result.warnings,
    )

@router.get("/recent", response_model=List[schemas_paper.Paper])
async def read_recent_papers(
    db: AsyncSession = Depends(deps.get_db),
    limit: int = Query(settings.RECENT_PAPERS_LIMIT, ge=1, le=100),
) -> Any:
    """
    Most recently generated papers, across all blueprints.
    """
    return await crud_paper.get_recent(db, limit=limit)

@router.get("/difficulty-configs", response_model=schemas_paper.DifficultyConfigsResponse)
async def read_difficulty_configs() -> Any:
    """
    Target RBT percentages per difficulty tier.
    """
    return {"configs": {key: profile.as_dict() for key, profile in DIFFICULTY_CONFIGS.items()}}

@router.get("/difficulty/{difficulty}", response_model=List[schemas_paper.Paper])
async def read_papers_by_difficulty(
    difficulty: schemas_paper.DifficultyEnum,
    db: AsyncSession = Depends(deps.get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
) -> Any:
    return await crud_paper.get_by_difficulty(db, difficulty=difficulty, skip=skip, limit=limit)

@router.get("/blueprint/{blueprint_id}", response_model=schemas_paper.PapersByDifficulty)
async def read_papers_by_blueprint(
    blueprint_id: int,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Every paper generated from a blueprint, grouped by difficulty tier.
    """
    papers = await crud_paper.get_by_blueprint(db, blueprint_id=blueprint_id)
    grouped = {key: [] for key in DIFFICULTY_CONFIGS}
    for paper in papers:
        grouped[getattr(paper.difficulty, "value", paper.difficulty)].append(paper)
    return {**grouped, "total": len(papers)}

@router.get("/{paper_id}", response_model=schemas_paper.Paper)
async def read_paper(
    paper_id: int,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    paper = await crud_paper.get(db, id=paper_id)
    if not paper:
        raise HTTPException(status_code=404, detail="Paper not found")
    return paper

@router.get("/{paper_id}/download-pdf", response_class=StreamingResponse)
async def download_paper_pdf(
    paper_id: int,
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Render a paper as PDF: exam header, instructions, then one section per marks value.
    """
    paper = await crud_paper.get(db, id=paper_id)
    if not paper:
        raise HTTPException(status_code=404, detail="Paper not found")

    pdf_bytes = render_paper_pdf(paper)
    safe_title = re.sub(r"[^A-Za-z0-9_-]+", "_", paper.title or "paper").strip("_")
    filename = f"{safe_title}_{paper.id}.pdf"
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )

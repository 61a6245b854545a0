import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional

from app.schemas import question as schemas_question
from app.api import deps
from app.core.config import settings
from app.crud.crud_question import crud_question
from app.utils import excel_processor

log = logging.getLogger(__name__)

router = APIRouter()

@router.get("/subjects", response_model=schemas_question.SubjectList)
async def read_subjects(db: AsyncSession = Depends(deps.get_db)) -> Any:
    """
    Distinct subjects present in the question pool.
    """
    subjects = await crud_question.get_distinct_subjects(db)
    return {"subjects": subjects}

@router.get("/", response_model=schemas_question.QuestionList)
async def read_questions(
    db: AsyncSession = Depends(deps.get_db),
    subject: Optional[str] = Query(None),
    co: Optional[str] = Query(None),
    rbt: Optional[str] = Query(None),
    marks: Optional[int] = Query(None, ge=0),
    question_type: Optional[str] = Query(None, alias="type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(1000, ge=1, le=5000),
) -> Any:
    """
    List questions, newest first. All filters are exact matches.
    """
    questions = await crud_question.get_multi(
        db, subject=subject, co=co, rbt=rbt, marks=marks, question_type=question_type, skip=skip, limit=limit
    )
    return {"count": len(questions), "questions": questions}

@router.get("/stats", response_model=schemas_question.QuestionStats)
async def read_question_stats(
    db: AsyncSession = Depends(deps.get_db),
    subject: str = Query(..., min_length=1),
) -> Any:
    """
    Counts per CO, RBT level, type, marks and unit, plus total and average marks.
    """
    return await crud_question.get_stats(db, subject=subject)

@router.get("/cos", response_model=schemas_question.SubjectCOs)
async def read_subject_cos(
    db: AsyncSession = Depends(deps.get_db),
    subject: str = Query(..., min_length=1),
) -> Any:
    cos = await crud_question.get_cos(db, subject=subject)
    return {"subject": subject, "cos": cos}

@router.get("/rbt-levels", response_model=schemas_question.SubjectRBTLevels)
async def read_subject_rbt_levels(
    db: AsyncSession = Depends(deps.get_db),
    subject: str = Query(..., min_length=1),
) -> Any:
    levels = await crud_question.get_rbt_levels(db, subject=subject)
    return {"subject": subject, "levels": levels}

@router.post("/upload", response_model=schemas_question.QuestionImportResult, status_code=status.HTTP_201_CREATED)
async def upload_questions(
    *,
    db: AsyncSession = Depends(deps.get_db),
    subject: str = Form(..., description="Subject every uploaded row belongs to."),
    file: UploadFile = File(..., description="Excel file (.xlsx) containing questions to import."),
) -> Any:
    """
    Import questions from an Excel file (.xlsx) for one subject.

    The first sheet is read. Header matching is trimmed and case-insensitive:
    - **Questions** (or `Question`, `Question Text`): required, empty rows are skipped
    - **CO**: module tag such as `CO3`
    - **RBT**: one of `R`, `U`, `AP`, `AN`, `E`, `C`
    - **PI**: performance indicator, the unit is derived from its leading number
    - **Marks**: whole number
    - **Type**: free-form tag, e.g. `T` / `N`

    Rows that fail validation are reported in `errors` and skipped.
    """
    if not file.filename or not file.filename.lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="Invalid file type. Please upload an .xlsx file.")

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File exceeds {settings.MAX_UPLOAD_SIZE_MB} MB limit.")

    try:
        return await excel_processor.process_import(db, content, subject)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

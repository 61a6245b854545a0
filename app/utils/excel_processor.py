import io
import logging
import math
import re
import uuid
from openpyxl.reader.excel import load_workbook
from openpyxl.worksheet.worksheet import Worksheet
from openpyxl.workbook import Workbook
from pydantic import ValidationError
from typing import List, Dict, Any, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas import question as schemas_question # Alias for clarity
from app.crud.crud_question import crud_question
from app.generation.rbt import parse_rbt

log = logging.getLogger(__name__)

# --- Configuration for Excel Columns ---
# Accepted header spellings per field, highest priority first. Matching is
# done on trimmed, lower-cased header text.
HEADER_ALIASES: Dict[str, List[str]] = {
    "question_text": ["questions", "question", "question text"],
    "co": ["co", "course outcome"],
    "rbt": ["rbt", "rbt level", "bloom level"],
    "pi": ["pi", "performance indicator"],
    "marks": ["marks", "mark"],
    "type": ["type", "question type"],
}
REQUIRED_FIELDS = ["question_text"]

_UNIT_RE = re.compile(r"^(\d+)\.")


def _normalize_header(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


def resolve_header_map(header_row: List[Any]) -> Dict[str, int]:
    """Maps field name -> column index, choosing the highest-priority alias present."""
    positions: Dict[str, int] = {}
    for idx, header in enumerate(header_row):
        normalized = _normalize_header(header)
        if normalized is not None and normalized not in positions:
            positions[normalized] = idx

    header_map: Dict[str, int] = {}
    for field, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in positions:
                header_map[field] = positions[alias]
                break
    return header_map


def unit_from_pi(pi: str) -> str:
    """'1.2.3' -> 'Unit1'; anything without a leading 'N.' gives ''."""
    match = _UNIT_RE.match(pi or "")
    return f"Unit{match.group(1)}" if match else ""


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _parse_marks(value: Any) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    try:
        marks = float(str(value).strip()) if not isinstance(value, (int, float)) else value
    except ValueError:
        raise ValueError(f"Invalid marks value: '{value}'")
    if isinstance(marks, float) and not math.isfinite(marks):
        raise ValueError(f"Invalid marks value: '{value}'")
    if marks != int(marks):
        raise ValueError(f"Marks must be a whole number, got '{value}'")
    if marks < 0:
        raise ValueError(f"Marks cannot be negative, got '{value}'")
    return int(marks)


def _build_question(row: Dict[str, Any], subject: str, upload_batch: str) -> schemas_question.QuestionCreate:
    """Turns one mapped row into a QuestionCreate; raises ValueError describing the first problem."""
    raw_rbt = _cell_text(row.get("rbt"))
    rbt = parse_rbt(raw_rbt)
    if rbt is None:
        raise ValueError(f"Invalid RBT level '{raw_rbt}'. Must be one of: R, U, AP, AN, E, C")

    pi = _cell_text(row.get("pi"))
    try:
        return schemas_question.QuestionCreate(
            subject=subject,
            question_text=_cell_text(row.get("question_text")),
            co=_cell_text(row.get("co")),
            rbt=rbt,
            pi=pi,
            unit=unit_from_pi(pi),
            marks=_parse_marks(row.get("marks")),
            type=_cell_text(row.get("type")),
            upload_batch=upload_batch,
        )
    except ValidationError as e:
        raise ValueError(f"Data validation failed: {e.errors()[0].get('msg', e)}")


def parse_question_rows(
    file_content: bytes, subject: str, upload_batch: str
) -> Tuple[List[schemas_question.QuestionCreate], List[Dict[str, Any]], int]:
    """
    Reads the first sheet of an .xlsx upload.

    Returns (valid questions, per-row errors, number of data rows seen).
    Rows with empty question text are skipped silently.

    Raises:
        ValueError: unreadable file, missing question column, or empty sheet.
    """
    try:
        workbook: Workbook = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
    except Exception as e:
        log.warning("Rejected upload, not a readable workbook: %s", e)
        raise ValueError("Failed to read the Excel file. Ensure it's a valid .xlsx file.") from e

    try:
        sheet: Worksheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            raise ValueError("Excel file is empty")

        header_map = resolve_header_map(list(header_row))
        missing = [f for f in REQUIRED_FIELDS if f not in header_map]
        if missing:
            raise ValueError(f"Missing required header columns: {', '.join(HEADER_ALIASES[f][0].title() for f in missing)}")

        questions: List[schemas_question.QuestionCreate] = []
        errors: List[Dict[str, Any]] = []
        total_rows = 0
        for row_idx, values in enumerate(rows, start=2):
            row = {field: values[col] if col < len(values) else None for field, col in header_map.items()}
            if not any(v not in (None, "") for v in values):
                continue # blank line
            total_rows += 1
            if not _cell_text(row.get("question_text")):
                continue

            try:
                questions.append(_build_question(row, subject, upload_batch))
            except ValueError as e:
                errors.append({"row": row_idx, "error": str(e)})
    finally:
        workbook.close()

    if total_rows == 0:
        raise ValueError("Excel file is empty")
    return questions, errors, total_rows


async def process_import(
    db: AsyncSession, file_content: bytes, subject: str
) -> schemas_question.QuestionImportResult:
    """Parses an upload and bulk inserts the valid rows under one batch tag."""
    subject = (subject or "").strip()
    if not subject:
        raise ValueError("Subject is required")

    upload_batch = uuid.uuid4().hex
    questions, errors, total_rows = parse_question_rows(file_content, subject, upload_batch)
    if not questions:
        raise ValueError("No valid questions found in the Excel file")

    created = await crud_question.create_many(db, objs_in=questions)
    log.info(
        "Upload %s for '%s': %d imported, %d rejected of %d rows",
        upload_batch, subject, len(created), len(errors), total_rows,
    )
    return schemas_question.QuestionImportResult(
        subject=subject,
        upload_batch=upload_batch,
        total_rows=total_rows,
        imported_count=len(created),
        skipped_count=total_rows - len(created),
        errors=errors,
    )

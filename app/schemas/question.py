from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.generation.rbt import RBTLevel

# --- Question Schemas ---
class QuestionBase(BaseModel):
    subject: str = Field(..., min_length=1, max_length=255)
    question_text: str = Field(..., min_length=1, description="Question body as shown on the paper")
    co: str = Field("", max_length=32, description="Module indicator, e.g. 'CO3'")
    rbt: RBTLevel = Field(..., description="Cognitive level: R, U, AP, AN, E or C")
    pi: str = Field("", max_length=32, description="Performance indicator, e.g. '1.2.3'")
    unit: str = Field("", max_length=32)
    marks: int = Field(..., ge=0)
    type: str = Field("", max_length=32, description="Free-form tag, e.g. 'T' (theory) or 'N' (numerical)")

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )

    @field_validator("question_text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Question text cannot be blank.")
        return v.strip()

class QuestionCreate(QuestionBase):
    upload_batch: str = ""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "subject": "Engineering Mathematics",
                "question_text": "State and prove Rolle's theorem.",
                "co": "CO2",
                "rbt": "U",
                "pi": "2.1.3",
                "unit": "Unit2",
                "marks": 5,
                "type": "T",
                "upload_batch": "a1b2c3",
            }
        }
    )

class QuestionInDB(QuestionBase):
    id: int
    rbt: str # Stored as plain string
    upload_batch: str = ""
    created_at: datetime
    updated_at: datetime

class Question(QuestionInDB):
    pass

# --- Upload Schemas ---
class QuestionImportResult(BaseModel):
    message: str = "Questions uploaded successfully"
    subject: str
    upload_batch: str
    total_rows: int
    imported_count: int
    skipped_count: int
    errors: List[Dict[str, Any]] = []

# --- Pool / Stats Schemas ---
class SubjectList(BaseModel):
    subjects: List[str]

class QuestionList(BaseModel):
    count: int
    questions: List[Question]

class QuestionStats(BaseModel):
    total_questions: int = 0
    total_marks: int = 0
    avg_marks: float = 0.0
    by_co: Dict[str, int] = {}
    by_rbt: Dict[str, int] = {}
    by_type: Dict[str, int] = {}
    by_marks: Dict[int, int] = {}
    by_unit: Dict[str, int] = {}

class SubjectCOs(BaseModel):
    subject: str
    cos: List[str]

class SubjectRBTLevels(BaseModel):
    subject: str
    levels: Dict[str, int]

class PoolMetadata(BaseModel):
    """Availability grid for a subject: module -> marks -> count, plus the axis values."""
    availability: Dict[int, Dict[int, int]] = {}
    availability_rbt: Dict[int, Dict[str, int]] = {}
    availability_type: Dict[int, Dict[str, int]] = {}
    modules: List[int] = []
    marks_values: List[int] = []
    rbt_levels: List[str] = []
    types: List[str] = []
    unbucketable: int = 0

    model_config = ConfigDict(from_attributes=True)

class PoolMetadataResponse(BaseModel):
    subject: str
    meta: PoolMetadata

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.generation.distribution import compute_totals, normalize_distribution

# --- Blueprint Schemas ---
class BlueprintBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=255)

    model_config = ConfigDict(from_attributes=True)

class BlueprintCreate(BlueprintBase):
    total_marks: int = Field(..., ge=0, description="Must equal sum(count x marks) over the distribution")
    total_questions: Optional[int] = Field(None, ge=0, description="Must equal sum(count) when given; derived otherwise")
    number_of_papers: int = Field(1, ge=1, le=3)
    distribution: Dict[int, Dict[int, int]] = Field(..., description="module -> marks -> required count")

    @field_validator("title", "subject")
    @classmethod
    def strip_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("distribution", mode="before")
    @classmethod
    def check_distribution(cls, v: Any) -> Dict[int, Dict[int, int]]:
        # BlueprintValidationError is a ValueError, so pydantic reports it as a field error
        return normalize_distribution(v)

    @model_validator(mode="after")
    def check_totals(self) -> "BlueprintCreate":
        total_marks, total_questions = compute_totals(self.distribution)
        if total_marks != self.total_marks:
            raise ValueError(
                f"Distribution total ({total_marks}) does not match Total Marks ({self.total_marks})."
            )
        if self.total_questions is not None and total_questions != self.total_questions:
            raise ValueError(
                f"Distribution question count ({total_questions}) does not match Total Questions ({self.total_questions})."
            )
        self.total_questions = total_questions
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Applied Mathematics ISE-1",
                "subject": "Applied Mathematics",
                "total_marks": 21,
                "total_questions": 7,
                "number_of_papers": 3,
                "distribution": {"1": {"2": 3, "5": 1}, "2": {"2": 2, "5": 1}},
            }
        }
    )

class BlueprintUpdate(BaseModel):
    # Manual edit path; totals and feasibility are re-checked by the CRUD layer
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    total_marks: Optional[int] = Field(None, ge=0)
    total_questions: Optional[int] = Field(None, ge=0)
    number_of_papers: Optional[int] = Field(None, ge=1, le=3)
    distribution: Optional[Dict[int, Dict[int, int]]] = None

    @field_validator("distribution", mode="before")
    @classmethod
    def check_distribution(cls, v: Any) -> Optional[Dict[int, Dict[int, int]]]:
        return normalize_distribution(v) if v is not None else None

class BlueprintInDB(BlueprintBase):
    id: int
    total_marks: int
    total_questions: int
    number_of_papers: int
    distribution: Dict[int, Dict[int, int]]
    pool_meta: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

class Blueprint(BlueprintInDB):
    pass

# --- Validation Schemas ---
class ShortfallInfo(BaseModel):
    module: int
    marks: int
    required: int
    available: int

class BlueprintTotals(BaseModel):
    total_marks: int
    total_questions: int

class BlueprintValidation(BaseModel):
    valid: bool
    details: List[str] = []
    shortfalls: List[ShortfallInfo] = []
    totals: BlueprintTotals

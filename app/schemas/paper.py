from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List, Dict
from datetime import datetime
import enum

# --- Enums (mirroring models) ---
class DifficultyEnum(str, enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"

class ExamTypeEnum(str, enum.Enum):
    ISE = "ISE"
    ESE = "ESE"

# --- Snapshot Schemas ---
class PaperQuestionBase(BaseModel):
    question_id: Optional[int] = None # None once the source question is deleted
    order_index: int = Field(..., ge=0)
    question_text: str
    marks: int = Field(..., ge=0)
    unit: str = ""
    co: str = ""
    rbt: str = ""
    pi: str = ""
    type: str = ""

    model_config = ConfigDict(from_attributes=True)

class PaperQuestionCreate(PaperQuestionBase):
    pass

class PaperQuestion(PaperQuestionBase):
    pass

# --- Paper Schemas ---
class GenerationMetadata(BaseModel):
    difficulty_level: str = ""
    rbt_match_percentage: float = 0.0
    warnings: List[str] = []

class PaperBase(BaseModel):
    blueprint_id: int
    subject: str
    title: str
    difficulty: DifficultyEnum
    exam_type: ExamTypeEnum = ExamTypeEnum.ISE
    total_marks: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    rbt_distribution: Dict[str, int] = {}
    target_rbt_distribution: Dict[str, int] = {}
    generation_metadata: GenerationMetadata = GenerationMetadata()

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )

class PaperCreate(PaperBase):
    questions: List[PaperQuestionCreate] = []

    @model_validator(mode="after")
    def check_consistency(self) -> "PaperCreate":
        if self.total_marks != sum(q.marks for q in self.questions):
            raise ValueError("Total marks must equal the sum of question marks.")
        if self.total_questions != len(self.questions):
            raise ValueError("Total questions must equal the number of selected questions.")
        ids = [q.question_id for q in self.questions if q.question_id is not None]
        if len(ids) != len(set(ids)):
            raise ValueError("A question cannot appear twice in the same paper.")
        return self

class PaperInDB(PaperBase):
    id: int
    created_at: datetime
    updated_at: datetime

class Paper(PaperInDB):
    difficulty_level: Optional[str] = None
    questions: List[PaperQuestion] = []

    @model_validator(mode="after")
    def fill_difficulty_level(self) -> "Paper":
        if not self.difficulty_level:
            self.difficulty_level = self.generation_metadata.difficulty_level or None
        return self

class PapersByDifficulty(BaseModel):
    easy: List[Paper] = []
    medium: List[Paper] = []
    hard: List[Paper] = []
    total: int = 0

# --- Generation Request / Response ---
class PaperGenerateRequest(BaseModel):
    blueprint_id: int
    # Tier policy (1, 2 or 3 papers) is enforced by the generator; defaults to the blueprint value
    number_of_papers: Optional[int] = None
    difficulty: Optional[DifficultyEnum] = Field(None, description="Required when generating a single paper")
    exam_type: Optional[ExamTypeEnum] = Field(None, description="Overrides the category derived from the selected marks")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "blueprint_id": 1,
                "number_of_papers": 1,
                "difficulty": "medium",
                "exam_type": None,
            }
        }
    )

class PaperGenerateResponse(BaseModel):
    message: str = "Papers generated successfully"
    count: int
    papers: List[Paper]
    difficulty_levels: List[str]
    warnings: List[str] = []

class DifficultyConfig(BaseModel):
    name: str
    rbt_distribution: Dict[str, int]

class DifficultyConfigsResponse(BaseModel):
    message: str = "Difficulty configurations"
    configs: Dict[str, DifficultyConfig]

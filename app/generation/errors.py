"""
Errors raised by blueprint validation and paper generation.

They all subclass ValueError so CRUD code and endpoints can keep catching
ValueError and turning it into a 400, while callers that care can pick out the
structured detail (shortfalls, bucket coordinates).
"""
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from app.generation.feasibility import Shortfall


class BlueprintValidationError(ValueError):
    """Malformed blueprint or generation request (totals mismatch, bad paper count...)."""


class UnknownDifficultyError(ValueError):
    def __init__(self, difficulty: str):
        self.difficulty = difficulty
        super().__init__(f"Invalid difficulty level: {difficulty}")


class InfeasibleBlueprintError(ValueError):
    def __init__(self, shortfalls: List["Shortfall"]):
        self.shortfalls = shortfalls
        super().__init__("Requested distribution exceeds available questions")

    @property
    def details(self) -> List[str]:
        return [s.describe() for s in self.shortfalls]


class EmptyBucketError(ValueError):
    def __init__(self, module: int, marks: int):
        self.module = module
        self.marks = marks
        super().__init__(f"No questions available for Module {module}, Marks {marks}.")

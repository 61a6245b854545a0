from .question import Question, QuestionCreate, QuestionImportResult, QuestionStats, PoolMetadata, PoolMetadataResponse
from .blueprint import Blueprint, BlueprintCreate, BlueprintUpdate, BlueprintValidation
from .paper import Paper, PaperCreate, PaperQuestionCreate, PaperGenerateRequest, PaperGenerateResponse

__all__ = ["Question", "QuestionCreate", "Blueprint", "BlueprintCreate", "BlueprintUpdate", "Paper", "PaperCreate"]

# Make models easily importable from app.db.models
from .question import Question
from .blueprint import Blueprint
from .paper import Paper, PaperQuestion, DifficultyEnum, ExamTypeEnum

__all__ = ["Question", "Blueprint", "Paper", "PaperQuestion", "DifficultyEnum", "ExamTypeEnum"]

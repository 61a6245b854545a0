from sqlalchemy import Integer, String, TEXT, ForeignKey, Enum as SQLEnum, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from app.db.base_class import Base, TimestampMixin
from typing import List, TYPE_CHECKING, Any, Dict, Union
import enum

if TYPE_CHECKING:
    from .blueprint import Blueprint
    from .question import Question

class DifficultyEnum(str, enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"

class ExamTypeEnum(str, enum.Enum):
    ISE = "ISE" # In-semester examination
    ESE = "ESE" # End-semester examination

class Paper(TimestampMixin, Base):
    __tablename__ = "papers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    blueprint_id: Mapped[int] = mapped_column(Integer, ForeignKey("blueprints.id", ondelete="CASCADE"), index=True, nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    difficulty: Mapped[DifficultyEnum] = mapped_column(SQLEnum(DifficultyEnum, name="difficulty_enum"), nullable=False, default=DifficultyEnum.medium, index=True)
    exam_type: Mapped[ExamTypeEnum] = mapped_column(SQLEnum(ExamTypeEnum, name="exam_type_enum"), nullable=False, default=ExamTypeEnum.ISE)
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    # Achieved counts, e.g. {"R": 5, "U": 3, "AP": 2, "AN": 1, "E": 0, "C": 0}
    rbt_distribution: Mapped[Dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    # Percentages aimed for, e.g. {"R": 40, "U": 35, ...}
    target_rbt_distribution: Mapped[Dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    # {"difficulty_level": "Easy", "rbt_match_percentage": 87.5, "warnings": [...]}
    generation_metadata: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    blueprint: Mapped["Blueprint"] = relationship("Blueprint", back_populates="papers")
    questions: Mapped[List["PaperQuestion"]] = relationship(
        "PaperQuestion", back_populates="paper", cascade="all, delete-orphan", order_by="PaperQuestion.order_index"
    )

    __table_args__ = (
        Index("ix_papers_subject_blueprint", "subject", "blueprint_id"),
        Index("ix_papers_blueprint_difficulty", "blueprint_id", "difficulty"),
    )

    def __repr__(self):
        return f"<Paper(id={self.id}, blueprint_id={self.blueprint_id}, difficulty='{self.difficulty}')>"

class PaperQuestion(Base):
    """Denormalised snapshot of a selected question, so a paper outlives edits to its source."""
    __tablename__ = "paper_questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    paper_id: Mapped[int] = mapped_column(Integer, ForeignKey("papers.id", ondelete="CASCADE"), index=True, nullable=False)
    question_id: Mapped[Union[int, None]] = mapped_column(Integer, ForeignKey("questions.id", ondelete="SET NULL"), index=True, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    question_text: Mapped[str] = mapped_column(TEXT, nullable=False)
    marks: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    co: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    rbt: Mapped[str] = mapped_column(String(4), nullable=False, default="")
    pi: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    paper: Mapped["Paper"] = relationship("Paper", back_populates="questions")
    question: Mapped[Union["Question", None]] = relationship("Question", back_populates="paper_entries")

    __table_args__ = (
        UniqueConstraint("paper_id", "question_id", name="uq_paper_questions_paper_question"),
        UniqueConstraint("paper_id", "order_index", name="uq_paper_questions_paper_order"),
    )

    def __repr__(self):
        return f"<PaperQuestion(paper={self.paper_id}, q={self.question_id}, marks={self.marks})>"

from sqlalchemy import Integer, String, TEXT, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from app.db.base_class import Base, TimestampMixin
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .paper import PaperQuestion

class Question(TimestampMixin, Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    question_text: Mapped[str] = mapped_column(TEXT, nullable=False)
    co: Mapped[str] = mapped_column(String(32), nullable=False, default="") # Module indicator, e.g. "CO3"
    rbt: Mapped[str] = mapped_column(String(4), nullable=False, default="") # R, U, AP, AN, E, C
    pi: Mapped[str] = mapped_column(String(32), nullable=False, default="") # Performance indicator, e.g. "1.2.3"
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="") # Derived from pi: "Unit1"
    marks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="") # "T" / "N" or "theory" / "numerical"
    upload_batch: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    # Snapshots keep their own copy of the text, so this is informational only
    paper_entries: Mapped[List["PaperQuestion"]] = relationship("PaperQuestion", back_populates="question")

    __table_args__ = (
        Index("ix_questions_subject_marks", "subject", "marks"),
        Index("ix_questions_subject_rbt", "subject", "rbt"),
        Index("ix_questions_subject_type", "subject", "type"),
    )

    def __repr__(self):
        return f"<Question(id={self.id}, subject='{self.subject}', co='{self.co}', marks={self.marks}, rbt='{self.rbt}')>"

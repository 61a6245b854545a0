from sqlalchemy import Integer, String, JSON, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from app.db.base_class import Base, TimestampMixin
from typing import List, TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from .paper import Paper

class Blueprint(TimestampMixin, Base):
    __tablename__ = "blueprints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    number_of_papers: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # {"1": {"2": 3, "5": 1}, "2": {"2": 2}} -> Module 1: 3 x 2M + 1 x 5M, Module 2: 2 x 2M
    # JSON object keys are strings; app.generation.distribution normalises them to ints
    distribution: Mapped[Dict[str, Dict[str, int]]] = mapped_column(JSON, nullable=False)
    # Snapshot of pool availability at creation time, for display only
    pool_meta: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    papers: Mapped[List["Paper"]] = relationship("Paper", back_populates="blueprint", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_blueprints_subject_title", "subject", "title"),
    )

    def __repr__(self):
        return f"<Blueprint(id={self.id}, title='{self.title}', subject='{self.subject}')>"

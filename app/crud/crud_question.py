import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
from typing import List, Optional, Dict, Sequence

from app.db import models
from app.schemas import question as schemas # Use alias for clarity
from app.generation.pool import QuestionPool, PoolAvailability, compute_availability
from app.generation.rbt import RBT_ORDER, rbt_rank

log = logging.getLogger(__name__)

class CRUDQuestion:
    async def get_multi(
        self,
        db: AsyncSession,
        *,
        subject: Optional[str] = None,
        co: Optional[str] = None,
        rbt: Optional[str] = None,
        marks: Optional[int] = None,
        question_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 1000,
    ) -> List[models.Question]:
        """List questions, newest first, with optional exact-match filters."""
        query = select(models.Question)
        if subject:
            query = query.filter(models.Question.subject == subject)
        if co:
            query = query.filter(models.Question.co == co)
        if rbt:
            query = query.filter(models.Question.rbt == rbt.strip().upper())
        if marks is not None:
            query = query.filter(models.Question.marks == marks)
        if question_type:
            query = query.filter(models.Question.type == question_type)

        result = await db.execute(
            query.order_by(models.Question.created_at.desc(), models.Question.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all()

    async def get_by_subject(self, db: AsyncSession, *, subject: str) -> List[models.Question]:
        """Whole pool for one subject; used for availability and stats."""
        result = await db.execute(
            select(models.Question)
            .filter(models.Question.subject == subject)
            .order_by(models.Question.id)
        )
        return result.scalars().all()

    async def get_by_subject_module_marks(
        self, db: AsyncSession, *, subject: str, module: int, marks: int
    ) -> List[models.Question]:
        """
        Candidates for one (module, marks) bucket.
        The module tag is free text ("CO3", "co 3"), so marks filter in SQL and
        the module match happens in memory with the same parser availability uses.
        """
        result = await db.execute(
            select(models.Question)
            .filter(models.Question.subject == subject, models.Question.marks == marks)
            .order_by(models.Question.id)
        )
        return QuestionPool(result.scalars().all()).filter(module=module)

    async def get_distinct_subjects(self, db: AsyncSession) -> List[str]:
        result = await db.execute(
            select(models.Question.subject).distinct().order_by(models.Question.subject)
        )
        return [s for s in result.scalars().all() if s]

    async def get_cos(self, db: AsyncSession, *, subject: str) -> List[str]:
        """Distinct module tags of a subject, sorted."""
        result = await db.execute(
            select(models.Question.co)
            .filter(models.Question.subject == subject)
            .distinct()
        )
        return sorted(co for co in result.scalars().all() if co)

    async def get_rbt_levels(self, db: AsyncSession, *, subject: str) -> Dict[str, int]:
        """Count per RBT level, every canonical level present even at zero."""
        result = await db.execute(
            select(models.Question.rbt, func.count(models.Question.id))
            .filter(models.Question.subject == subject)
            .group_by(models.Question.rbt)
        )
        levels = {level.value: 0 for level in RBT_ORDER}
        for rbt, count in result.all():
            if rbt:
                levels[rbt] = count
        return dict(sorted(levels.items(), key=lambda item: (rbt_rank(item[0]), item[0])))

    async def get_availability(self, db: AsyncSession, *, subject: str) -> PoolAvailability:
        questions = await self.get_by_subject(db, subject=subject)
        return compute_availability(questions)

    async def get_stats(self, db: AsyncSession, *, subject: str) -> schemas.QuestionStats:
        questions = await self.get_by_subject(db, subject=subject)
        if not questions:
            return schemas.QuestionStats()

        pool = QuestionPool(questions)
        total_marks = sum(q.marks or 0 for q in questions)
        return schemas.QuestionStats(
            total_questions=len(questions),
            total_marks=total_marks,
            avg_marks=round(total_marks / len(questions), 2),
            by_co=pool.count_by("co"),
            by_rbt=pool.count_by("rbt"),
            by_type=pool.count_by("type"),
            by_marks=pool.count_by("marks"),
            by_unit=pool.count_by("unit"),
        )

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence[schemas.QuestionCreate]
    ) -> List[models.Question]:
        """Bulk insert of an upload; one commit, rolled back as a whole on failure."""
        db_objs = [models.Question(**obj.model_dump()) for obj in objs_in]
        if not db_objs:
            return []
        db.add_all(db_objs)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        log.info("Inserted %d question(s)", len(db_objs))
        return db_objs

crud_question = CRUDQuestion()

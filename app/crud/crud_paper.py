import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from typing import List, Optional, Sequence, Set

from app.db import models
from app.schemas import paper as schemas_paper # Alias

log = logging.getLogger(__name__)

class CRUDPaper:
    async def get(self, db: AsyncSession, *, id: int) -> Optional[models.Paper]:
        """Get a paper with its question snapshots, in paper order."""
        result = await db.execute(
            select(models.Paper)
            .options(selectinload(models.Paper.questions))
            .filter(models.Paper.id == id)
        )
        return result.scalars().first()

    async def get_recent(self, db: AsyncSession, *, limit: int = 10) -> List[models.Paper]:
        result = await db.execute(
            select(models.Paper)
            .options(selectinload(models.Paper.questions))
            .order_by(models.Paper.created_at.desc(), models.Paper.id.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def get_by_difficulty(
        self, db: AsyncSession, *, difficulty: schemas_paper.DifficultyEnum, skip: int = 0, limit: int = 100
    ) -> List[models.Paper]:
        result = await db.execute(
            select(models.Paper)
            .options(selectinload(models.Paper.questions))
            .filter(models.Paper.difficulty == models.DifficultyEnum(difficulty))
            .order_by(models.Paper.created_at.desc(), models.Paper.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all()

    async def get_by_blueprint(self, db: AsyncSession, *, blueprint_id: int) -> List[models.Paper]:
        result = await db.execute(
            select(models.Paper)
            .options(selectinload(models.Paper.questions))
            .filter(models.Paper.blueprint_id == blueprint_id)
            .order_by(models.Paper.created_at.desc(), models.Paper.id.desc())
        )
        return result.scalars().all()

    async def get_prior_used_question_ids(self, db: AsyncSession, *, blueprint_id: int) -> Set[int]:
        """Every source question already issued by a paper of this blueprint."""
        result = await db.execute(
            select(models.PaperQuestion.question_id)
            .join(models.Paper, models.Paper.id == models.PaperQuestion.paper_id)
            .filter(models.Paper.blueprint_id == blueprint_id, models.PaperQuestion.question_id.is_not(None))
            .distinct()
        )
        return set(result.scalars().all())

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence[schemas_paper.PaperCreate]
    ) -> List[models.Paper]:
        """Persist a whole generation batch in one transaction; nothing is kept if any insert fails."""
        db_objs = []
        for obj_in in objs_in:
            data = obj_in.model_dump(exclude={"questions"})
            data["difficulty"] = models.DifficultyEnum(data["difficulty"])
            data["exam_type"] = models.ExamTypeEnum(data["exam_type"])
            paper = models.Paper(**data)
            paper.questions = [models.PaperQuestion(**q.model_dump()) for q in obj_in.questions]
            db_objs.append(paper)

        db.add_all(db_objs)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            log.exception("Paper batch insert failed, rolled back %d paper(s)", len(db_objs))
            raise

        for paper in db_objs:
            # Server-side timestamps; the snapshot collection is already in memory
            await db.refresh(paper, attribute_names=["created_at", "updated_at"])
        return db_objs

crud_paper = CRUDPaper()

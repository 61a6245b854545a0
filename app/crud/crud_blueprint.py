import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import List, Optional

from app.db import models
from app.schemas import blueprint as schemas_blueprint # Alias
from app.crud.crud_question import crud_question
from app.generation.distribution import Distribution, compute_totals, normalize_distribution, to_json_distribution
from app.generation.errors import BlueprintValidationError, InfeasibleBlueprintError
from app.generation.feasibility import find_shortfalls

log = logging.getLogger(__name__)

class CRUDBlueprint:
    async def get(self, db: AsyncSession, *, id: int) -> Optional[models.Blueprint]:
        """Get a blueprint by ID (papers are not loaded)."""
        result = await db.execute(select(models.Blueprint).filter(models.Blueprint.id == id))
        return result.scalars().first()

    async def get_multi(
        self, db: AsyncSession, *, subject: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[models.Blueprint]:
        """Blueprints, newest first."""
        query = select(models.Blueprint)
        if subject:
            query = query.filter(models.Blueprint.subject == subject)
        result = await db.execute(
            query.order_by(models.Blueprint.created_at.desc(), models.Blueprint.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all()

    async def _check_feasible(self, db: AsyncSession, *, subject: str, distribution: Distribution):
        """Raises InfeasibleBlueprintError against a fresh availability snapshot; returns the snapshot."""
        availability = await crud_question.get_availability(db, subject=subject)
        shortfalls = find_shortfalls(distribution, availability)
        if shortfalls:
            log.info("Blueprint for '%s' infeasible: %s", subject, [s.describe() for s in shortfalls])
            raise InfeasibleBlueprintError(shortfalls)
        return availability

    async def create(
        self, db: AsyncSession, *, obj_in: schemas_blueprint.BlueprintCreate
    ) -> models.Blueprint:
        """Create a blueprint after checking totals and pool feasibility."""
        distribution = normalize_distribution(obj_in.distribution)
        total_marks, total_questions = compute_totals(distribution)
        if total_marks != obj_in.total_marks:
            raise BlueprintValidationError(
                f"Distribution total ({total_marks}) does not match Total Marks ({obj_in.total_marks})."
            )

        availability = await self._check_feasible(db, subject=obj_in.subject, distribution=distribution)

        db_obj = models.Blueprint(
            title=obj_in.title,
            subject=obj_in.subject,
            total_marks=total_marks,
            total_questions=total_questions,
            number_of_papers=obj_in.number_of_papers,
            distribution=to_json_distribution(distribution),
            pool_meta=availability.snapshot(),
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        log.info("Created blueprint %s '%s' (%d marks, %d questions)", db_obj.id, db_obj.title, total_marks, total_questions)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: models.Blueprint, obj_in: schemas_blueprint.BlueprintUpdate
    ) -> models.Blueprint:
        """Manual edit. The merged result goes through the same totals and feasibility checks as create."""
        update_data = obj_in.model_dump(exclude_unset=True)

        distribution = update_data.pop("distribution", None)
        if distribution is None:
            distribution = normalize_distribution(db_obj.distribution or {})
        total_marks, total_questions = compute_totals(distribution)

        expected_marks = update_data.pop("total_marks", None)
        if expected_marks is not None and expected_marks != total_marks:
            raise BlueprintValidationError(
                f"Distribution total ({total_marks}) does not match Total Marks ({expected_marks})."
            )
        expected_questions = update_data.pop("total_questions", None)
        if expected_questions is not None and expected_questions != total_questions:
            raise BlueprintValidationError(
                f"Distribution question count ({total_questions}) does not match Total Questions ({expected_questions})."
            )

        availability = await self._check_feasible(db, subject=db_obj.subject, distribution=distribution)

        for field, value in update_data.items():
            if value is not None:
                setattr(db_obj, field, value)
        db_obj.distribution = to_json_distribution(distribution)
        db_obj.total_marks = total_marks
        db_obj.total_questions = total_questions
        db_obj.pool_meta = availability.snapshot()

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def validate(
        self, db: AsyncSession, *, db_obj: models.Blueprint
    ) -> schemas_blueprint.BlueprintValidation:
        """Re-check an existing blueprint against the pool as it is now."""
        distribution = normalize_distribution(db_obj.distribution or {})
        availability = await crud_question.get_availability(db, subject=db_obj.subject)
        shortfalls = find_shortfalls(distribution, availability)
        total_marks, total_questions = compute_totals(distribution)
        return schemas_blueprint.BlueprintValidation(
            valid=not shortfalls,
            details=[s.describe() for s in shortfalls],
            shortfalls=[schemas_blueprint.ShortfallInfo(**s.as_dict()) for s in shortfalls],
            totals=schemas_blueprint.BlueprintTotals(total_marks=total_marks, total_questions=total_questions),
        )

crud_blueprint = CRUDBlueprint()

"""
Cross-paper orchestration for one generation request.

`allocate_paper_set` is the pure part: given candidates already fetched for
every bucket, it walks buckets in order and papers in tier order, sharing one
used-identifier set so no question lands in two papers of the batch.
`generate_papers` wraps it with the storage reads before and the single,
all-or-nothing write after.
"""
import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.crud.crud_paper import crud_paper
from app.crud.crud_question import crud_question
from app.db import models
from app.generation.allocator import allocate_by_rbt, top_up
from app.generation.difficulty import (
    calculate_rbt_requirements,
    get_difficulty_levels,
    get_profile,
    rbt_match_percentage,
)
from app.generation.distribution import iter_buckets, normalize_distribution
from app.generation.errors import EmptyBucketError
from app.generation.rbt import RBT_ORDER
from app.schemas import paper as schemas_paper

log = logging.getLogger(__name__)


@dataclass
class BucketCandidates:
    module: int
    marks: int
    need_per_paper: int
    candidates: List[models.Question]


@dataclass
class SelectedQuestion:
    """A picked question plus the bucket it was drawn for."""
    question: models.Question
    module: int
    marks: int


@dataclass
class PaperAllocation:
    difficulty: str
    selections: List[SelectedQuestion] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class PaperSetAllocation:
    papers: List[PaperAllocation]
    warnings: List[str] = field(default_factory=list)


@dataclass
class GenerationResult:
    papers: List[models.Paper]
    warnings: List[str]
    difficulties: List[str]


def allocate_paper_set(
    buckets: Sequence[BucketCandidates],
    difficulties: Sequence[str],
    prior_used_ids: Iterable[int] = (),
    rng: Optional[random.Random] = None,
) -> PaperSetAllocation:
    """
    Runs the allocation engine for every bucket and every paper.

    `prior_used_ids` (questions issued by earlier papers of the same blueprint)
    are avoided while supply lasts; the top-up pass may fall back on them but
    never on a question already given to another paper of this batch.
    """
    rng = rng or random.Random()
    used_ids: Set[int] = set(prior_used_ids)
    batch_ids: Set[int] = set()
    papers = [PaperAllocation(difficulty=d) for d in difficulties]
    all_warnings: List[str] = []

    for bucket in buckets:
        if not bucket.candidates:
            raise EmptyBucketError(bucket.module, bucket.marks)

        for paper in papers:
            requirements = calculate_rbt_requirements(bucket.need_per_paper, paper.difficulty)
            result = allocate_by_rbt(bucket.candidates, requirements, used_ids, rng)
            selected = result.selected

            if result.warnings:
                message = (
                    f"Module {bucket.module}, Marks {bucket.marks}: "
                    f"{paper.difficulty.upper()} paper: {', '.join(result.warnings)}"
                )
                paper.warnings.append(message)
                all_warnings.append(message)

            if len(selected) < bucket.need_per_paper:
                added = top_up(bucket.candidates, selected, bucket.need_per_paper, batch_ids, rng)
                used_ids.update(q.id for q in added)
                if len(selected) < bucket.need_per_paper:
                    log.info(
                        "Module %s, Marks %s: %s paper short by %d after top-up",
                        bucket.module, bucket.marks, paper.difficulty,
                        bucket.need_per_paper - len(selected),
                    )

            batch_ids.update(q.id for q in selected)
            paper.selections.extend(
                SelectedQuestion(question=q, module=bucket.module, marks=bucket.marks) for q in selected
            )

    return PaperSetAllocation(papers=papers, warnings=all_warnings)


def determine_exam_type(
    selections: Sequence[SelectedQuestion], exam_type: Optional[schemas_paper.ExamTypeEnum] = None
) -> schemas_paper.ExamTypeEnum:
    """Explicit choice wins; otherwise a paper carrying an ESE-marks question is an ESE paper."""
    if exam_type is not None:
        return schemas_paper.ExamTypeEnum(exam_type)
    if any(s.marks == settings.ESE_MARKS for s in selections):
        return schemas_paper.ExamTypeEnum.ESE
    return schemas_paper.ExamTypeEnum.ISE


def _section_order_key(selection: SelectedQuestion):
    return selection.marks, selection.module


def build_paper_drafts(
    blueprint: models.Blueprint,
    allocation: PaperSetAllocation,
    exam_type: Optional[schemas_paper.ExamTypeEnum] = None,
) -> List[schemas_paper.PaperCreate]:
    """Turns allocations into PaperCreate drafts with totals, RBT counts and snapshots."""
    drafts = []
    for paper in allocation.papers:
        profile = get_profile(paper.difficulty)
        # Grouped by marks value, module order inside each group: ready for sectioned rendering
        ordered = sorted(paper.selections, key=_section_order_key)

        snapshots = [
            schemas_paper.PaperQuestionCreate(
                question_id=s.question.id,
                order_index=index,
                question_text=s.question.question_text,
                marks=s.marks,
                unit=s.question.unit or "",
                co=s.question.co or "",
                rbt=s.question.rbt or "",
                pi=s.question.pi or "",
                type=s.question.type or "",
            )
            for index, s in enumerate(ordered)
        ]

        total_marks = sum(q.marks for q in snapshots)
        total_questions = len(snapshots)
        rbt_counts = {level.value: 0 for level in RBT_ORDER}
        rbt_counts.update(Counter(q.rbt for q in snapshots if q.rbt))
        target = {level.value: pct for level, pct in profile.rbt_distribution.items()}

        drafts.append(
            schemas_paper.PaperCreate(
                blueprint_id=blueprint.id,
                subject=blueprint.subject,
                title=f"{blueprint.title or 'Blueprint'} - {profile.name} Paper",
                difficulty=profile.key,
                exam_type=determine_exam_type(paper.selections, exam_type),
                total_marks=total_marks,
                total_questions=total_questions,
                rbt_distribution=rbt_counts,
                target_rbt_distribution=target,
                generation_metadata=schemas_paper.GenerationMetadata(
                    difficulty_level=profile.name,
                    rbt_match_percentage=rbt_match_percentage(rbt_counts, target, total_questions),
                    warnings=list(paper.warnings),
                ),
                questions=snapshots,
            )
        )
    return drafts


async def generate_papers(
    db: AsyncSession,
    *,
    blueprint: models.Blueprint,
    number_of_papers: int,
    difficulty: Optional[str] = None,
    exam_type: Optional[schemas_paper.ExamTypeEnum] = None,
    rng: Optional[random.Random] = None,
) -> GenerationResult:
    """
    Generates and persists `number_of_papers` papers for a blueprint.

    Every read happens before allocation starts and every paper is written in
    one commit at the end, so a failure (empty bucket, storage error) leaves
    nothing behind.
    """
    difficulties = get_difficulty_levels(number_of_papers, difficulty)
    distribution = normalize_distribution(blueprint.distribution or {})
    log.info(
        "Generating %d paper(s) for blueprint %s (%s): difficulties=%s exam_type=%s",
        number_of_papers, blueprint.id, blueprint.title, difficulties, exam_type,
    )

    prior_used = await crud_paper.get_prior_used_question_ids(db, blueprint_id=blueprint.id)

    buckets: List[BucketCandidates] = []
    for bucket in iter_buckets(distribution):
        candidates = await crud_question.get_by_subject_module_marks(
            db, subject=blueprint.subject, module=bucket.module, marks=bucket.marks
        )
        if not candidates:
            raise EmptyBucketError(bucket.module, bucket.marks)
        buckets.append(BucketCandidates(bucket.module, bucket.marks, bucket.count, list(candidates)))

    allocation = allocate_paper_set(buckets, difficulties, prior_used, rng)
    drafts = build_paper_drafts(blueprint, allocation, exam_type)
    papers = await crud_paper.create_many(db, objs_in=drafts)

    for paper in papers:
        log.info(
            "Created %s paper %s with %d questions, %d marks, exam_type=%s",
            paper.difficulty, paper.id, paper.total_questions, paper.total_marks, paper.exam_type,
        )
    return GenerationResult(papers=papers, warnings=allocation.warnings, difficulties=difficulties)

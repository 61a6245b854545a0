import random
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.generation import orchestrator
from app.generation.errors import BlueprintValidationError, EmptyBucketError
from app.generation.orchestrator import (
    BucketCandidates,
    SelectedQuestion,
    allocate_paper_set,
    build_paper_drafts,
    determine_exam_type,
)
from app.schemas.paper import ExamTypeEnum

from conftest import create_blueprint, create_paper, create_question

LEVELS = ["R", "U", "AP", "AN", "E", "C"]


def _mixed_pool(count, start=1, co="CO1", marks=2):
    return [create_question(i, rbt=LEVELS[i % len(LEVELS)], co=co, marks=marks) for i in range(start, start + count)]


def _ids(paper):
    return [s.question.id for s in paper.selections]


@pytest.mark.parametrize("seed", range(10))
def test_no_question_shared_between_papers(seed):
    buckets = [
        BucketCandidates(module=1, marks=2, need_per_paper=3, candidates=_mixed_pool(12)),
        BucketCandidates(module=2, marks=5, need_per_paper=2, candidates=_mixed_pool(8, start=100, co="CO2", marks=5)),
    ]
    allocation = allocate_paper_set(buckets, ["easy", "medium", "hard"], rng=random.Random(seed))

    all_ids = [qid for paper in allocation.papers for qid in _ids(paper)]
    assert len(all_ids) == 15
    assert len(set(all_ids)) == 15
    for paper in allocation.papers:
        assert len(paper.selections) == 5


def test_short_pool_never_duplicates_across_papers():
    # 4 candidates, 3 papers x 2 needed: the last paper comes up short instead of reusing
    buckets = [BucketCandidates(module=1, marks=2, need_per_paper=2, candidates=_mixed_pool(4))]
    allocation = allocate_paper_set(buckets, ["easy", "medium", "hard"], rng=random.Random(0))

    all_ids = [qid for paper in allocation.papers for qid in _ids(paper)]
    assert len(all_ids) == len(set(all_ids)) == 4
    assert len(allocation.papers[2].selections) == 0
    assert allocation.papers[2].warnings


def test_prior_ids_avoided_when_pool_allows():
    candidates = [create_question(i, rbt="R") for i in range(1, 7)]
    buckets = [BucketCandidates(module=1, marks=2, need_per_paper=3, candidates=candidates)]

    for seed in range(10):
        allocation = allocate_paper_set(buckets, ["easy"], prior_used_ids={1, 2, 3}, rng=random.Random(seed))
        assert sorted(_ids(allocation.papers[0])) == [4, 5, 6]


def test_top_up_may_reuse_prior_ids_but_keeps_warning():
    candidates = [create_question(1, rbt="R"), create_question(2, rbt="R"), create_question(3, rbt="U")]
    buckets = [BucketCandidates(module=1, marks=2, need_per_paper=2, candidates=candidates)]

    allocation = allocate_paper_set(buckets, ["easy"], prior_used_ids={1, 2}, rng=random.Random(0))

    ids = _ids(allocation.papers[0])
    assert len(ids) == 2
    assert 3 in ids
    assert allocation.warnings
    assert allocation.warnings[0].startswith("Module 1, Marks 2: EASY paper: Not enough")


def test_empty_bucket_raises():
    buckets = [
        BucketCandidates(module=1, marks=2, need_per_paper=1, candidates=_mixed_pool(3)),
        BucketCandidates(module=3, marks=10, need_per_paper=1, candidates=[]),
    ]
    with pytest.raises(EmptyBucketError, match="No questions available for Module 3, Marks 10."):
        allocate_paper_set(buckets, ["easy"])


def test_determine_exam_type():
    q = create_question(1, marks=10)
    ese = [SelectedQuestion(question=q, module=1, marks=10)]
    ise = [SelectedQuestion(question=create_question(2), module=1, marks=2)]

    assert determine_exam_type(ese) == ExamTypeEnum.ESE
    assert determine_exam_type(ise) == ExamTypeEnum.ISE
    assert determine_exam_type(ese, ExamTypeEnum.ISE) == ExamTypeEnum.ISE
    assert determine_exam_type(ise, "ESE") == ExamTypeEnum.ESE


def test_build_paper_drafts_totals_and_order():
    blueprint = create_blueprint(distribution={"1": {"5": 1}, "2": {"2": 2}})
    buckets = [
        BucketCandidates(module=1, marks=5, need_per_paper=1, candidates=_mixed_pool(3, co="CO1", marks=5)),
        BucketCandidates(module=2, marks=2, need_per_paper=2, candidates=_mixed_pool(4, start=10, co="CO2", marks=2)),
    ]
    allocation = allocate_paper_set(buckets, ["easy", "hard"], rng=random.Random(2))

    drafts = build_paper_drafts(blueprint, allocation)

    assert [d.title for d in drafts] == [
        "Applied Mathematics ISE-1 - Easy Paper",
        "Applied Mathematics ISE-1 - Hard Paper",
    ]
    for draft in drafts:
        assert draft.total_marks == 9
        assert draft.total_questions == 3
        assert draft.exam_type == "ISE"
        # Grouped by marks: the 2-mark questions come before the 5-mark one
        assert [q.marks for q in draft.questions] == [2, 2, 5]
        assert [q.order_index for q in draft.questions] == [0, 1, 2]
        assert sum(draft.rbt_distribution.values()) == 3
        assert set(draft.rbt_distribution) == set(LEVELS)
        assert 0 <= draft.generation_metadata.rbt_match_percentage <= 100
    assert drafts[0].target_rbt_distribution["R"] == 40
    assert drafts[1].target_rbt_distribution["C"] == 10


@pytest.mark.asyncio
async def test_generate_papers_persists_once(db_session_mock: MagicMock):
    blueprint = create_blueprint(distribution={"1": {"2": 2}}, number_of_papers=2)
    pool = _mixed_pool(6)

    with patch.object(orchestrator, "crud_paper") as crud_paper_mock, \
            patch.object(orchestrator, "crud_question") as crud_question_mock:
        crud_paper_mock.get_prior_used_question_ids = AsyncMock(return_value=set())
        crud_paper_mock.create_many = AsyncMock(
            side_effect=lambda db, objs_in: [create_paper(id=i + 1) for i in range(len(objs_in))]
        )
        crud_question_mock.get_by_subject_module_marks = AsyncMock(return_value=pool)

        result = await orchestrator.generate_papers(
            db_session_mock, blueprint=blueprint, number_of_papers=2, rng=random.Random(0)
        )

    assert result.difficulties == ["easy", "hard"]
    assert len(result.papers) == 2
    crud_paper_mock.create_many.assert_awaited_once()
    drafts = crud_paper_mock.create_many.call_args.kwargs["objs_in"]
    assert [d.difficulty for d in drafts] == ["easy", "hard"]
    crud_question_mock.get_by_subject_module_marks.assert_awaited_once_with(
        db_session_mock, subject="Applied Mathematics", module=1, marks=2
    )


@pytest.mark.asyncio
async def test_generate_papers_empty_bucket_persists_nothing(db_session_mock: MagicMock):
    blueprint = create_blueprint(distribution={"1": {"2": 1}, "2": {"5": 1}})

    async def candidates(db, subject, module, marks):
        return _mixed_pool(3) if module == 1 else []

    with patch.object(orchestrator, "crud_paper") as crud_paper_mock, \
            patch.object(orchestrator, "crud_question") as crud_question_mock:
        crud_paper_mock.get_prior_used_question_ids = AsyncMock(return_value=set())
        crud_paper_mock.create_many = AsyncMock()
        crud_question_mock.get_by_subject_module_marks = AsyncMock(side_effect=candidates)

        with pytest.raises(EmptyBucketError):
            await orchestrator.generate_papers(
                db_session_mock, blueprint=blueprint, number_of_papers=1, difficulty="easy"
            )

    crud_paper_mock.create_many.assert_not_awaited()
    db_session_mock.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_generate_papers_rejects_bad_paper_count(db_session_mock: MagicMock):
    with patch.object(orchestrator, "crud_paper") as crud_paper_mock:
        crud_paper_mock.get_prior_used_question_ids = AsyncMock(return_value=set())
        with pytest.raises(BlueprintValidationError):
            await orchestrator.generate_papers(db_session_mock, blueprint=create_blueprint(), number_of_papers=4)
        crud_paper_mock.get_prior_used_question_ids.assert_not_awaited()

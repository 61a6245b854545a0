import pytest
from unittest.mock import MagicMock, AsyncMock

from app.crud.crud_question import crud_question
from app.schemas import question as schemas_question
from app.db import models

from conftest import create_question, mock_execute_result


@pytest.mark.asyncio
async def test_get_by_subject_module_marks_filters_module(db_session_mock: MagicMock):
    rows = [
        create_question(1, co="CO1", marks=5),
        create_question(2, co="co 2", marks=5),
        create_question(3, co="CO12", marks=5),
        create_question(4, co="CO2", marks=5),
    ]
    mock_execute_result(db_session_mock, rows)

    questions = await crud_question.get_by_subject_module_marks(
        db_session_mock, subject="Applied Mathematics", module=2, marks=5
    )

    db_session_mock.execute.assert_awaited_once()
    assert [q.id for q in questions] == [2, 4]


@pytest.mark.asyncio
async def test_get_stats(db_session_mock: MagicMock):
    rows = [
        create_question(1, rbt="R", co="CO1", marks=2, type="T"),
        create_question(2, rbt="R", co="CO1", marks=5, type="N"),
        create_question(3, rbt="AP", co="CO2", marks=5, type="T"),
    ]
    mock_execute_result(db_session_mock, rows)

    stats = await crud_question.get_stats(db_session_mock, subject="Applied Mathematics")

    assert stats.total_questions == 3
    assert stats.total_marks == 12
    assert stats.avg_marks == 4.0
    assert stats.by_co == {"CO1": 2, "CO2": 1}
    assert stats.by_rbt == {"R": 2, "AP": 1}
    assert stats.by_type == {"T": 2, "N": 1}
    assert stats.by_marks == {2: 1, 5: 2}


@pytest.mark.asyncio
async def test_get_stats_empty_subject(db_session_mock: MagicMock):
    mock_execute_result(db_session_mock, [])
    stats = await crud_question.get_stats(db_session_mock, subject="Unknown")
    assert stats.total_questions == 0
    assert stats.avg_marks == 0.0


@pytest.mark.asyncio
async def test_get_rbt_levels_includes_zero_levels(db_session_mock: MagicMock):
    mock_execute_result(db_session_mock, [("AP", 4), ("R", 2)])

    levels = await crud_question.get_rbt_levels(db_session_mock, subject="Applied Mathematics")

    assert list(levels) == ["R", "U", "AP", "AN", "E", "C"]
    assert levels["R"] == 2
    assert levels["AP"] == 4
    assert levels["C"] == 0


@pytest.mark.asyncio
async def test_get_cos_sorted(db_session_mock: MagicMock):
    mock_execute_result(db_session_mock, ["CO2", "", "CO1"])
    assert await crud_question.get_cos(db_session_mock, subject="Applied Mathematics") == ["CO1", "CO2"]


@pytest.mark.asyncio
async def test_create_many(db_session_mock: MagicMock):
    objs_in = [
        schemas_question.QuestionCreate(subject="Maths", question_text="Q1", co="CO1", rbt="R", marks=2),
        schemas_question.QuestionCreate(subject="Maths", question_text="Q2", co="CO1", rbt="AP", marks=5),
    ]

    created = await crud_question.create_many(db_session_mock, objs_in=objs_in)

    db_session_mock.add_all.assert_called_once()
    assert all(isinstance(q, models.Question) for q in created)
    assert created[1].rbt == "AP"
    db_session_mock.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_many_rolls_back(db_session_mock: MagicMock):
    db_session_mock.commit = AsyncMock(side_effect=RuntimeError("connection lost"))
    objs_in = [schemas_question.QuestionCreate(subject="Maths", question_text="Q1", rbt="R", marks=2)]

    with pytest.raises(RuntimeError):
        await crud_question.create_many(db_session_mock, objs_in=objs_in)

    db_session_mock.rollback.assert_awaited_once()

import pytest
import pytest_asyncio # For async fixtures
from datetime import datetime
from unittest.mock import MagicMock, AsyncMock
from typing import AsyncGenerator, Callable, List, Optional

from httpx import AsyncClient, ASGITransport # Use AsyncClient for async app
from sqlalchemy.ext.asyncio import AsyncSession

from app.main import app as fastapi_app
from app.api import deps
from app.db import models

# --- Mock Database Session ---

@pytest.fixture(scope="function") # function scope ensures isolation between tests
def db_session_mock() -> MagicMock:
    """Provides a MagicMock simulating an AsyncSession."""
    mock = MagicMock(spec=AsyncSession)
    mock.execute = AsyncMock()
    mock.get = AsyncMock()
    mock.add = MagicMock()
    mock.add_all = MagicMock()
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.refresh = AsyncMock()
    mock.flush = AsyncMock()
    mock.delete = AsyncMock()
    return mock


def mock_execute_result(db_session_mock: MagicMock, items: list) -> MagicMock:
    """Makes `await db.execute(...)` return a result whose scalars().all() / all() yield `items`."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    result.scalars.return_value.first.return_value = items[0] if items else None
    result.all.return_value = items
    db_session_mock.execute = AsyncMock(return_value=result)
    return result


@pytest_asyncio.fixture(scope="function")
async def override_get_db(db_session_mock: MagicMock) -> AsyncGenerator[None, None]:
    """Overrides the get_db dependency to yield the mock session."""
    async def _override():
        yield db_session_mock
    fastapi_app.dependency_overrides[deps.get_db] = _override
    yield
    del fastapi_app.dependency_overrides[deps.get_db]


# --- Test Client ---

@pytest_asyncio.fixture(scope="function")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Provides an httpx AsyncClient for making requests to the app."""
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac


# --- Model Factories ---

def create_question(
    id: int,
    rbt: str = "R",
    co: str = "CO1",
    marks: int = 2,
    subject: str = "Applied Mathematics",
    type: str = "T",
    pi: str = "1.1.1",
) -> models.Question:
    return models.Question(
        id=id,
        subject=subject,
        question_text=f"Question {id}",
        co=co,
        rbt=rbt,
        pi=pi,
        unit="Unit1",
        marks=marks,
        type=type,
        upload_batch="test",
    )


def create_blueprint(
    id: int = 1,
    title: str = "Applied Mathematics ISE-1",
    subject: str = "Applied Mathematics",
    distribution: Optional[dict] = None,
    number_of_papers: int = 1,
) -> models.Blueprint:
    distribution = distribution or {"1": {"2": 3}}
    total_marks = sum(int(m) * c for cells in distribution.values() for m, c in cells.items())
    total_questions = sum(c for cells in distribution.values() for c in cells.values())
    now = datetime(2024, 1, 15, 10, 0, 0)
    return models.Blueprint(
        id=id,
        title=title,
        subject=subject,
        total_marks=total_marks,
        total_questions=total_questions,
        number_of_papers=number_of_papers,
        distribution=distribution,
        pool_meta={},
        created_at=now,
        updated_at=now,
    )


def create_paper(
    id: int = 1,
    blueprint_id: int = 1,
    difficulty: models.DifficultyEnum = models.DifficultyEnum.easy,
    exam_type: models.ExamTypeEnum = models.ExamTypeEnum.ISE,
    question_ids: List[int] = (1, 2),
    marks: int = 2,
) -> models.Paper:
    now = datetime(2024, 1, 15, 10, 0, 0)
    paper = models.Paper(
        id=id,
        blueprint_id=blueprint_id,
        subject="Applied Mathematics",
        title=f"Applied Mathematics ISE-1 - {difficulty.value.title()} Paper",
        difficulty=difficulty,
        exam_type=exam_type,
        total_marks=marks * len(question_ids),
        total_questions=len(question_ids),
        rbt_distribution={"R": len(question_ids), "U": 0, "AP": 0, "AN": 0, "E": 0, "C": 0},
        target_rbt_distribution={"R": 40, "U": 35, "AP": 15, "AN": 7, "E": 2, "C": 1},
        generation_metadata={"difficulty_level": difficulty.value.title(), "rbt_match_percentage": 80.0, "warnings": []},
        created_at=now,
        updated_at=now,
    )
    paper.questions = [
        models.PaperQuestion(
            question_id=qid,
            order_index=index,
            question_text=f"Question {qid}",
            marks=marks,
            unit="Unit1",
            co="CO1",
            rbt="R",
            pi="1.1.1",
            type="T",
        )
        for index, qid in enumerate(question_ids)
    ]
    return paper


@pytest.fixture
def make_question() -> Callable[..., models.Question]:
    return create_question

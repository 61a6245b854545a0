import pytest

from app.generation.feasibility import Shortfall, find_shortfalls
from app.generation.pool import QuestionPool, compute_availability
from app.generation.rbt import RBTLevel, parse_module, parse_rbt

from conftest import create_question


@pytest.mark.parametrize("co,expected", [
    ("CO3", 3),
    ("co 12", 12),
    (" Co1 ", 1),
    ("CO", None),
    ("Module 2", None),
    ("", None),
    (None, None),
])
def test_parse_module(co, expected):
    assert parse_module(co) == expected


@pytest.mark.parametrize("value,expected", [
    ("ap", RBTLevel.AP),
    (" An ", RBTLevel.AN),
    ("U", RBTLevel.U),
    ("X", None),
    ("", None),
    (None, None),
])
def test_parse_rbt(value, expected):
    assert parse_rbt(value) == expected


@pytest.fixture
def questions():
    return [
        create_question(1, rbt="R", co="CO1", marks=2, type="T"),
        create_question(2, rbt="U", co="CO1", marks=2, type="N"),
        create_question(3, rbt="C", co="CO1", marks=5, type="T"),
        create_question(4, rbt="AP", co="CO2", marks=5, type="T"),
        create_question(5, rbt="AN", co="co 2", marks=5, type="N"),
        create_question(6, rbt="R", co="Unit 4", marks=2, type="T"),
        create_question(7, rbt="E", co="CO2", marks=10, type="T", subject="Physics"),
    ]


def test_availability_aggregates(questions):
    availability = compute_availability(questions[:6])

    assert availability.availability == {1: {2: 2, 5: 1}, 2: {5: 2}}
    assert availability.availability_rbt[1] == {"R": 1, "U": 1, "C": 1}
    assert availability.availability_type[2] == {"T": 1, "N": 1}
    assert availability.modules == [1, 2]
    assert availability.marks_values == [2, 5]
    assert availability.rbt_levels == ["R", "U", "AP", "AN", "C"]
    assert availability.types == ["N", "T"]
    assert availability.unbucketable == 1
    assert availability.available(2, 5) == 2
    assert availability.available(3, 2) == 0


def test_availability_follows_module_grouping(questions):
    pool = QuestionPool(questions[:6])
    groups = pool.group_by_module()
    availability = pool.availability()

    assert availability.modules == sorted(groups)
    for module, members in groups.items():
        assert sum(availability.availability[module].values()) == len(members)
    assert availability.unbucketable == len(pool) - sum(len(m) for m in groups.values())


def test_availability_snapshot_uses_string_keys(questions):
    snapshot = compute_availability(questions[:6]).snapshot()
    assert snapshot == {
        "modules": [1, 2],
        "marks_values": [2, 5],
        "availability": {"1": {"2": 2, "5": 1}, "2": {"5": 2}},
    }


def test_pool_filter_and_grouping(questions):
    pool = QuestionPool(questions)

    assert [q.id for q in pool.filter(module=2, marks=5)] == [4, 5]
    assert [q.id for q in pool.filter(subject="Physics")] == [7]
    assert [q.id for q in pool.filter(rbt="R")] == [1, 6]
    assert [q.id for q in pool.filter(question_type="N")] == [2, 5]
    assert sorted(pool.group_by_module()) == [1, 2]
    assert len(pool.group_by_rbt()["R"]) == 2
    assert pool.count_by("marks") == {2: 3, 5: 3, 10: 1}


def test_feasible_distribution_has_no_shortfalls(questions):
    availability = compute_availability(questions[:6])
    assert find_shortfalls({1: {2: 2, 5: 1}, 2: {5: 2}}, availability) == []


def test_shortfalls_itemized(questions):
    availability = compute_availability(questions[:6])

    shortfalls = find_shortfalls({1: {2: 3, 5: 1}, 2: {5: 1, 10: 1}}, availability)

    assert shortfalls == [
        Shortfall(module=1, marks=2, required=3, available=2),
        Shortfall(module=2, marks=10, required=1, available=0),
    ]
    assert shortfalls[0].describe() == "Module 1, 2 marks -> need 3, available 2"
    assert shortfalls[1].as_dict() == {"module": 2, "marks": 10, "required": 1, "available": 0}

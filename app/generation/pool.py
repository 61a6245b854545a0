"""
In-memory view over a subject's questions: grouping, filtering and the
availability aggregates that feed feasibility checks.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from app.db import models
from app.generation.rbt import parse_module, rbt_rank

log = logging.getLogger(__name__)


@dataclass
class PoolAvailability:
    """Counts per module, plus the sorted coordinate sets needed to draw a complete grid."""
    availability: Dict[int, Dict[int, int]] = field(default_factory=dict)       # module -> marks -> count
    availability_rbt: Dict[int, Dict[str, int]] = field(default_factory=dict)   # module -> rbt -> count
    availability_type: Dict[int, Dict[str, int]] = field(default_factory=dict)  # module -> type -> count
    modules: List[int] = field(default_factory=list)
    marks_values: List[int] = field(default_factory=list)
    rbt_levels: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    unbucketable: int = 0

    def available(self, module: int, marks: int) -> int:
        return self.availability.get(module, {}).get(marks, 0)

    def snapshot(self) -> Dict[str, object]:
        """JSON-friendly subset stored on a blueprint at creation time."""
        return {
            "modules": list(self.modules),
            "marks_values": list(self.marks_values),
            "availability": {
                str(module): {str(marks): count for marks, count in sorted(cells.items())}
                for module, cells in sorted(self.availability.items())
            },
        }


class QuestionPool:
    """Groupable, filterable view of a list of questions. Never touches the database."""

    def __init__(self, questions: Iterable[models.Question]):
        self._questions: List[models.Question] = list(questions)

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self):
        return iter(self._questions)

    @property
    def questions(self) -> List[models.Question]:
        return list(self._questions)

    def filter(
        self,
        *,
        subject: Optional[str] = None,
        module: Optional[int] = None,
        marks: Optional[int] = None,
        rbt: Optional[str] = None,
        question_type: Optional[str] = None,
    ) -> List[models.Question]:
        result = []
        for q in self._questions:
            if subject is not None and q.subject != subject:
                continue
            if module is not None and parse_module(q.co) != module:
                continue
            if marks is not None and q.marks != marks:
                continue
            if rbt is not None and q.rbt != rbt:
                continue
            if question_type is not None and q.type != question_type:
                continue
            result.append(q)
        return result

    def group_by_module(self) -> Dict[int, List[models.Question]]:
        """Questions keyed by module number; untagged or malformed COs are left out."""
        groups: Dict[int, List[models.Question]] = defaultdict(list)
        for q in self._questions:
            module = parse_module(q.co)
            if module is not None:
                groups[module].append(q)
            else:
                log.debug("Question %s has unbucketable module tag %r", q.id, q.co)
        return dict(groups)

    def group_by_rbt(self) -> Dict[str, List[models.Question]]:
        groups: Dict[str, List[models.Question]] = defaultdict(list)
        for q in self._questions:
            groups[q.rbt].append(q)
        return dict(groups)

    def count_by(self, attribute: str) -> Dict[str, int]:
        """Flat counts over one attribute ("co", "rbt", "type", "marks", "unit")."""
        counts: Dict[str, int] = defaultdict(int)
        for q in self._questions:
            counts[getattr(q, attribute)] += 1
        return dict(counts)

    def availability(self) -> PoolAvailability:
        result = PoolAvailability()
        marks_set, rbt_set, type_set = set(), set(), set()
        availability = defaultdict(lambda: defaultdict(int))
        availability_rbt = defaultdict(lambda: defaultdict(int))
        availability_type = defaultdict(lambda: defaultdict(int))

        by_module = self.group_by_module()
        for module, questions in by_module.items():
            for q in questions:
                marks = int(q.marks or 0)
                rbt = (q.rbt or "").strip()
                qtype = (q.type or "").strip()

                marks_set.add(marks)
                if rbt:
                    rbt_set.add(rbt)
                if qtype:
                    type_set.add(qtype)

                availability[module][marks] += 1
                availability_rbt[module][rbt] += 1
                availability_type[module][qtype] += 1

        result.unbucketable = len(self._questions) - sum(len(qs) for qs in by_module.values())

        if result.unbucketable:
            log.info("%d question(s) skipped from availability: module tag not of the form CO<n>", result.unbucketable)

        result.availability = {m: dict(cells) for m, cells in availability.items()}
        result.availability_rbt = {m: dict(cells) for m, cells in availability_rbt.items()}
        result.availability_type = {m: dict(cells) for m, cells in availability_type.items()}
        result.modules = sorted(availability)
        result.marks_values = sorted(marks_set)
        result.rbt_levels = sorted(rbt_set, key=lambda level: (rbt_rank(level), level))
        result.types = sorted(type_set)
        return result


def compute_availability(questions: Sequence[models.Question]) -> PoolAvailability:
    return QuestionPool(questions).availability()

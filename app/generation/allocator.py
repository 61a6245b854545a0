"""
Allocation engine: picks concrete questions for one (module, marks) bucket of
one paper so the cognitive-level mix matches the requested counts as closely
as the pool allows.

Greedy and priority ordered. Shortfalls are never fatal; they produce warnings
and fewer questions, and the orchestrator decides what to do next.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set

from app.db import models
from app.generation.pool import QuestionPool
from app.generation.rbt import FALLBACK_HIERARCHY, RBT_ORDER, RBTLevel

log = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    selected: List[models.Question] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _partition_by_rbt(
    candidates: Sequence[models.Question], used_ids: Set[int], rng: random.Random
) -> Dict[RBTLevel, List[models.Question]]:
    # Unknown levels are left out: only reachable through the top-up pass
    groups = QuestionPool(q for q in candidates if q.id not in used_ids).group_by_rbt()
    buckets: Dict[RBTLevel, List[models.Question]] = {level: groups.get(level.value, []) for level in RBT_ORDER}
    for bucket in buckets.values():
        rng.shuffle(bucket)
    return buckets


def _take(bucket: List[models.Question], count: int, used_ids: Set[int]) -> List[models.Question]:
    """Pops up to `count` unused questions off a shuffled bucket, marking each as used."""
    taken = []
    while bucket and len(taken) < count:
        q = bucket.pop()
        if q.id in used_ids:
            continue
        used_ids.add(q.id)
        taken.append(q)
    return taken


def find_fallback_questions(
    buckets: Dict[RBTLevel, List[models.Question]],
    target: RBTLevel,
    count: int,
    used_ids: Set[int],
) -> List[models.Question]:
    """Covers a shortage at `target` from its ranked substitute levels."""
    fallback: List[models.Question] = []
    for level in FALLBACK_HIERARCHY.get(target, RBT_ORDER):
        if len(fallback) >= count:
            break
        fallback.extend(_take(buckets[level], count - len(fallback), used_ids))
    return fallback


def allocate_by_rbt(
    candidates: Sequence[models.Question],
    requirements: Mapping[RBTLevel, int],
    used_ids: Set[int],
    rng: Optional[random.Random] = None,
) -> AllocationResult:
    """
    Selects questions level by level, in the order of `requirements`.

    `used_ids` is updated in place with every pick, so later levels in this
    call and later calls sharing the set never see the same question again.
    """
    rng = rng or random.Random()
    result = AllocationResult()
    buckets = _partition_by_rbt(candidates, used_ids, rng)

    for level, required in requirements.items():
        if required <= 0:
            continue
        level = RBTLevel(level)
        available = len(buckets[level])
        picked = _take(buckets[level], required, used_ids)

        if len(picked) < required:
            shortage = required - len(picked)
            result.warnings.append(
                f"Not enough {level.value} level questions. Required: {required}, Available: {available}"
            )
            fallback = find_fallback_questions(buckets, level, shortage, used_ids)
            log.debug(
                "%s short by %d, fallback covered %d", level.value, shortage, len(fallback)
            )
            picked.extend(fallback)

        result.selected.extend(picked)

    return result


def top_up(
    candidates: Sequence[models.Question],
    selected: List[models.Question],
    need: int,
    excluded_ids: Set[int],
    rng: Optional[random.Random] = None,
) -> List[models.Question]:
    """
    Fills `selected` up to `need` with random candidates, ignoring RBT level.

    Skips anything already in `selected` or in `excluded_ids`. Stops quietly
    when the candidates run out; returns the questions it added.
    """
    rng = rng or random.Random()
    chosen_ids = {q.id for q in selected}
    remaining = [q for q in candidates if q.id not in chosen_ids and q.id not in excluded_ids]
    added: List[models.Question] = []
    while len(selected) < need and remaining:
        q = remaining.pop(rng.randrange(len(remaining)))
        selected.append(q)
        added.append(q)
    return added

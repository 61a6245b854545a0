"""
Difficulty profiles and their conversion into per-level question counts.

Each tier maps to a target percentage distribution over the RBT levels. The
table is static configuration; percentages for every tier sum to 100.
"""
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from app.generation.errors import BlueprintValidationError, UnknownDifficultyError
from app.generation.rbt import RBT_ORDER, RBTLevel


@dataclass(frozen=True)
class DifficultyProfile:
    key: str
    name: str
    rbt_distribution: Dict[RBTLevel, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "rbt_distribution": {level.value: pct for level, pct in self.rbt_distribution.items()},
        }


DIFFICULTY_CONFIGS: Dict[str, DifficultyProfile] = {
    "easy": DifficultyProfile(
        key="easy",
        name="Easy",
        rbt_distribution={
            RBTLevel.R: 40, RBTLevel.U: 35, RBTLevel.AP: 15,
            RBTLevel.AN: 7, RBTLevel.E: 2, RBTLevel.C: 1,
        },
    ),
    "medium": DifficultyProfile(
        key="medium",
        name="Medium",
        rbt_distribution={
            RBTLevel.R: 25, RBTLevel.U: 25, RBTLevel.AP: 25,
            RBTLevel.AN: 15, RBTLevel.E: 7, RBTLevel.C: 3,
        },
    ),
    "hard": DifficultyProfile(
        key="hard",
        name="Hard",
        rbt_distribution={
            RBTLevel.R: 15, RBTLevel.U: 20, RBTLevel.AP: 20,
            RBTLevel.AN: 20, RBTLevel.E: 15, RBTLevel.C: 10,
        },
    ),
}

# Tier sets used for multi-paper requests
MULTI_PAPER_DIFFICULTIES: Dict[int, List[str]] = {
    2: ["easy", "hard"],
    3: ["easy", "medium", "hard"],
}


def get_profile(difficulty: str) -> DifficultyProfile:
    key = getattr(difficulty, "value", difficulty) # accepts DifficultyEnum members too
    profile = DIFFICULTY_CONFIGS.get(str(key).strip().lower()) if key is not None else None
    if profile is None:
        raise UnknownDifficultyError(difficulty)
    return profile


def _round_half_up(numerator: int, denominator: int) -> int:
    # Integer arithmetic avoids float drift on exact halves (e.g. 5 x 10%)
    return (2 * numerator + denominator) // (2 * denominator)


def distribute_by_percentages(total: int, percentages: Mapping[RBTLevel, int]) -> Dict[RBTLevel, int]:
    """
    Converts percentages into integer counts that sum exactly to `total`.

    Each level is rounded independently; the signed drift is then charged to
    the level with the largest percentage (ties go to the lower RBT level).
    """
    if total < 0:
        raise ValueError("Total question count cannot be negative.")

    counts: Dict[RBTLevel, int] = {
        level: _round_half_up(total * percentages[level], 100) for level in RBT_ORDER if level in percentages
    }
    difference = total - sum(counts.values())
    if difference == 0 or not counts:
        return counts

    by_priority = sorted(counts, key=lambda level: (-percentages[level], RBT_ORDER.index(level)))
    counts[by_priority[0]] += difference
    # Only reachable with near-uniform tables: push any negative remainder down the priority list
    carry = 0
    for level in by_priority:
        counts[level] += carry
        carry = min(counts[level], 0)
        counts[level] -= carry
    return counts


def calculate_rbt_requirements(total_questions: int, difficulty: str) -> Dict[RBTLevel, int]:
    """Per-level question counts for one bucket of one paper at the given tier."""
    profile = get_profile(difficulty)
    return distribute_by_percentages(total_questions, profile.rbt_distribution)


def get_difficulty_levels(number_of_papers: int, difficulty: Optional[str] = None) -> List[str]:
    """
    Tier per paper: one paper uses the requested tier, two use easy + hard,
    three use easy + medium + hard.
    """
    if number_of_papers == 1:
        if not difficulty:
            raise BlueprintValidationError("Difficulty level required when generating single paper")
        return [get_profile(difficulty).key]
    if number_of_papers in MULTI_PAPER_DIFFICULTIES:
        return list(MULTI_PAPER_DIFFICULTIES[number_of_papers])
    raise BlueprintValidationError("Number of papers must be 1, 2, or 3")


def rbt_match_percentage(actual_counts: Mapping[str, int], target_percentages: Mapping[str, int], total_questions: int) -> float:
    """How closely a paper hit its target profile: 100 minus the mean absolute percentage deviation."""
    if not target_percentages:
        return 0.0
    denominator = total_questions or 1
    total_deviation = 0.0
    for level, target in target_percentages.items():
        actual_pct = actual_counts.get(level, 0) / denominator * 100
        total_deviation += abs(actual_pct - target)
    return round(max(0.0, 100 - total_deviation / len(target_percentages)), 2)

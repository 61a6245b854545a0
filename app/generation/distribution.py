"""Helpers for a blueprint distribution: module -> marks -> required count."""
from typing import Any, Dict, List, Mapping, NamedTuple, Tuple

from app.generation.errors import BlueprintValidationError

Distribution = Dict[int, Dict[int, int]]


class Bucket(NamedTuple):
    module: int
    marks: int
    count: int


def normalize_distribution(raw: Mapping[Any, Mapping[Any, Any]]) -> Distribution:
    """
    Converts a stored/submitted distribution (JSON keys are strings) into int keys.

    Raises BlueprintValidationError for keys or counts that are not integers,
    modules below 1, marks below 1 or negative counts.
    """
    if not isinstance(raw, Mapping):
        raise BlueprintValidationError("Distribution must be a mapping of module -> marks -> count.")

    normalized: Distribution = {}
    for module_key, marks_map in raw.items():
        try:
            module = int(module_key)
        except (TypeError, ValueError):
            raise BlueprintValidationError(f"Invalid module '{module_key}' in distribution.")
        if module < 1:
            raise BlueprintValidationError(f"Module numbers start at 1, got {module}.")
        if not isinstance(marks_map, Mapping):
            raise BlueprintValidationError(f"Module {module} must map marks values to counts.")

        cells: Dict[int, int] = {}
        for marks_key, count_value in marks_map.items():
            try:
                marks = int(marks_key)
                count = int(count_value) if count_value not in (None, "") else 0
            except (TypeError, ValueError):
                raise BlueprintValidationError(
                    f"Module {module}: invalid marks/count pair '{marks_key}': '{count_value}'."
                )
            if marks < 1:
                raise BlueprintValidationError(f"Module {module}: marks value must be positive, got {marks}.")
            if count < 0:
                raise BlueprintValidationError(f"Module {module}, {marks} marks: count cannot be negative.")
            cells[marks] = cells.get(marks, 0) + count
        normalized[module] = cells
    return normalized


def compute_totals(distribution: Distribution) -> Tuple[int, int]:
    """Returns (total_marks, total_questions)."""
    total_marks = 0
    total_questions = 0
    for marks_map in distribution.values():
        for marks, count in marks_map.items():
            total_questions += count
            total_marks += count * marks
    return total_marks, total_questions


def iter_buckets(distribution: Distribution) -> List[Bucket]:
    """
    Non-empty buckets in processing order: modules ascending, then marks ascending.

    Earlier buckets consume from the shared used-set before later ones run, so
    this order is part of the generation contract.
    """
    buckets = []
    for module in sorted(distribution):
        for marks in sorted(distribution[module]):
            count = distribution[module][marks]
            if count > 0:
                buckets.append(Bucket(module, marks, count))
    return buckets


def to_json_distribution(distribution: Distribution) -> Dict[str, Dict[str, int]]:
    """String keys for JSON columns and responses."""
    return {
        str(module): {str(marks): count for marks, count in sorted(marks_map.items())}
        for module, marks_map in sorted(distribution.items())
    }

from dataclasses import dataclass, asdict
from typing import Dict, List

from app.generation.distribution import Distribution
from app.generation.pool import PoolAvailability


@dataclass(frozen=True)
class Shortfall:
    module: int
    marks: int
    required: int
    available: int

    def describe(self) -> str:
        return f"Module {self.module}, {self.marks} marks -> need {self.required}, available {self.available}"

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def find_shortfalls(distribution: Distribution, availability: PoolAvailability) -> List[Shortfall]:
    """
    Every (module, marks) cell whose required count exceeds what the pool holds.
    An empty list means the blueprint is feasible against this snapshot.
    """
    shortfalls = []
    for module in sorted(distribution):
        for marks in sorted(distribution[module]):
            required = distribution[module][marks]
            available = availability.available(module, marks)
            if required > available:
                shortfalls.append(Shortfall(module=module, marks=marks, required=required, available=available))
    return shortfalls

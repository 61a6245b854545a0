"""Revised Bloom's Taxonomy (RBT) levels and module-tag parsing."""
import enum
import re
from typing import Dict, List, Optional


class RBTLevel(str, enum.Enum):
    R = "R"   # Remember
    U = "U"   # Understand
    AP = "AP" # Apply
    AN = "AN" # Analyse
    E = "E"   # Evaluate
    C = "C"   # Create


# Lowest to highest cognitive demand
RBT_ORDER: List[RBTLevel] = [RBTLevel.R, RBTLevel.U, RBTLevel.AP, RBTLevel.AN, RBTLevel.E, RBTLevel.C]

# Ranked substitutes used when a level runs short. Hand-authored and
# deliberately asymmetric; keep it literal.
FALLBACK_HIERARCHY: Dict[RBTLevel, List[RBTLevel]] = {
    RBTLevel.R: [RBTLevel.U, RBTLevel.AP, RBTLevel.AN, RBTLevel.E, RBTLevel.C],
    RBTLevel.U: [RBTLevel.R, RBTLevel.AP, RBTLevel.AN, RBTLevel.E, RBTLevel.C],
    RBTLevel.AP: [RBTLevel.U, RBTLevel.AN, RBTLevel.R, RBTLevel.E, RBTLevel.C],
    RBTLevel.AN: [RBTLevel.AP, RBTLevel.U, RBTLevel.E, RBTLevel.R, RBTLevel.C],
    RBTLevel.E: [RBTLevel.AN, RBTLevel.AP, RBTLevel.C, RBTLevel.U, RBTLevel.R],
    RBTLevel.C: [RBTLevel.E, RBTLevel.AN, RBTLevel.AP, RBTLevel.U, RBTLevel.R],
}

_MODULE_RE = re.compile(r"CO\s*([0-9]+)", re.IGNORECASE)


def parse_rbt(value: object) -> Optional[RBTLevel]:
    """Normalise a spreadsheet RBT cell ("ap", " An ", "U") to an RBTLevel, or None."""
    if value is None:
        return None
    text = str(value).strip().upper()
    try:
        return RBTLevel(text)
    except ValueError:
        return None


def parse_module(co: object) -> Optional[int]:
    """Extract the module number from a CO tag: "CO3" -> 3, "co 12" -> 12, "" -> None."""
    if not co:
        return None
    match = _MODULE_RE.search(str(co))
    return int(match.group(1)) if match else None


def rbt_rank(level: str) -> int:
    """Position in RBT_ORDER; unknown levels sort last."""
    try:
        return RBT_ORDER.index(RBTLevel(level))
    except ValueError:
        return len(RBT_ORDER)

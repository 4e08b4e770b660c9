"""Numeric tolerances and enums shared across the engine."""

from enum import Enum
from math import tau
from typing import Final

# Absolute / relative tolerances used by approximate float comparison.
ABS_TOLERANCE: Final[float] = 1e-9
REL_TOLERANCE: Final[float] = 1e-12

TAU: Final[float] = tau

# Containment tests on triangle fans accept points this far outside an edge.
BARYCENTRIC_TOLERANCE: Final[float] = 1e-9


class HitKind(Enum):
    """What a traced ray struck."""

    AGENT = "agent"
    COLLIDER = "collider"
    AIR = "air"


class Heuristic(Enum):
    """A* distance estimates understood by the grid pathfinder."""

    MANHATTAN = "manhattan"
    SQUARED_EUCLIDEAN = "squared_euclidean"


__all__ = [
    "ABS_TOLERANCE",
    "REL_TOLERANCE",
    "TAU",
    "BARYCENTRIC_TOLERANCE",
    "HitKind",
    "Heuristic",
]

"""
optimize.py - Multidimensional Peak Search

Bounded stochastic hill search in the style of simulated annealing. Finds a
Position (a point on an N-dimensional integer lattice, e.g. the WIP limits of
all process steps) that maximizes an externally supplied performance function.
No gradient information is used; noisy and non-monotonic performance is
tolerated by averaging repeated visits of the same Position.

The search is domain-independent: it never looks into what a dimension is,
it only calls the injected performance function.

One call of next_search_state() is one transition of the search state machine.
Termination is the caller's responsibility.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from receipts import stoprule

logger = logging.getLogger(__name__)

__all__ = [
    "VectorDimension",
    "VectorDimensionMapper",
    "Position",
    "PositionCache",
    "Direction",
    "SearchLogEntry",
    "SearchLog",
    "PeakSearchParms",
    "SearchState",
    "next_search_state",
    "jump_distance",
    "downhill_tolerance",
]


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_INIT_TEMPERATURE = 100
DEFAULT_COOLING_GRADIENT = 1
DEFAULT_DEGREES_PER_DOWNHILL_STEP_TOLERANCE = 50
DEFAULT_INIT_JUMP_DISTANCE = 1
RANDOMIZE_DIRECTION_RETRIES = 5


# =============================================================================
# VECTOR DIMENSIONS
# =============================================================================

@dataclass(frozen=True)
class VectorDimension:
    """A named lattice dimension with optional inclusive boundaries."""
    dimension: Any
    min: Optional[int] = None
    max: Optional[int] = None

    def __post_init__(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            stoprule("invalid_dimension_bounds",
                     f"Dimension {self.dimension}: min {self.min} > max {self.max}",
                     dimension=str(self.dimension), min=self.min, max=self.max)

    def __str__(self) -> str:
        return f"{self.dimension} from {self.min} to {self.max}"


class VectorDimensionMapper:
    """Maps dimension objects to their index in a vector."""

    def __init__(self, vds: Sequence[VectorDimension]):
        self.vds: List[VectorDimension] = list(vds)

    def vector_dimension(self, idx: int) -> VectorDimension:
        return self.vds[idx]

    def vector_dimension_index(self, dim: Any) -> int:
        for idx, vd in enumerate(self.vds):
            if vd.dimension == dim:
                return idx
        return -1

    def __len__(self) -> int:
        return len(self.vds)

    def __str__(self) -> str:
        return ", ".join(str(vd) for vd in self.vds)


def reflected(vd: VectorDimension, to: int) -> Tuple[int, bool]:
    """
    Reflect a coordinate off the boundaries of its dimension.

    new value = 2 * boundary - overshoot; repeated until the value is inside,
    a zero-width dimension collapses to its bound.

    Returns:
        (value, rebound) where rebound tells whether any reflection happened
    """
    rebound = False
    if vd.min is not None and vd.max is not None and vd.min == vd.max:
        return vd.min, to != vd.min
    while True:
        if vd.min is not None and to < vd.min:
            to = 2 * vd.min - to
        elif vd.max is not None and to > vd.max:
            to = 2 * vd.max - to
        else:
            return to, rebound
        rebound = True


# =============================================================================
# VECTOR / POSITION / DIRECTION
# =============================================================================

class Vector:
    """Integer vector bound to a dimension mapper."""

    def __init__(self, vdm: VectorDimensionMapper, vec: Sequence[int]):
        if len(vec) != len(vdm):
            stoprule("dimension_mismatch",
                     f"Vector has {len(vec)} dimensions, mapper has {len(vdm)}")
        self.vdm = vdm
        self.vec: Tuple[int, ...] = tuple(int(v) for v in vec)

    def is_equal(self, other: "Vector") -> bool:
        return self.vec == other.vec

    def __len__(self) -> int:
        return len(self.vec)

    def __str__(self) -> str:
        return f"[{','.join(str(v) for v in self.vec)}]"

    def verbose(self) -> str:
        return ", ".join(f"{self.vdm.vector_dimension(idx).dimension}: {val}"
                         for idx, val in enumerate(self.vec))


class Position(Vector):
    """
    Immutable lattice point with a running average of observed performance.

    Obtain Positions from a PositionCache only: equal coordinates map to the
    same object, so revisits refine the average instead of replacing it.
    """

    def __init__(self, vdm: VectorDimensionMapper, vec: Sequence[int]):
        super().__init__(vdm, vec)
        self.visits: int = 0
        self.total_performance: float = 0.0

    def record_visit(self, performance: float) -> None:
        self.visits += 1
        self.total_performance += performance

    @property
    def avg_performance(self) -> Optional[float]:
        if self.visits == 0:
            return None
        return self.total_performance / self.visits

    def plus(self, direction: "Direction",
             cache: "PositionCache") -> Tuple["Position", bool]:
        """
        Add a direction; every dimension reflects off its boundaries.

        Returns:
            (new position, rebound on any dimension)
        """
        moved = np.asarray(self.vec) + np.asarray(direction.vec)
        results = [reflected(self.vdm.vector_dimension(idx), int(to))
                   for idx, to in enumerate(moved.tolist())]
        return (cache.position(self.vdm, [r for r, _ in results]),
                any(rebound for _, rebound in results))


class PositionCache:
    """
    Owner of all Positions of one search run.

    Explicitly injected into the search, so independent searches never share
    positions.
    """

    def __init__(self):
        self._positions: Dict[Tuple[int, ...], Position] = {}

    def position(self, vdm: VectorDimensionMapper, vec: Sequence[int]) -> Position:
        key = tuple(int(v) for v in vec)
        pos = self._positions.get(key)
        if pos is None:
            pos = Position(vdm, key)
            self._positions[key] = pos
        elif len(pos.vdm) != len(vdm):
            stoprule("dimension_mismatch",
                     f"Position {key} requested with a mapper of {len(vdm)} dimensions")
        return pos

    def best_position(self, rng: random.Random) -> Optional[Position]:
        """Visited position with the highest average performance; ties picked at random."""
        visited = [p for p in self._positions.values() if p.visits > 0]
        if not visited:
            return None
        best = max(p.avg_performance for p in visited)
        return rng.choice([p for p in visited if p.avg_performance == best])

    def clear(self) -> None:
        self._positions.clear()

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(self._positions.values())


class Direction(Vector):
    """Movement vector with values in {-1, 0, 1} per dimension (before stretching)."""

    def inverted(self) -> "Direction":
        return Direction(self.vdm, [-v for v in self.vec])

    def stretched_by(self, stretch_factor: float) -> "Direction":
        # round half up
        stretched = np.floor(np.asarray(self.vec, dtype=float) * stretch_factor + 0.5)
        return Direction(self.vdm, stretched.astype(int).tolist())

    def new_random_direction(self, rng: random.Random) -> "Direction":
        """
        Draw a direction differing from this one and from its reverse.

        Up to RANDOMIZE_DIRECTION_RETRIES draws; if all collide (or end up
        without any movement) one random dimension of this direction is
        perturbed instead.
        """
        inverted = self.inverted()
        for _ in range(RANDOMIZE_DIRECTION_RETRIES):
            candidate = Direction(self.vdm, [_random_unit(rng) for _ in self.vec])
            if (any(candidate.vec)
                    and not candidate.is_equal(self)
                    and not candidate.is_equal(inverted)):
                return candidate
        return self._perturbed(rng)

    def _perturbed(self, rng: random.Random) -> "Direction":
        vec = list(self.vec)
        idx = rng.randrange(len(vec))
        vec[idx] = rng.choice([v for v in (-1, 0, 1) if v != vec[idx]])
        if not any(vec):
            vec[idx] = rng.choice((-1, 1))
        return Direction(self.vdm, vec)


def _random_unit(rng: random.Random) -> int:
    r = rng.random()
    return -1 if r < 0.34 else 0 if r < 0.66 else 1


# =============================================================================
# SEARCH LOG
# =============================================================================

@dataclass(frozen=True)
class SearchLogEntry:
    """One visit of the search."""
    timestamp: int
    position: Position
    direction: Direction
    jump_distance: float
    performance: float
    temperature: float
    downhill_steps_count: int
    best_position: Optional[Position]

    def __str__(self) -> str:
        best = (f"{self.best_position} with avg perf= {self.best_position.avg_performance}"
                if self.best_position is not None else "none")
        return (f"{self.timestamp} {self.position}: perf= {self.performance} "
                f"temp= {self.temperature} dir= {self.direction} "
                f"jumpDist= {round(self.jump_distance)} downSteps= {self.downhill_steps_count} "
                f"best past position= {best}")


class SearchLog:
    """Append-only, time-ordered sequence of visits."""

    def __init__(self):
        self.entries: List[SearchLogEntry] = []

    def append(self, entry: SearchLogEntry) -> None:
        self.entries.append(entry)

    @property
    def last(self) -> Optional[SearchLogEntry]:
        return self.entries[-1] if self.entries else None

    @property
    def second_last(self) -> Optional[SearchLogEntry]:
        return self.entries[-2] if len(self.entries) > 1 else None

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[SearchLogEntry]:
        return iter(self.entries)

    def __str__(self) -> str:
        return "\n".join(str(le) for le in self.entries)


# =============================================================================
# SEARCH PARAMETERS AND STATE
# =============================================================================

@dataclass(frozen=True)
class PeakSearchParms:
    """Parameter set for the search algorithm."""
    init_temperature: float = DEFAULT_INIT_TEMPERATURE            # must be > 0
    temperature_cooling_gradient: float = DEFAULT_COOLING_GRADIENT  # cooling per call
    degrees_per_downhill_step_tolerance: float = DEFAULT_DEGREES_PER_DOWNHILL_STEP_TOLERANCE
    init_jump_distance: float = DEFAULT_INIT_JUMP_DISTANCE        # shrinks as temperature cools
    verbose: bool = False


@dataclass(frozen=True)
class SearchState:
    position: Position
    direction: Direction
    temperature: float
    downhill_steps_count: int = 0


def jump_distance(psp: PeakSearchParms, temperature: float) -> float:
    return max(1.0, psp.init_jump_distance * temperature / psp.init_temperature)


def downhill_tolerance(psp: PeakSearchParms, temperature: float) -> int:
    return math.floor(temperature / psp.degrees_per_downhill_step_tolerance)


# =============================================================================
# SEARCH ALGORITHM
# =============================================================================

def next_search_state(log: SearchLog,
                      cache: PositionCache,
                      performance_at: Callable[[Position], float],
                      psp: PeakSearchParms,
                      timestamp: int,
                      curr: SearchState,
                      rng: random.Random) -> SearchState:
    """
    One transition of the peak search.

    Args:
        log: Search log of this run (appended to)
        cache: Position cache of this run
        performance_at: Performance function, evaluated once at curr.position
        psp: Search parameters
        timestamp: Caller's time of this visit
        curr: Current search state
        rng: Random generator for new directions and tie breaks

    Returns:
        The next search state
    """
    say = logger.info if psp.verbose else logger.debug

    perf = performance_at(curr.position)
    jump_dist = jump_distance(psp, curr.temperature)
    tolerance = downhill_tolerance(psp, curr.temperature)
    best = cache.best_position(rng)
    say("t=%s %s perf=%s tolerance=%s downhill=%s jump=%s dir=%s",
        timestamp, curr.position, perf, tolerance, curr.downhill_steps_count,
        jump_dist, curr.direction)

    log.append(SearchLogEntry(timestamp, curr.position, curr.direction, jump_dist,
                              perf, curr.temperature, curr.downhill_steps_count, best))
    curr.position.record_visit(perf)

    new_temperature = max(0, curr.temperature - psp.temperature_cooling_gradient)

    if best is None:
        new_downhill_steps_count = 0
    elif perf < best.avg_performance:
        if curr.downhill_steps_count > tolerance:
            say("too many downhill steps: retreat from %s to %s (avg perf=%s)",
                curr.position, best, best.avg_performance)
            return SearchState(position=best,
                               direction=curr.direction.new_random_direction(rng),
                               temperature=new_temperature,
                               downhill_steps_count=0)
        new_downhill_steps_count = curr.downhill_steps_count + 1
    else:
        new_downhill_steps_count = 0

    position, rebound = curr.position.plus(curr.direction.stretched_by(jump_dist), cache)
    if rebound:
        say("rebound at boundary, setting new course")
    return SearchState(position=position,
                       direction=curr.direction.new_random_direction(rng) if rebound else curr.direction,
                       temperature=new_temperature,
                       downhill_steps_count=new_downhill_steps_count)

"""
sim/selection.py - Work Item Selection Strategies

Ranking metrics, selection strategies (ordered tie-break rules) and the
weighted-element helpers used by the workers' learning loop.

Metric and criterion names are resolved once at configuration time into a
closed enumeration; unknown names halt the load.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from receipts import stoprule

T = TypeVar("T")


# =============================================================================
# RANKING METRICS
# =============================================================================

class Metric(Enum):
    """Decision inputs a worker can rank candidate work items by."""
    ACCUMULATED_EFFORT_IN_PROCESS_STEP = "accumulatedEffortInProcessStep"
    REMAINING_EFFORT_IN_PROCESS_STEP = "remainingEffortInProcessStep"
    ACCUMULATED_EFFORT_IN_VALUE_CHAIN = "accumulatedEffortInValueChain"
    REMAINING_EFFORT_IN_VALUE_CHAIN = "remainingEffortInValueChain"
    VISITED_PROCESS_STEPS = "visitedProcessSteps"
    REMAINING_PROCESS_STEPS = "remainingProcessSteps"
    VALUE_OF_VALUE_CHAIN = "valueOfValueChain"
    TOTAL_EFFORT_IN_VALUE_CHAIN = "totalEffortInValueChain"
    CONTRIBUTION_OF_VALUE_CHAIN = "contributionOfValueChain"
    SIZE_OF_INVENTORY_IN_PROCESS_STEP = "sizeOfInventoryInProcessStep"
    ELAPSED_TIME_IN_PROCESS_STEP = "elapsedTimeInProcessStep"
    ELAPSED_TIME_IN_VALUE_CHAIN = "elapsedTimeInValueChain"


class SelectionCriterion(Enum):
    """Which extreme of a metric wins a tie-break level."""
    MINIMUM = "minimum"
    MAXIMUM = "maximum"


@dataclass(frozen=True)
class SortVector:
    """One tie-break level: a metric and whether its minimum or maximum wins."""
    metric: Metric
    criterion: SelectionCriterion


@dataclass(frozen=True)
class SelectionStrategy:
    """Ordered sequence of tie-break levels; empty means pick at random."""
    id: str
    svs: Tuple[SortVector, ...] = ()


@dataclass(frozen=True)
class WeightedStrategy:
    """A selection strategy and its relative weight in a worker's roster."""
    strategy: SelectionStrategy
    weight: float


def sort_vector(measure: str, selection_criterion: str) -> SortVector:
    """
    Resolve configuration names into a SortVector.

    Raises:
        StopRule: If the measure or the selection criterion is unknown
    """
    try:
        metric = Metric(measure)
    except ValueError:
        stoprule("unknown_metric",
                 f"Selecting next work item by \"{measure}\": unknown measure",
                 measure=measure)
    try:
        criterion = SelectionCriterion(selection_criterion)
    except ValueError:
        stoprule("unknown_selection_criterion",
                 f"Selecting next work item by \"{measure}\": unknown selection criterion "
                 f"\"{selection_criterion}\"",
                 measure=measure, selection_criterion=selection_criterion)
    return SortVector(metric, criterion)


# =============================================================================
# RANKING
# =============================================================================

def top_after_sort(rows: Sequence[T], svs: Sequence[SortVector],
                   value_of: Callable[[T, Metric], float],
                   rng: random.Random) -> T:
    """
    Pick the top row after a multi-level sort.

    Levels are applied left to right: each keeps only the rows attaining the
    extreme value of its metric. Stops when one row remains; if rows are still
    tied after the last level, one of them is picked uniformly at random.

    Raises:
        StopRule: If rows is empty
    """
    if not rows:
        stoprule("empty_candidates", "Cannot rank an empty list of work items")
    tops = list(rows)
    for sv in svs:
        if len(tops) == 1:
            break
        values = [value_of(row, sv.metric) for row in tops]
        extreme = max(values) if sv.criterion is SelectionCriterion.MAXIMUM else min(values)
        tops = [row for row, v in zip(tops, values) if v == extreme]
    return tops[0] if len(tops) == 1 else rng.choice(tops)


# =============================================================================
# WEIGHTED STRATEGIES
# =============================================================================

def with_modified_weight(weighted: Sequence[WeightedStrategy], strategy: SelectionStrategy,
                         weight_increase: float) -> List[WeightedStrategy]:
    """Add weight_increase to the weight of strategy; no normalization."""
    return [WeightedStrategy(ws.strategy, ws.weight + weight_increase)
            if ws.strategy == strategy else ws
            for ws in weighted]


def with_normalized_weights(weighted: Sequence[WeightedStrategy],
                            floor: float = 0.0) -> List[WeightedStrategy]:
    """
    Normalize weights to sum 1 with no weight below floor.

    Weights are first raised to floor, then scaled proportionally; weights
    that would fall below floor after scaling are pinned at floor and the
    remaining mass is redistributed over the others. If floor leaves no room
    (floor * n >= 1) all weights become equal.
    """
    n = len(weighted)
    if n == 0:
        return []
    weights = [max(ws.weight, floor, 0.0) for ws in weighted]
    if floor * n >= 1:
        return [WeightedStrategy(ws.strategy, 1 / n) for ws in weighted]

    pinned: set = set()
    while True:
        free = [i for i in range(n) if i not in pinned]
        free_sum = sum(weights[i] for i in free)
        remaining = 1 - floor * len(pinned)
        if free_sum <= 0:
            scaled = {i: remaining / len(free) for i in free}
        else:
            scaled = {i: weights[i] * remaining / free_sum for i in free}
        low = [i for i in free if scaled[i] < floor]
        if not low:
            break
        pinned.update(low)

    return [WeightedStrategy(ws.strategy, floor if i in pinned else scaled[i])
            for i, ws in enumerate(weighted)]


def randomly_picked_by_weights(weighted: Sequence[WeightedStrategy], floor: float,
                               rng: random.Random) -> SelectionStrategy:
    """
    Pick a strategy with probability proportional to its (normalized) weight.

    Raises:
        StopRule: If weighted is empty
    """
    if not weighted:
        stoprule("empty_strategies", "Cannot pick a strategy from an empty roster")
    normalized = with_normalized_weights(weighted, floor)
    r = rng.random()
    upper = 0.0
    for ws in normalized:
        upper += ws.weight
        if r < upper:
            return ws.strategy
    return normalized[-1].strategy


def reshuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """Copy of items in random order."""
    shuffled = list(items)
    rng.shuffle(shuffled)
    return shuffled


def strategy_weight(weighted: Sequence[WeightedStrategy],
                    strategy: SelectionStrategy) -> Optional[float]:
    for ws in weighted:
        if ws.strategy == strategy:
            return ws.weight
    return None

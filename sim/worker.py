"""
sim/worker.py - Workers, Assignments and Learning & Adaptation

A worker is assigned to process steps of one or more value chains. Per tick
it works at most one unit on one item at hand, chosen by its current
selection strategy. At the end of every observation period it measures the
success of that strategy, shifts the strategy's weight up or down depending
on whether the measurement improved, and draws the strategy for the next
period from the renormalized weights.

The worker's log is the source of truth for its current strategy and
weights: both are read from the latest learned-and-adapted entry.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from receipts import emit_receipt, stoprule

from .events import WorkerLearnedAndAdapted, WorkerWorked
from .selection import (
    SelectionStrategy,
    WeightedStrategy,
    randomly_picked_by_weights,
    top_after_sort,
    with_modified_weight,
    with_normalized_weights,
)
from .types_config import SuccessMeasure
from .work_item import WorkItem

logger = logging.getLogger(__name__)

RECEIPT_SCHEMA = ["learned_and_adapted"]


# =============================================================================
# ASSIGNMENTS
# =============================================================================

@dataclass(frozen=True)
class Assignment:
    worker: "Worker"
    value_chain: object
    process_step: object


class AssignmentSet:
    """Many-to-many mapping of workers to (value chain, process step)."""

    def __init__(self, id: str):
        self.id = id
        self.assignments: List[Assignment] = []

    def add_assignment(self, assignment: Assignment) -> None:
        self.assignments.append(assignment)

    def assignments_of(self, worker: "Worker") -> List[Assignment]:
        return [a for a in self.assignments if a.worker is worker]

    def assigned_workers_to_process_step(self, ps) -> List["Worker"]:
        return [a.worker for a in self.assignments if a.process_step is ps]


# =============================================================================
# SUCCESS MEASURES
# =============================================================================

SuccessMeasureFunction = Callable[[object, "Worker"], float]


def success_measure_ivc(sys, wo: "Worker") -> float:
    """Value the worker contributed to end products within the observation period."""
    now = sys.clock.time
    from_time = max(0, now - sys.learn_and_adapt_parms.observation_period)
    return sum(wi.worker_value_contribution(wo, from_time, now)
               for wi in sys.output_basket.work_items)


def success_measure_roce(sys, wo: "Worker") -> float:
    """System-wide roce_var of the observation period; shared by all workers of a tick."""
    now = sys.clock.time
    from_time = max(sys.clock.first_iteration, now - sys.learn_and_adapt_parms.observation_period)
    roce_var = sys.cached_system_statistics(from_time, now).output_basket.economics.roce_var
    return roce_var if roce_var is not None else 0.0


def success_measure_none(sys, wo: "Worker") -> float:
    return 0.0


SUCCESS_MEASURE_FUNCTIONS: Dict[SuccessMeasure, SuccessMeasureFunction] = {
    SuccessMeasure.IVC: success_measure_ivc,
    SuccessMeasure.ROCE: success_measure_roce,
    SuccessMeasure.NONE: success_measure_none,
}


def weight_adjustment(measurement: float, measurement_before: float, factor: float) -> float:
    """+factor if improved, -factor if worsened, 0 if unchanged."""
    if measurement > measurement_before:
        return factor
    if measurement < measurement_before:
        return -factor
    return 0.0


# =============================================================================
# WORKER
# =============================================================================

class Worker:
    """Agent working one unit per tick on an item at hand."""

    def __init__(self, sys, id: str, weighted_strategies: Sequence[WeightedStrategy]):
        self.sys = sys
        self.id = id
        self.log: List[object] = []
        self.utilization: float = 0.0
        if not weighted_strategies:
            stoprule("empty_strategies", f"Worker {id} has no selection strategies",
                     sys.receipt_ledger, sys.id, worker=id)
        floor = sys.learn_and_adapt_parms.weight_floor
        initial = tuple(with_normalized_weights(weighted_strategies, floor))
        first = initial[0].strategy
        self.log.append(WorkerLearnedAndAdapted(sys.clock.time, self, 0.0, first, first, initial))

    # --- log views -----------------------------------------------------------

    @property
    def worked_entries(self) -> List[WorkerWorked]:
        return [le for le in self.log if isinstance(le, WorkerWorked)]

    @property
    def learned_and_adapted_entries(self) -> List[WorkerLearnedAndAdapted]:
        return [le for le in self.log if isinstance(le, WorkerLearnedAndAdapted)]

    @property
    def _last_adaptation(self) -> WorkerLearnedAndAdapted:
        for le in reversed(self.log):
            if isinstance(le, WorkerLearnedAndAdapted):
                return le

    @property
    def current_strategy(self) -> SelectionStrategy:
        return self._last_adaptation.chosen_strategy

    @property
    def current_weighted_strategies(self) -> tuple:
        return self._last_adaptation.weighted_strategies

    @property
    def measurement_period_before(self) -> float:
        return self._last_adaptation.measurement

    def has_worked_at(self, timestamp: int) -> bool:
        return any(le.timestamp == timestamp for le in self.worked_entries)

    # --- working -------------------------------------------------------------

    def work_items_at_hand(self, assignment_set: AssignmentSet) -> List[WorkItem]:
        """Resident items of all assigned process steps, each once."""
        seen = set()
        items = []
        for a in assignment_set.assignments_of(self):
            for wi in a.process_step.work_items:
                if wi.id not in seen:
                    seen.add(wi.id)
                    items.append(wi)
        return items

    def workable_work_items(self, assignment_set: AssignmentSet) -> List[WorkItem]:
        now = self.sys.clock.time
        return [wi for wi in self.work_items_at_hand(assignment_set)
                if not wi.finished_at_current_process_step()
                and not wi.has_been_worked_on_at(now)]

    def work(self, assignment_set: AssignmentSet) -> Optional[WorkItem]:
        """
        One tick of the worker: learn & adapt if an observation period ended,
        then work on the top-ranked workable item, if any.

        Returns:
            The work item worked on, or None
        """
        now = self.sys.clock.time
        period = self.sys.learn_and_adapt_parms.observation_period
        if now > 0 and now % period == 0:
            self.learn_and_adapt()

        if self.has_worked_at(now):
            return None
        workable = self.workable_work_items(assignment_set)
        if not workable:
            return None

        wi = top_after_sort(workable, self.current_strategy.svs,
                            lambda item, metric: item.decision_info.value(metric),
                            self.sys.rng)
        logger.debug("t=%s %s picked wi=%s with strategy %s",
                     now, self.id, wi.id, self.current_strategy.id)
        wi.log_worked(self)
        self.log.append(WorkerWorked(now, self))
        return wi

    # --- learning & adaptation -----------------------------------------------

    def learn_and_adapt(self) -> WorkerLearnedAndAdapted:
        """Measure, shift the current strategy's weight, renormalize and draw anew."""
        parms = self.sys.learn_and_adapt_parms
        measure = SUCCESS_MEASURE_FUNCTIONS[parms.success_measure]
        measurement = measure(self.sys, self)
        increase = weight_adjustment(measurement, self.measurement_period_before,
                                     parms.adjustment_factor)

        adjusted = self.current_strategy
        modified = with_modified_weight(self.current_weighted_strategies, adjusted, increase)
        normalized = tuple(with_normalized_weights(modified, parms.weight_floor))
        chosen = randomly_picked_by_weights(normalized, parms.weight_floor, self.sys.rng)

        entry = WorkerLearnedAndAdapted(self.sys.clock.time, self, measurement,
                                        adjusted, chosen, normalized)
        self.log.append(entry)
        logger.debug("%s", entry)
        emit_receipt("learned_and_adapted", {
            "system_id": self.sys.id,
            "time": entry.timestamp,
            "worker": self.id,
            "measurement": measurement,
            "adjusted_strategy": adjusted.id,
            "chosen_strategy": chosen.id,
            "weights": {ws.strategy.id: ws.weight for ws in normalized},
        }, self.sys.receipt_ledger)
        return entry

    # --- statistics ----------------------------------------------------------

    def update_utilization(self) -> float:
        """Fraction of ticks since the first iteration in which the worker worked."""
        first = self.sys.clock.first_iteration
        now = self.sys.clock.time
        eligible = now - first
        if eligible <= 0:
            self.utilization = 0.0
        else:
            worked = sum(1 for le in self.worked_entries if first < le.timestamp <= now)
            self.utilization = worked / eligible
        return self.utilization

    @property
    def stats_over_time(self) -> List[dict]:
        """Weighted strategies at every adaptation, oldest first."""
        return [{"timestamp": le.timestamp,
                 "weights": [(ws.strategy.id, ws.weight) for ws in le.weighted_strategies]}
                for le in self.learned_and_adapted_entries]

    def __str__(self) -> str:
        return f"Worker {self.id} strategy={self.current_strategy.id} util={self.utilization:.2f}"

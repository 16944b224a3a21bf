"""
sim/work_item.py - Work Items and Their Event History

A work item flows through the process steps of the value chain it was
injected into and ends in the output basket. Its log is the single source of
truth: accumulated effort, elapsed times, whether it is finished at its
current process step and its flow statistics events are all computed by
filtering the log.

Terminology:
- work order: a work item being injected into a value chain
- end product: a work item that has reached the output basket
"""

from dataclasses import dataclass
from itertools import count, cycle
from typing import Any, Dict, Iterator, List, Optional, Tuple

from receipts import stoprule

from .constants import ElapsedTimeMode, WORK_ITEM_TAGS
from .events import WorkItemMoved, WorkItemWorkedOn
from .selection import Metric


def work_item_id_generator() -> Iterator[int]:
    return count()


def work_item_tag_generator(tags: List[Tuple[str, str]] = WORK_ITEM_TAGS) -> Iterator[Tuple[str, str]]:
    """Round-robin display tags: lower letter = untouched, upper = worked on."""
    return cycle(tags)


@dataclass(frozen=True)
class WorkOrder:
    """A new work item to be injected into the first process step of a value chain."""
    timestamp: int
    value_chain: Any


@dataclass(frozen=True, eq=False)
class FlowExitEvent:
    """Statistics event of a work item leaving a process step."""
    work_item: "WorkItem"
    value_chain: Any
    process_step_exited: Any
    holder_entered: Any          # next process step or the output basket
    finished_time: int           # when the item left process_step_exited
    elapsed_time: int            # dwell time in process_step_exited
    injection_time: int          # when the item entered its value chain


# =============================================================================
# DECISION INFO
# =============================================================================

@dataclass(frozen=True)
class DecisionInfo:
    """Snapshot of the decision inputs a worker ranks a work item by."""
    accumulated_effort_in_process_step: float
    remaining_effort_in_process_step: float
    accumulated_effort_in_value_chain: float
    remaining_effort_in_value_chain: float
    visited_process_steps: int
    remaining_process_steps: int
    value_of_value_chain: float
    total_effort_in_value_chain: float
    contribution_of_value_chain: float
    size_of_inventory_in_process_step: int
    elapsed_time_in_process_step: int
    elapsed_time_in_value_chain: int

    def value(self, metric: Metric) -> float:
        return getattr(self, metric.name.lower())


def decision_info(wi: "WorkItem", now: int) -> DecisionInfo:
    """Decision inputs of a work item still in its value chain, from its log and now."""
    ps = wi.current_holder
    vc = wi.value_chain
    effort_in_ps = wi.accumulated_effort(now, ps)
    effort_in_vc = wi.accumulated_effort(now)
    visited = wi.num_process_steps_visited
    return DecisionInfo(
        accumulated_effort_in_process_step=effort_in_ps,
        remaining_effort_in_process_step=ps.norm_effort - effort_in_ps,
        accumulated_effort_in_value_chain=effort_in_vc,
        remaining_effort_in_value_chain=vc.norm_effort - effort_in_vc,
        visited_process_steps=visited,
        remaining_process_steps=len(vc) - visited,
        value_of_value_chain=vc.total_value_add,
        total_effort_in_value_chain=vc.norm_effort,
        contribution_of_value_chain=vc.total_value_add - vc.norm_effort,
        size_of_inventory_in_process_step=ps.inventory_size,
        elapsed_time_in_process_step=wi.elapsed_time(ElapsedTimeMode.FIRST_ENTRY_TO_NOW, ps),
        elapsed_time_in_value_chain=wi.elapsed_time(ElapsedTimeMode.FIRST_ENTRY_TO_NOW),
    )


# =============================================================================
# WORK ITEM
# =============================================================================

class WorkItem:
    """Unit of work flowing through a value chain; owns its own event log."""

    def __init__(self, sys, value_chain):
        self.sys = sys
        self.value_chain = value_chain
        self.id: int = next(sys.id_gen)
        self.tag: Tuple[str, str] = next(sys.tag_gen)
        self.log: List[Any] = []
        self.decision_info: Optional[DecisionInfo] = None

        first_step = value_chain.process_steps[0]
        first_step.add(self)
        self.log_moved(None, first_step)

    # --- logging -------------------------------------------------------------

    def log_moved(self, from_holder, to_holder) -> None:
        self.log.append(WorkItemMoved(self.sys.clock.time, self, from_holder, to_holder))

    def log_worked(self, worker) -> None:
        self.log.append(WorkItemWorkedOn(self.sys.clock.time, self, self.current_holder, worker))

    def moved_to(self, to_holder) -> None:
        """Record the move; the holders themselves are updated by the process step."""
        self.log_moved(self.current_holder, to_holder)
        if self.is_end_product:
            self.decision_info = None

    # --- derived views -------------------------------------------------------

    @property
    def moved_entries(self) -> List[WorkItemMoved]:
        return [le for le in self.log if isinstance(le, WorkItemMoved)]

    @property
    def worked_entries(self) -> List[WorkItemWorkedOn]:
        return [le for le in self.log if isinstance(le, WorkItemWorkedOn)]

    @property
    def current_holder(self):
        for le in reversed(self.log):
            if isinstance(le, WorkItemMoved):
                return le.holder
        stoprule("empty_work_item_log", f"Work item {self.id} has no moved-to entry")

    @property
    def is_end_product(self) -> bool:
        return self.current_holder is self.sys.output_basket

    @property
    def injection_time(self) -> int:
        return self.moved_entries[0].timestamp

    @property
    def num_process_steps_visited(self) -> int:
        return len(self.moved_entries)

    def accumulated_effort(self, until: int, holder=None) -> int:
        """Worked-on entries at or before until, optionally scoped to a holder."""
        return sum(1 for le in self.worked_entries
                   if le.timestamp <= until
                   and (holder is None or le.holder is holder))

    def elapsed_time(self, mode: ElapsedTimeMode, holder=None) -> int:
        """
        Elapsed time within the whole log or the part of it concerning holder
        (entering it, being worked there, leaving it).

        FIRST_TO_LAST_ENTRY: last - first entry (completed dwell time)
        FIRST_ENTRY_TO_NOW:  now - first entry (still in progress)

        Raises:
            StopRule: If there are no log entries in scope
        """
        if holder is None:
            scope = self.log
        else:
            scope = [le for le in self.log
                     if le.holder is holder
                     or (isinstance(le, WorkItemMoved) and le.from_holder is holder)]
        if not scope:
            stoprule("empty_work_item_log",
                     f"Elapsed time of work item {self.id}: no log entries in scope",
                     work_item=self.id)
        if mode is ElapsedTimeMode.FIRST_TO_LAST_ENTRY:
            return scope[-1].timestamp - scope[0].timestamp
        return self.sys.clock.time - scope[0].timestamp

    @property
    def elapsed_time_in_current_process_step(self) -> Optional[int]:
        if self.is_end_product:
            return None
        return self.sys.clock.time - self.moved_entries[-1].timestamp

    @property
    def elapsed_time_in_value_chain(self) -> Optional[int]:
        if self.is_end_product:
            return None
        return self.sys.clock.time - self.injection_time

    def cycle_time_in_process_step(self, ps, from_time: int = 0,
                                   to_time: Optional[int] = None) -> Optional[int]:
        """Dwell time in ps if the item left it within [from_time, to_time]."""
        to_time = self.sys.clock.time if to_time is None else to_time
        moved = self.moved_entries
        entry = next((le.timestamp for le in moved if le.holder is ps), None)
        exit_ = next((le.timestamp for le in moved if le.from_holder is ps), None)
        if entry is None or exit_ is None or not from_time <= exit_ <= to_time:
            return None
        return exit_ - entry

    def cycle_time_in_value_chain(self, from_time: int = 0,
                                  to_time: Optional[int] = None) -> Optional[int]:
        """Injection to output basket, if the item arrived there within [from_time, to_time]."""
        to_time = self.sys.clock.time if to_time is None else to_time
        if not self.is_end_product:
            return None
        exit_ = self.moved_entries[-1].timestamp
        if not from_time <= exit_ <= to_time:
            return None
        return exit_ - self.injection_time

    def finished_at_current_process_step(self) -> bool:
        holder = self.current_holder
        if holder is self.sys.output_basket:
            return False
        return self.accumulated_effort(self.sys.clock.time, holder) >= holder.norm_effort

    def has_been_worked_on_at(self, timestamp: int) -> bool:
        return any(le.timestamp == timestamp for le in self.worked_entries)

    def has_moved_to_output_basket_between(self, from_time: int, to_time: int) -> bool:
        return (self.is_end_product
                and from_time <= self.moved_entries[-1].timestamp <= to_time)

    def was_in_value_chain_at(self, t: int) -> bool:
        """Injected at or before t and not arrived in the output basket before t."""
        return (self.injection_time <= t
                and not self.has_moved_to_output_basket_between(0, t - 1))

    # --- value ----------------------------------------------------------------

    def materialized_value(self) -> float:
        """Degraded value add of an end product; 0 while still in the value chain."""
        if not self.is_end_product:
            return 0
        vc = self.value_chain
        return vc.value_degradation(vc.total_value_add,
                                    self.cycle_time_in_value_chain() - vc.minimal_cycle_time)

    def effort_put_in_by_worker(self, worker, from_time: int, to_time: int) -> int:
        return sum(1 for le in self.worked_entries
                   if le.worker is worker and from_time <= le.timestamp <= to_time)

    def worker_value_contribution(self, worker, from_time: int, to_time: int) -> float:
        """Share of the materialized value proportional to the worker's effort in the window."""
        if not self.is_end_product or self.value_chain.norm_effort == 0:
            return 0
        effort = self.effort_put_in_by_worker(worker, from_time, to_time)
        return self.materialized_value() * effort / self.value_chain.norm_effort

    # --- statistics -----------------------------------------------------------

    def statistics_events_history(self, from_time: int = 1,
                                  to_time: Optional[int] = None) -> List[FlowExitEvent]:
        """
        Process step exits from consecutive moved-to entries, newest first.

        Only moves at or before to_time are considered; collection stops at
        the injection entry or at the first exit before from_time.
        """
        to_time = self.sys.clock.time if to_time is None else to_time
        moved = [le for le in self.moved_entries if le.timestamp <= to_time]
        if len(moved) < 2:
            return []
        injection_time = moved[0].timestamp
        events: List[FlowExitEvent] = []
        for before, current in reversed(list(zip(moved, moved[1:]))):
            if current.from_holder is None or current.timestamp < from_time:
                break
            events.append(FlowExitEvent(
                work_item=self,
                value_chain=self.value_chain,
                process_step_exited=current.from_holder,
                holder_entered=current.holder,
                finished_time=current.timestamp,
                elapsed_time=current.timestamp - before.timestamp,
                injection_time=injection_time,
            ))
        return events

    @property
    def lifecycle_events(self) -> List[Dict[str, Any]]:
        return [le.as_event() for le in self.log]

    def refresh_decision_info(self) -> None:
        """Recompute the decision snapshot while the item is still in its value chain."""
        if not self.is_end_product:
            self.decision_info = decision_info(self, self.sys.clock.time)

    def __str__(self) -> str:
        state = "done" if self.finished_at_current_process_step() else "in progress"
        return (f"Work item: t={self.sys.clock.time} wi={self.id} ps={self.current_holder.id} "
                f"vc={self.value_chain.id} et={self.elapsed_time_in_value_chain} "
                f"ae={self.accumulated_effort(self.sys.clock.time, self.current_holder)} {state}")

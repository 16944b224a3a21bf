"""
sim/value_chain.py - Value Chains

An ordered pipeline of process steps ending at the system's output basket.
The value chain owns the nominal value add of its end products and the
function degrading that value with excess cycle time.
"""

from typing import Any, Dict, List, Optional

from .holders import ProcessStep, WorkItemBasketHolder
from .types_config import Injection
from .valuation import TimeValuationFct, net
from .work_item import WorkItem


class ValueChain:
    """Ordered process steps plus value semantics."""

    def __init__(self, sys, id: str, total_value_add: float,
                 injection: Injection = Injection(),
                 value_degradation: TimeValuationFct = net):
        self.sys = sys
        self.id = id
        self.total_value_add = total_value_add
        self.injection = injection
        self.value_degradation = value_degradation
        self.process_steps: List[ProcessStep] = []

    def add_process_step(self, id: str, norm_effort: int, wip_limit: int = 0) -> ProcessStep:
        ps = ProcessStep(self.sys, id, self, norm_effort, wip_limit)
        self.process_steps.append(ps)
        return ps

    def process_step(self, id: str) -> Optional[ProcessStep]:
        return next((ps for ps in self.process_steps if ps.id == id), None)

    def create_and_inject_new_work_item(self) -> Optional[WorkItem]:
        """New work item in the first process step unless its WIP limit is reached."""
        if self.process_steps[0].reached_wip_limit():
            return None
        return WorkItem(self.sys, self)

    def next_holder(self, ps: ProcessStep) -> WorkItemBasketHolder:
        idx = self.process_steps.index(ps)
        if idx == len(self.process_steps) - 1:
            return self.sys.output_basket
        return self.process_steps[idx + 1]

    def let_work_items_flow(self) -> int:
        """
        Advance every finished item by one holder.

        Due items are collected for all process steps before any item moves,
        so an item arriving in a step this tick is not moved on again.
        """
        due = [(ps, wi) for ps in self.process_steps for wi in ps.due_work_items()]
        for ps, wi in due:
            ps.move_to(wi, self.next_holder(ps))
        return len(due)

    def reset_flow_counters(self) -> None:
        for ps in self.process_steps:
            ps.last_iteration_flow_rate = 0

    def refresh_decision_infos(self) -> None:
        for ps in self.process_steps:
            ps.refresh_decision_infos()

    @property
    def work_items(self) -> List[WorkItem]:
        return [wi for ps in self.process_steps for wi in ps.work_items]

    @property
    def norm_effort(self) -> int:
        return sum(ps.norm_effort for ps in self.process_steps)

    @property
    def minimal_cycle_time(self) -> int:
        # holds as long as only one worker can work an item per tick
        return self.norm_effort

    @property
    def lifecycle_events(self) -> List[Dict[str, Any]]:
        return [ev for ps in self.process_steps for ev in ps.lifecycle_events]

    def __len__(self) -> int:
        return len(self.process_steps)

    def __str__(self) -> str:
        return f"Value chain {self.id}: " + " | ".join(str(ps) for ps in self.process_steps)

"""
sim/holders.py - Process Steps and the Output Basket

Work item basket holders keep their resident work items in arrival order.
Process steps require a norm effort before an item may advance and may cap
their inventory with a WIP limit; the output basket is the single sink of a
system where end products are collected.
"""

from typing import Any, Dict, List

from .constants import UNLIMITED_WIP
from .events import WipLimitSet
from .types_result import EndProductStatistics
from .work_item import FlowExitEvent, WorkItem


class WorkItemBasketHolder:
    """Ordered collection of resident work items."""

    def __init__(self, sys, id: str):
        self.sys = sys
        self.id = id
        self.work_items: List[WorkItem] = []

    def add(self, wi: WorkItem) -> None:
        self.work_items.append(wi)

    def flow_stats(self, from_time: int, to_time: int) -> List[FlowExitEvent]:
        return [ev for wi in self.work_items
                for ev in wi.statistics_events_history(from_time, to_time)]

    @property
    def lifecycle_events(self) -> List[Dict[str, Any]]:
        return [ev for wi in self.work_items for ev in wi.lifecycle_events]

    @property
    def inventory_size(self) -> int:
        return len(self.work_items)

    def __str__(self) -> str:
        items = " ".join(str(wi) for wi in self.work_items) or "empty"
        return f"Work item basket holder: t={self.sys.clock.time} wibh={self.id} {items}"


# =============================================================================
# PROCESS STEP
# =============================================================================

class ProcessStep(WorkItemBasketHolder):
    """
    Capacity point of a value chain.

    Attributes:
        value_chain: Owning value chain
        norm_effort: Worked-on units an item needs before it may advance
        last_iteration_flow_rate: Items that exited during the last tick
        wip_limit_log: Append-only WIP limit settings; 0 means unlimited
    """

    def __init__(self, sys, id: str, value_chain, norm_effort: int,
                 wip_limit: int = UNLIMITED_WIP):
        super().__init__(sys, id)
        self.value_chain = value_chain
        self.norm_effort = norm_effort
        self.last_iteration_flow_rate = 0
        self.wip_limit_log: List[WipLimitSet] = []
        self.wip_limit = wip_limit or UNLIMITED_WIP

    @property
    def wip_limit(self) -> int:
        return self.wip_limit_log[-1].wip_limit

    @wip_limit.setter
    def wip_limit(self, wip_limit: int) -> None:
        self.wip_limit_log.append(WipLimitSet(self.sys.clock.time, self, wip_limit))

    def reached_wip_limit(self) -> bool:
        return self.wip_limit > 0 and len(self.work_items) >= self.wip_limit

    def remove_from_basket(self, wi: WorkItem) -> None:
        if wi in self.work_items:
            self.last_iteration_flow_rate += 1
            self.work_items.remove(wi)

    def move_to(self, wi: WorkItem, target: WorkItemBasketHolder) -> None:
        self.remove_from_basket(wi)
        target.add(wi)
        wi.moved_to(target)

    def due_work_items(self) -> List[WorkItem]:
        """Resident items whose effort at this step reached the norm effort."""
        return [wi for wi in self.work_items if wi.finished_at_current_process_step()]

    def refresh_decision_infos(self) -> None:
        for wi in self.work_items:
            wi.refresh_decision_info()

    def __str__(self) -> str:
        return f"{self.value_chain.id}.{self.id}"


# =============================================================================
# OUTPUT BASKET
# =============================================================================

class OutputBasket(WorkItemBasketHolder):
    """The one sink of a system; end products stay until clear()."""

    def __init__(self, sys):
        super().__init__(sys, "OutputBasket")

    def stats_of_arrived_work_items_between(self, from_time: int,
                                            to_time: int) -> EndProductStatistics:
        """Aggregated end-product figures of items that arrived within [from_time, to_time]."""
        arrived = [wi for wi in self.work_items
                   if wi.has_moved_to_output_basket_between(from_time, to_time)]
        num_wis = len(arrived)
        norm_effort = sum(wi.value_chain.norm_effort for wi in arrived)
        elapsed_time = sum(wi.cycle_time_in_value_chain(0, to_time) for wi in arrived)
        net_value_add = sum(wi.value_chain.total_value_add for wi in arrived)
        discounted_value_add = sum(wi.materialized_value() for wi in arrived)
        return EndProductStatistics(
            num_wis=num_wis,
            norm_effort=norm_effort,
            elapsed_time=elapsed_time,
            net_value_add=net_value_add,
            discounted_value_add=discounted_value_add,
            avg_elapsed_time=elapsed_time / num_wis if num_wis > 0 else None,
        )

    def clear(self) -> None:
        self.work_items = []

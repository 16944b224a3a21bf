"""
sim/system.py - LobsterSystem Orchestrator

Owns the clock, the value chains, the output basket, the workers and their
assignments, the random generator and the receipt ledger of one simulated
system. Several systems can live side by side: nothing is global.

Per tick the phases run in a fixed order:
    1. advance the clock
    2. reset the process steps' flow counters
    3. let finished work items flow to the next holder
    4. inject the tick's work orders
    5. WIP limit search step (if switched on and a measurement period ended)
    6. refresh the work items' decision info
    7. workers learn & adapt and work, in a freshly shuffled order
    8. refresh the work items' decision info
    9. update the workers' utilization
"""

import logging
import random
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from receipts import emit_receipt, stoprule

from .clock import Clock
from .constants import DEFAULT_RANDOM_SEED
from .holders import OutputBasket, ProcessStep
from .selection import WeightedStrategy, reshuffled
from .statistics import system_statistics
from .types_config import Injection, LearnAndAdaptParms, WipLimitSearchParms
from .types_result import SystemStatistics
from .valuation import TimeValuationFct, net
from .value_chain import ValueChain
from .wip_search import WipLimitSearch
from .work_item import WorkOrder, work_item_id_generator, work_item_tag_generator
from .worker import Assignment, AssignmentSet, Worker

logger = logging.getLogger(__name__)

RECEIPT_SCHEMA = ["iteration", "wip_limits_set"]


class LobsterSystem:
    """One simulated system of value chains and workers on its own timeline."""

    def __init__(self, id: str,
                 random_seed: Optional[int] = DEFAULT_RANDOM_SEED,
                 learn_and_adapt_parms: LearnAndAdaptParms = LearnAndAdaptParms(),
                 wip_limit_search_parms: WipLimitSearchParms = WipLimitSearchParms()):
        self.id = id
        self.rng = random.Random(random_seed)
        self.receipt_ledger: List[dict] = []
        self.clock = Clock()
        self.id_gen = work_item_id_generator()
        self.tag_gen = work_item_tag_generator()
        self.output_basket = OutputBasket(self)
        self.value_chains: List[ValueChain] = []
        self.workers: List[Worker] = []
        self.assignment_set = AssignmentSet(f"{id}-assignments")
        self.learn_and_adapt_parms = learn_and_adapt_parms
        self.wip_limit_search = WipLimitSearch(self, wip_limit_search_parms)
        self._stats_cache: Dict[Tuple[int, int, int], SystemStatistics] = {}

    # =========================================================================
    # SETUP
    # =========================================================================

    def add_value_chain(self, id: str, total_value_add: float,
                        injection: Injection = Injection(),
                        value_degradation: TimeValuationFct = net) -> ValueChain:
        vc = ValueChain(self, id, total_value_add, injection, value_degradation)
        self.value_chains.append(vc)
        return vc

    def add_worker(self, id: str, weighted_strategies: Sequence[WeightedStrategy]) -> Worker:
        wo = Worker(self, id, weighted_strategies)
        self.workers.append(wo)
        return wo

    def assign(self, worker: Worker, vc_id: str, ps_id: str) -> Assignment:
        """
        Raises:
            StopRule: If the value chain or the process step is unknown
        """
        vc = self.value_chain(vc_id)
        if vc is None:
            stoprule("unknown_value_chain", f"Assignment of {worker.id}: value chain {vc_id} not found",
                     self.receipt_ledger, self.id, value_chain=vc_id)
        ps = vc.process_step(ps_id)
        if ps is None:
            stoprule("unknown_process_step",
                     f"Assignment of {worker.id}: process step {ps_id} not found in {vc_id}",
                     self.receipt_ledger, self.id, value_chain=vc_id, process_step=ps_id)
        assignment = Assignment(worker, vc, ps)
        self.assignment_set.add_assignment(assignment)
        return assignment

    def value_chain(self, id: str) -> Optional[ValueChain]:
        return next((vc for vc in self.value_chains if vc.id == id), None)

    def worker(self, id: str) -> Optional[Worker]:
        return next((wo for wo in self.workers if wo.id == id), None)

    def start(self) -> "LobsterSystem":
        """Run the initial empty iteration, taking the clock to its first iteration."""
        self.do_one_iteration([], self.wip_limit_search.parms.search_on_at_start)
        return self

    # =========================================================================
    # ITERATION
    # =========================================================================

    def do_one_iteration(self, work_orders: Sequence[WorkOrder],
                         optimize_wip_limits: Optional[bool] = None) -> "LobsterSystem":
        """
        Process one tick.

        Args:
            work_orders: Work orders to inject in this tick
            optimize_wip_limits: Switch the WIP limit search on or off; None keeps it as is

        Returns:
            self, with the updated state
        """
        for wo in work_orders:
            if wo.value_chain not in self.value_chains:
                stoprule("unknown_value_chain",
                         f"Work order for value chain {wo.value_chain.id} of another system",
                         self.receipt_ledger, self.id, value_chain=wo.value_chain.id)
        if optimize_wip_limits is not None:
            self.wip_limit_search.switch(optimize_wip_limits)

        now = self.clock.tick()

        for vc in self.value_chains:
            vc.reset_flow_counters()
        flowed = sum(vc.let_work_items_flow() for vc in self.value_chains)
        injected = [wo.value_chain.create_and_inject_new_work_item() for wo in work_orders]

        if self.wip_limit_search.is_active and self.wip_limit_search.is_due(now):
            self.wip_limit_search.step()

        self.refresh_decision_infos()
        worked = [worker.work(self.assignment_set) for worker in reshuffled(self.workers, self.rng)]
        self.refresh_decision_infos()
        for worker in self.workers:
            worker.update_utilization()

        emit_receipt("iteration", {
            "system_id": self.id,
            "time": now,
            "injected": sum(1 for wi in injected if wi is not None),
            "worked": sum(1 for wi in worked if wi is not None),
            "flowed": flowed,
            "output_basket_size": self.output_basket.inventory_size,
        }, self.receipt_ledger)
        return self

    def refresh_decision_infos(self) -> None:
        for vc in self.value_chains:
            vc.refresh_decision_infos()

    def work_orders_from_counts(self, counts: Dict[str, int]) -> List[WorkOrder]:
        """
        Raises:
            StopRule: If a value chain id is unknown
        """
        work_orders = []
        for vc_id, n in counts.items():
            vc = self.value_chain(vc_id)
            if vc is None:
                stoprule("unknown_value_chain", f"Work orders for unknown value chain {vc_id}",
                         self.receipt_ledger, self.id, value_chain=vc_id)
            work_orders.extend(WorkOrder(self.clock.time, vc) for _ in range(n))
        return work_orders

    def run(self, ticks: int, feeder=None) -> "LobsterSystem":
        """Run ticks iterations, injecting what the feeder yields (nothing without one)."""
        for _ in range(ticks):
            counts = feeder.next_work_order_counts() if feeder is not None else {}
            self.do_one_iteration(self.work_orders_from_counts(counts))
        return self

    # =========================================================================
    # WIP LIMITS
    # =========================================================================

    def set_wip_limits(self, wip_limits: Dict[Tuple[str, str], int]) -> None:
        """
        Set WIP limits by (value chain id, process step id); 0 or None means unlimited.

        Raises:
            StopRule: If a value chain or process step is unknown
        """
        for (vc_id, ps_id), limit in wip_limits.items():
            ps = self._process_step(vc_id, ps_id)
            ps.wip_limit = limit or 0
        emit_receipt("wip_limits_set", {
            "system_id": self.id,
            "time": self.clock.time,
            "wip_limits": {f"{vc_id}.{ps_id}": limit or 0
                           for (vc_id, ps_id), limit in wip_limits.items()},
        }, self.receipt_ledger)

    def _process_step(self, vc_id: str, ps_id: str) -> ProcessStep:
        vc = self.value_chain(vc_id)
        ps = vc.process_step(ps_id) if vc is not None else None
        if ps is None:
            stoprule("unknown_process_step", f"Process step {vc_id}.{ps_id} not found",
                     self.receipt_ledger, self.id, value_chain=vc_id, process_step=ps_id)
        return ps

    @property
    def wip_limits(self) -> Dict[Tuple[str, str], int]:
        return {(vc.id, ps.id): ps.wip_limit
                for vc in self.value_chains for ps in vc.process_steps}

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def system_statistics(self, from_time: int, to_time: int) -> SystemStatistics:
        logger.debug("system statistics of [%s, %s] at t=%s", from_time, to_time, self.clock.time)
        return system_statistics(self, from_time, to_time)

    def cached_system_statistics(self, from_time: int, to_time: int) -> SystemStatistics:
        """system_statistics() computed at most once per tick and window."""
        now = self.clock.time
        if any(key[0] != now for key in self._stats_cache):
            self._stats_cache.clear()
        key = (now, from_time, to_time)
        if key not in self._stats_cache:
            self._stats_cache[key] = self.system_statistics(from_time, to_time)
        return self._stats_cache[key]


def simulated_performance(sys: LobsterSystem, ticks: int, feeder=None,
                          kpi: Callable[[SystemStatistics], Optional[float]] =
                          lambda stats: stats.output_basket.economics.roce_fix) -> float:
    """
    Simulate ticks further and read a KPI of the simulated window.

    Usable as performance function of the peak search. An undefined KPI is 0.0.
    """
    from_time = sys.clock.time
    sys.run(ticks, feeder)
    value = kpi(sys.system_statistics(from_time, sys.clock.time))
    return value if value is not None else 0.0

"""
sim/snapshot.py - Read-Only State Snapshots

Frozen views of a LobsterSystem for rendering and export: resident work
items per process step, end products, worker states, the workers' learning
history and the flat lifecycle events of all end products.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class WorkItemState:
    id: int
    tag: Tuple[str, str]
    value_chain_id: str
    accumulated_effort: int        # in the current process step; in the value chain for end products
    elapsed_time: Optional[int]    # in the current process step; cycle time for end products


@dataclass(frozen=True)
class ProcessStepState:
    id: str
    norm_effort: int
    wip_limit: int
    flow: int                      # items that exited in the last tick
    work_items: Tuple[WorkItemState, ...]


@dataclass(frozen=True)
class ValueChainState:
    id: str
    value_add: float
    process_steps: Tuple[ProcessStepState, ...]


@dataclass(frozen=True)
class WorkerState:
    id: str
    utilization: float
    assignments: Tuple[Tuple[str, str], ...]
    strategy: str
    weighted_strategies: Tuple[Tuple[str, float], ...]


@dataclass(frozen=True)
class SystemState:
    id: str
    time: int
    value_chains: Tuple[ValueChainState, ...]
    output_basket: Tuple[WorkItemState, ...]
    workers: Tuple[WorkerState, ...]
    is_wip_limit_optimization_active: bool


def _resident_item(wi, now: int) -> WorkItemState:
    return WorkItemState(wi.id, wi.tag, wi.value_chain.id,
                         wi.accumulated_effort(now, wi.current_holder),
                         wi.elapsed_time_in_current_process_step)


def _end_product(wi, now: int) -> WorkItemState:
    return WorkItemState(wi.id, wi.tag, wi.value_chain.id,
                         wi.accumulated_effort(now),
                         wi.cycle_time_in_value_chain())


def system_state(sys) -> SystemState:
    now = sys.clock.time
    return SystemState(
        id=sys.id,
        time=now,
        value_chains=tuple(
            ValueChainState(vc.id, vc.total_value_add, tuple(
                ProcessStepState(ps.id, ps.norm_effort, ps.wip_limit, ps.last_iteration_flow_rate,
                                 tuple(_resident_item(wi, now) for wi in ps.work_items))
                for ps in vc.process_steps))
            for vc in sys.value_chains),
        output_basket=tuple(_end_product(wi, now) for wi in sys.output_basket.work_items),
        workers=tuple(
            WorkerState(
                id=wo.id,
                utilization=wo.utilization,
                assignments=tuple((a.value_chain.id, a.process_step.id)
                                  for a in sys.assignment_set.assignments_of(wo)),
                strategy=wo.current_strategy.id,
                weighted_strategies=tuple((ws.strategy.id, ws.weight)
                                          for ws in wo.current_weighted_strategies),
            )
            for wo in sys.workers),
        is_wip_limit_optimization_active=sys.wip_limit_search.is_active,
    )


def learning_statistics(sys) -> List[Dict[str, Any]]:
    """Per worker: the weighted strategies at every learn & adapt step."""
    return [{"worker": wo.id, "series": wo.stats_over_time} for wo in sys.workers]


def work_item_events(sys) -> List[Dict[str, Any]]:
    """Lifecycle events of all end products, in output basket order."""
    return sys.output_basket.lifecycle_events

"""
sim/statistics.py - Flow Statistics and Economics

Cycle time and throughput per process step and per value chain, derived
purely from the work items' process step exit events, plus the output
basket's economics: average working capital and return on capital employed.

A window [from_time, to_time] has length to_time - from_time. Figures that
need a positive length, finished items or non-zero working capital are None
when those are missing.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from .types_result import (
    CycleTime,
    Economics,
    EndProductStatistics,
    OutputBasketStatistics,
    ProcessStepStatistics,
    SystemStatistics,
    Throughput,
    ValueChainStatistics,
    WorkItemStatistics,
)
from .work_item import FlowExitEvent

# (elapsed time, value add) of one exit event
ElapsedTimeValueAdd = Tuple[float, float]


def _ratio(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    if numerator is None or not denominator:
        return None
    return numerator / denominator


def work_item_statistics(samples: Sequence[ElapsedTimeValueAdd], interval: int) -> WorkItemStatistics:
    has_calculated_stats = len(samples) > 0
    elapsed = np.array([et for et, _ in samples], dtype=float)
    value_add = float(sum(va for _, va in samples))
    throughput = Throughput(
        items_per_time_unit=_ratio(len(samples), interval) if interval > 0 else None,
        value_per_time_unit=_ratio(value_add, interval) if interval > 0 else None,
    )
    if has_calculated_stats:
        cycle_time = CycleTime(float(elapsed.min()), float(elapsed.mean()), float(elapsed.max()))
    else:
        cycle_time = CycleTime(None, None, None)
    return WorkItemStatistics(has_calculated_stats, throughput, cycle_time)


def process_step_statistics(events: Sequence[FlowExitEvent], vc, ps,
                            interval: int) -> ProcessStepStatistics:
    samples = [(ev.elapsed_time, vc.total_value_add) for ev in events
               if ev.value_chain is vc and ev.process_step_exited is ps]
    return ProcessStepStatistics(ps.id, work_item_statistics(samples, interval))


def _end_product_samples(events: Sequence[FlowExitEvent], output_basket,
                         vc=None) -> List[ElapsedTimeValueAdd]:
    return [(ev.finished_time - ev.injection_time, ev.value_chain.total_value_add)
            for ev in events
            if ev.holder_entered is output_basket and (vc is None or ev.value_chain is vc)]


def value_chain_statistics(events: Sequence[FlowExitEvent], vc, output_basket,
                           interval: int) -> ValueChainStatistics:
    return ValueChainStatistics(
        id=vc.id,
        stats=work_item_statistics(_end_product_samples(events, output_basket, vc), interval),
        process_steps=tuple(process_step_statistics(events, vc, ps, interval)
                            for ps in vc.process_steps),
    )


# =============================================================================
# ECONOMICS
# =============================================================================

def working_capital_at(sys, t: int) -> int:
    """Accumulated effort at t of all items that were inside a value chain at t."""
    items = [wi for vc in sys.value_chains for wi in vc.work_items] + sys.output_basket.work_items
    return sum(wi.accumulated_effort(t) for wi in items if wi.was_in_value_chain_at(t))


def avg_working_capital_between(sys, from_time: int, to_time: int) -> Optional[float]:
    """Time-average of the working capital over the timestamps in (from_time, to_time]."""
    interval = to_time - from_time
    if interval <= 0:
        return None
    return sum(working_capital_at(sys, t) for t in range(from_time + 1, to_time + 1)) / interval


def economics(sys, end_products: EndProductStatistics, from_time: int, to_time: int) -> Economics:
    """
    roce     = avg discounted value add / avg working capital
    roce_var = (avg discounted value add - avg norm effort) / avg working capital
    roce_fix = (avg discounted value add - number of workers) / avg working capital
    """
    interval = to_time - from_time
    avg_wc = avg_working_capital_between(sys, from_time, to_time)
    if interval <= 0:
        return Economics(end_products, avg_wc, None, None, None)
    avg_disc_value_add = end_products.discounted_value_add / interval
    avg_norm_effort = end_products.norm_effort / interval
    avg_fix_staff_cost = len(sys.workers)
    return Economics(
        end_products=end_products,
        avg_working_capital=avg_wc,
        roce=_ratio(avg_disc_value_add, avg_wc),
        roce_var=_ratio(avg_disc_value_add - avg_norm_effort, avg_wc),
        roce_fix=_ratio(avg_disc_value_add - avg_fix_staff_cost, avg_wc),
    )


# =============================================================================
# SYSTEM STATISTICS
# =============================================================================

def system_statistics(sys, from_time: int, to_time: int) -> SystemStatistics:
    """Statistics snapshot of the window [from_time, to_time]; reads, never mutates."""
    interval = to_time - from_time
    ob = sys.output_basket
    events = [ev for vc in sys.value_chains for ps in vc.process_steps
              for ev in ps.flow_stats(from_time, to_time)]
    events += ob.flow_stats(from_time, to_time)
    end_products = ob.stats_of_arrived_work_items_between(from_time, to_time)
    return SystemStatistics(
        timestamp=sys.clock.time,
        value_chains=tuple(value_chain_statistics(events, vc, ob, interval)
                           for vc in sys.value_chains),
        output_basket=OutputBasketStatistics(
            flow=work_item_statistics(_end_product_samples(events, ob), interval),
            economics=economics(sys, end_products, from_time, to_time),
        ),
    )

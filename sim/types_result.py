"""
sim/types_result.py - Statistics Dataclasses

Immutable statistics snapshots returned by LobsterSystem.system_statistics().
Fields that cannot be computed for a window (no finished items, zero-length
window, zero working capital) are None.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class CycleTime:
    min: Optional[float]
    avg: Optional[float]
    max: Optional[float]


@dataclass(frozen=True)
class Throughput:
    items_per_time_unit: Optional[float]
    value_per_time_unit: Optional[float]


@dataclass(frozen=True)
class WorkItemStatistics:
    has_calculated_stats: bool
    throughput: Throughput
    cycle_time: CycleTime


@dataclass(frozen=True)
class ProcessStepStatistics:
    id: str
    stats: WorkItemStatistics


@dataclass(frozen=True)
class ValueChainStatistics:
    id: str
    stats: WorkItemStatistics
    process_steps: Tuple[ProcessStepStatistics, ...]


@dataclass(frozen=True)
class EndProductStatistics:
    """End products that arrived in the output basket within a window."""
    num_wis: int
    norm_effort: float
    elapsed_time: float
    net_value_add: float
    discounted_value_add: float
    avg_elapsed_time: Optional[float]


@dataclass(frozen=True)
class Economics:
    end_products: EndProductStatistics
    avg_working_capital: Optional[float]
    roce: Optional[float]
    roce_var: Optional[float]
    roce_fix: Optional[float]


@dataclass(frozen=True)
class OutputBasketStatistics:
    flow: WorkItemStatistics
    economics: Economics


@dataclass(frozen=True)
class SystemStatistics:
    timestamp: int
    value_chains: Tuple[ValueChainStatistics, ...]
    output_basket: OutputBasketStatistics

"""
sim - Work Item Flow Simulation Package

Public API of the discrete-time simulation of value chains, workers and
their adaptive work item selection.
Flat, focused files. One file = one responsibility.
"""

# =============================================================================
# TYPES (Dataclasses)
# =============================================================================
from .types_config import (
    Injection,
    LearnAndAdaptParms,
    SuccessMeasure,
    WipLimitSearchParms,
)
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

# =============================================================================
# CONSTANTS
# =============================================================================
from .constants import (
    ElapsedTimeMode,
    LogEntryType,
    RECEIPT_SCHEMA,
    RANDOM_STRATEGY_ID,
    STRATEGY_WEIGHT_FLOOR,
)

# =============================================================================
# ENTITIES
# =============================================================================
from .clock import Clock
from .events import WipLimitSet, WorkerLearnedAndAdapted, WorkerWorked, WorkItemMoved, WorkItemWorkedOn
from .work_item import DecisionInfo, FlowExitEvent, WorkItem, WorkOrder, decision_info
from .holders import OutputBasket, ProcessStep, WorkItemBasketHolder
from .value_chain import ValueChain
from .worker import (
    Assignment,
    AssignmentSet,
    Worker,
    success_measure_ivc,
    success_measure_none,
    success_measure_roce,
)

# =============================================================================
# SELECTION & VALUATION
# =============================================================================
from .selection import (
    Metric,
    SelectionCriterion,
    SelectionStrategy,
    SortVector,
    WeightedStrategy,
    sort_vector,
)
from .valuation import discounted, expired, net, value_degradation_fct

# =============================================================================
# ORCHESTRATION
# =============================================================================
from .system import LobsterSystem, simulated_performance
from .feeder import WorkOrderFeeder
from .wip_search import WipLimitSearch
from .statistics import system_statistics
from .snapshot import SystemState, learning_statistics, system_state, work_item_events

__all__ = [
    # Types
    "Injection", "LearnAndAdaptParms", "SuccessMeasure", "WipLimitSearchParms",
    "CycleTime", "Economics", "EndProductStatistics", "OutputBasketStatistics",
    "ProcessStepStatistics", "SystemStatistics", "Throughput",
    "ValueChainStatistics", "WorkItemStatistics",
    # Constants
    "ElapsedTimeMode", "LogEntryType", "RECEIPT_SCHEMA", "RANDOM_STRATEGY_ID",
    "STRATEGY_WEIGHT_FLOOR",
    # Entities
    "Clock", "WipLimitSet", "WorkerLearnedAndAdapted", "WorkerWorked",
    "WorkItemMoved", "WorkItemWorkedOn", "DecisionInfo", "FlowExitEvent",
    "WorkItem", "WorkOrder", "decision_info", "OutputBasket", "ProcessStep",
    "WorkItemBasketHolder", "ValueChain", "Assignment", "AssignmentSet", "Worker",
    "success_measure_ivc", "success_measure_none", "success_measure_roce",
    # Selection & valuation
    "Metric", "SelectionCriterion", "SelectionStrategy", "SortVector",
    "WeightedStrategy", "sort_vector", "discounted", "expired", "net",
    "value_degradation_fct",
    # Orchestration
    "LobsterSystem", "simulated_performance", "WorkOrderFeeder", "WipLimitSearch",
    "system_statistics", "SystemState", "learning_statistics", "system_state",
    "work_item_events",
]

"""
sim/events.py - Log Entries

Immutable, timestamped facts. Work items, workers and process steps own
append-only logs of these; every derived value is computed from the logs.
Entries compare by identity: two moves at the same time are still two facts.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Tuple

from .constants import LogEntryType
from .selection import SelectionStrategy, WeightedStrategy


# =============================================================================
# WORK ITEM LOG
# =============================================================================

@dataclass(frozen=True, eq=False)
class WorkItemMoved:
    """Work item entered a holder; from_holder is None on injection."""
    log_entry_type: ClassVar[LogEntryType] = LogEntryType.WORK_ITEM_MOVED
    timestamp: int
    work_item: Any
    from_holder: Optional[Any]
    holder: Any

    def as_event(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "work_item_id": self.work_item.id,
            "event_type": self.log_entry_type.value,
            "value_chain_id": self.work_item.value_chain.id,
            "from_process_step_id": self.from_holder.id if self.from_holder is not None else None,
            "work_item_basket_holder_id": self.holder.id,
        }

    def __str__(self) -> str:
        src = self.from_holder.id if self.from_holder is not None else "-"
        return f"t={self.timestamp} moved wi={self.work_item.id} {src}=>{self.holder.id}"


@dataclass(frozen=True, eq=False)
class WorkItemWorkedOn:
    """A worker put one unit of effort into the work item at a process step."""
    log_entry_type: ClassVar[LogEntryType] = LogEntryType.WORK_ITEM_WORKED_ON
    timestamp: int
    work_item: Any
    holder: Any
    worker: Any

    def as_event(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "work_item_id": self.work_item.id,
            "event_type": self.log_entry_type.value,
            "value_chain_id": self.work_item.value_chain.id,
            "work_item_basket_holder_id": self.holder.id,
            "worker": self.worker.id,
        }

    def __str__(self) -> str:
        return (f"t={self.timestamp} workedOn wi={self.work_item.id} "
                f"ps={self.holder.id} worker={self.worker.id}")


# =============================================================================
# WORKER LOG
# =============================================================================

@dataclass(frozen=True, eq=False)
class WorkerWorked:
    log_entry_type: ClassVar[LogEntryType] = LogEntryType.WORKER_WORKED
    timestamp: int
    worker: Any


@dataclass(frozen=True, eq=False)
class WorkerLearnedAndAdapted:
    """Outcome of one observation period and the strategy chosen for the next."""
    log_entry_type: ClassVar[LogEntryType] = LogEntryType.WORKER_LEARNED_AND_ADAPTED
    timestamp: int
    worker: Any
    measurement: float
    adjusted_strategy: SelectionStrategy
    chosen_strategy: SelectionStrategy
    weighted_strategies: Tuple[WeightedStrategy, ...]

    def __str__(self) -> str:
        weights = ", ".join(f"{ws.strategy.id}: {ws.weight:.2g}" for ws in self.weighted_strategies)
        return (f"t={self.timestamp} {self.worker.id} measurement={self.measurement:.2g} "
                f"adjusted=[{self.adjusted_strategy.id}] chosen=[{self.chosen_strategy.id}] "
                f"weights: {weights}")


# =============================================================================
# PROCESS STEP LOG
# =============================================================================

@dataclass(frozen=True, eq=False)
class WipLimitSet:
    log_entry_type: ClassVar[LogEntryType] = LogEntryType.WIP_LIMIT_SET
    timestamp: int
    process_step: Any
    wip_limit: int

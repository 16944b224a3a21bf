"""
sim/constants.py - Simulation Constants and Event Kinds

All constants for the flow simulation. Centralized for tuning.
Pure data, no behavior.
"""

from enum import Enum

# =============================================================================
# CLOCK
# =============================================================================

TIME_UNIT = 1            # Interval by which the clock progresses per tick
DEFAULT_START_TIME = -1  # Clock time while a system is being set up

# =============================================================================
# LEARNING AND ADAPTATION
# =============================================================================

DEFAULT_OBSERVATION_PERIOD = 20   # Ticks between two learn & adapt steps
DEFAULT_ADJUSTMENT_FACTOR = 0.3   # Weight added/subtracted per adaptation
STRATEGY_WEIGHT_FLOOR = 0.01      # No strategy weight ever drops below this
RANDOM_STRATEGY_ID = "random"     # Strategy used when a worker has none configured

# =============================================================================
# WIP LIMIT OPTIMIZATION
# =============================================================================

DEFAULT_MEASUREMENT_PERIOD = 100
DEFAULT_WIP_LIMIT_UPPER_BOUNDARY_FACTOR = 2
FROZEN_TEMPERATURE = -1           # Marks a WIP limit search as switched off

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_RANDOM_SEED = 42
UNLIMITED_WIP = 0                 # A WIP limit of 0 means "no limit"

# Display tags for work items: lower = untouched, upper = worked on
WORK_ITEM_TAGS = [(c, c.upper()) for c in "abcdefghijklmnopqrstuvwxyz"]


# =============================================================================
# EVENT KINDS
# =============================================================================

class LogEntryType(Enum):
    """Kinds of entries in work item, worker and process step logs."""
    WORK_ITEM_MOVED = "moved"
    WORK_ITEM_WORKED_ON = "workedOn"
    WORKER_WORKED = "workerWorked"
    WORKER_LEARNED_AND_ADAPTED = "workerLearnedAndAdapted"
    WIP_LIMIT_SET = "wipLimitSet"


class ElapsedTimeMode(Enum):
    """How WorkItem.elapsed_time measures a span."""
    FIRST_TO_LAST_ENTRY = "firstToLastEntryFound"   # completed dwell time
    FIRST_ENTRY_TO_NOW = "firstEntryToNow"          # still in progress


# =============================================================================
# RECEIPT SCHEMA
# =============================================================================

RECEIPT_SCHEMA = [
    "iteration", "learned_and_adapted", "wip_limits_set",
    "wip_limit_search", "anomaly",
]

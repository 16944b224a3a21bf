"""
sim/types_config.py - Parameter Dataclasses

Immutable parameter sets for injection, learning & adaptation and the
WIP limit search. Frozen dataclasses, no behavior.
"""

from dataclasses import dataclass, field
from enum import Enum

from optimize import PeakSearchParms

from .constants import (
    DEFAULT_OBSERVATION_PERIOD,
    DEFAULT_ADJUSTMENT_FACTOR,
    STRATEGY_WEIGHT_FLOOR,
    DEFAULT_MEASUREMENT_PERIOD,
    DEFAULT_WIP_LIMIT_UPPER_BOUNDARY_FACTOR,
)


class SuccessMeasure(Enum):
    """How a worker measures the outcome of its current selection strategy."""
    IVC = "ivc"      # individual value contribution to end products
    ROCE = "roce"    # system-wide return on capital employed
    NONE = "none"    # no measurement, always 0


@dataclass(frozen=True)
class Injection:
    """Stochastic inflow of work orders into a value chain."""
    throughput: float = 1.0    # work orders accrued per tick
    probability: float = 1.0   # chance per tick that accrued orders are injected


@dataclass(frozen=True)
class LearnAndAdaptParms:
    """System-wide parameters for the workers' learning & adaptation loop."""
    observation_period: int = DEFAULT_OBSERVATION_PERIOD
    success_measure: SuccessMeasure = SuccessMeasure.NONE
    adjustment_factor: float = DEFAULT_ADJUSTMENT_FACTOR
    weight_floor: float = STRATEGY_WEIGHT_FLOOR


@dataclass(frozen=True)
class WipLimitSearchParms:
    """Parameters of the system's WIP limit optimization."""
    search: PeakSearchParms = field(default_factory=PeakSearchParms)
    measurement_period: int = DEFAULT_MEASUREMENT_PERIOD
    wip_limit_upper_boundary_factor: float = DEFAULT_WIP_LIMIT_UPPER_BOUNDARY_FACTOR
    search_on_at_start: bool = False

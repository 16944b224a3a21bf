"""
sim/wip_search.py - WIP Limit Optimization

Drives the peak search of optimize.py with the WIP limits of all process
steps as the position. Every measurement period the system's roce_fix over
the last period is the performance of the current WIP limits; the next
search state is written back as new WIP limits.

Switching the optimization off freezes the search (temperature -1);
switching it on again after a freeze starts a fresh search.
"""

import logging
import math
from dataclasses import replace
from typing import List, Optional

from optimize import (
    Direction,
    Position,
    PositionCache,
    SearchLog,
    SearchState,
    VectorDimension,
    VectorDimensionMapper,
    next_search_state,
)
from receipts import emit_receipt

from .constants import FROZEN_TEMPERATURE
from .types_config import WipLimitSearchParms

logger = logging.getLogger(__name__)

RECEIPT_SCHEMA = ["wip_limit_search"]


class WipLimitSearch:
    """WIP limit search state of one system."""

    def __init__(self, sys, parms: WipLimitSearchParms = WipLimitSearchParms()):
        self.sys = sys
        self.parms = parms
        self.log = SearchLog()
        self.cache = PositionCache()
        self.vdm: Optional[VectorDimensionMapper] = None
        self.state: Optional[SearchState] = None

    @property
    def is_active(self) -> bool:
        return self.state is not None and self.state.temperature >= 0

    @property
    def process_steps(self) -> List:
        return [ps for vc in self.sys.value_chains for ps in vc.process_steps]

    def upper_boundary(self, ps) -> int:
        """Upper WIP limit bound from the current limit, norm effort and assigned workers."""
        workers = self.sys.assignment_set.assigned_workers_to_process_step(ps)
        needed = math.ceil(len(workers) / ps.norm_effort) if ps.norm_effort > 0 else 1
        # never below the lower bound 1, also for steps nobody is assigned to
        return max(1, math.ceil(max(ps.wip_limit, needed) * self.parms.wip_limit_upper_boundary_factor))

    def initialize(self) -> None:
        """Fresh search starting at the current WIP limits, heading downwards."""
        self.cache.clear()
        self.vdm = VectorDimensionMapper([VectorDimension(ps, 1, self.upper_boundary(ps))
                                          for ps in self.process_steps])
        self.state = SearchState(position=self.position_from_wip_limits(),
                                 direction=Direction(self.vdm, [-1] * len(self.vdm)),
                                 temperature=self.parms.search.init_temperature,
                                 downhill_steps_count=0)
        self.set_wip_limits_from_position()
        logger.debug("WIP limit search initialized: %s", self.vdm)

    def freeze(self) -> None:
        if self.state is not None:
            self.state = replace(self.state, temperature=FROZEN_TEMPERATURE)

    def switch(self, on: bool) -> None:
        if on and not self.is_active:
            self.initialize()
        elif not on:
            self.freeze()

    def is_due(self, now: int) -> bool:
        return now > 0 and now % self.parms.measurement_period == 0

    def position_from_wip_limits(self) -> Position:
        """Current WIP limits as a position; unlimited reads as 1, values kept inside the bounds."""
        vec = []
        for vd in self.vdm.vds:
            limit = vd.dimension.wip_limit if vd.dimension.wip_limit > 0 else 1
            vec.append(min(max(limit, vd.min), vd.max))
        return self.cache.position(self.vdm, vec)

    def set_wip_limits_from_position(self) -> None:
        for vd, limit in zip(self.vdm.vds, self.state.position.vec):
            vd.dimension.wip_limit = limit

    def performance(self) -> float:
        """roce_fix over the last measurement period; undefined counts as 0.0."""
        now = self.sys.clock.time
        from_time = max(1, now - self.parms.measurement_period)
        roce_fix = self.sys.system_statistics(from_time, now).output_basket.economics.roce_fix
        return roce_fix if roce_fix is not None else 0.0

    def step(self) -> SearchState:
        """Measure the current WIP limits and move on to the next ones."""
        now = self.sys.clock.time
        self.state = replace(self.state, position=self.position_from_wip_limits())
        perf = self.performance()
        self.state = next_search_state(self.log, self.cache, lambda _: perf,
                                       self.parms.search, now, self.state, self.sys.rng)
        self.set_wip_limits_from_position()
        last = self.log.last
        emit_receipt("wip_limit_search", {
            "system_id": self.sys.id,
            "time": now,
            "position": list(last.position.vec),
            "performance": perf,
            "temperature": last.temperature,
            "downhill_steps_count": last.downhill_steps_count,
            "next_position": list(self.state.position.vec),
        }, self.sys.receipt_ledger)
        return self.state

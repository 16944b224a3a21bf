"""
sim/feeder.py - Work Order Feeder

Turns the injection parameters of every value chain into per-tick work
order counts. Each tick a value chain accrues its throughput; with the
injection probability the whole-numbered part of the accrued orders is
injected and the fractional remainder carried over.
"""

import math
import random
from typing import Dict, Optional

from .constants import DEFAULT_RANDOM_SEED
from .types_config import Injection


class WorkOrderFeeder:
    """Per value chain accrual state for stochastic work order injection."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random(DEFAULT_RANDOM_SEED)
        self.injections: Dict[str, Injection] = {}
        self.accrued: Dict[str, float] = {}

    @classmethod
    def for_system(cls, sys) -> "WorkOrderFeeder":
        """Feeder with the configured injection of every value chain, drawing from sys.rng."""
        feeder = cls(sys.rng)
        for vc in sys.value_chains:
            feeder.set_injection(vc.id, vc.injection)
        return feeder

    def set_injection(self, vc_id: str, injection: Injection) -> None:
        """Set or replace the injection of a value chain; accrued orders are kept."""
        self.injections[vc_id] = injection
        self.accrued.setdefault(vc_id, 0.0)

    def injection(self, vc_id: str) -> Optional[Injection]:
        return self.injections.get(vc_id)

    def next_work_order_counts(self) -> Dict[str, int]:
        """Number of work orders per value chain for the next tick."""
        counts = {}
        for vc_id, inj in self.injections.items():
            self.accrued[vc_id] += inj.throughput
            if self.rng.random() < inj.probability:
                n = math.floor(self.accrued[vc_id])
                self.accrued[vc_id] -= n
            else:
                n = 0
            counts[vc_id] = n
        return counts

"""
tests/conftest.py - Shared Fixtures

Small single-value-chain systems built in code, plus a helper advancing a
system by one tick with a number of new work orders.
"""

import pytest

from sim import (
    LearnAndAdaptParms,
    LobsterSystem,
    SelectionStrategy,
    WeightedStrategy,
    WipLimitSearchParms,
    sort_vector,
)

RANDOM = SelectionStrategy("random", ())
FIFO = SelectionStrategy("fifo", (sort_vector("elapsedTimeInValueChain", "maximum"),))
LIFO = SelectionStrategy("lifo", (sort_vector("elapsedTimeInValueChain", "minimum"),))


def build_system(norm_efforts=(1,), workers=1, strategies=(RANDOM,), value_add=100,
                 seed=42, learn_and_adapt_parms=LearnAndAdaptParms(),
                 wip_limit_search_parms=WipLimitSearchParms(), wip_limits=(),
                 system_id="test", start=True):
    """One value chain vc1 with process steps ps1..psN; every worker assigned to every step."""
    sys = LobsterSystem(system_id, seed, learn_and_adapt_parms, wip_limit_search_parms)
    vc = sys.add_value_chain("vc1", value_add)
    wip_limits = list(wip_limits) + [0] * (len(norm_efforts) - len(wip_limits))
    for i, (norm_effort, wip_limit) in enumerate(zip(norm_efforts, wip_limits), start=1):
        vc.add_process_step(f"ps{i}", norm_effort, wip_limit)
    for w in range(1, workers + 1):
        wo = sys.add_worker(f"w{w}", [WeightedStrategy(s, 1.0 / len(strategies)) for s in strategies])
        for ps in vc.process_steps:
            sys.assign(wo, "vc1", ps.id)
    return sys.start() if start else sys


def tick(sys, new_work_orders=0, vc_id="vc1", **kwargs):
    return sys.do_one_iteration(sys.work_orders_from_counts({vc_id: new_work_orders}), **kwargs)


@pytest.fixture
def system_factory():
    return build_system


@pytest.fixture
def advance():
    return tick


@pytest.fixture
def single_stage_system():
    """Started system: one process step with norm effort 1, one worker."""
    return build_system()


@pytest.fixture
def strategies():
    return {"random": RANDOM, "fifo": FIFO, "lifo": LIFO}

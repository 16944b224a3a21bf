"""
tests/test_worker.py - Tests for sim/worker.py

Validates:
- A worker works at most one unit per tick, only at assigned process steps
- Items at hand are listed once even with overlapping assignments
- Selection strategies decide which item is worked (FIFO vs LIFO)
- Learning & adaptation shifts weights by the measurement trend
- Success measures and utilization
"""

import pytest

from receipts import StopRule
from sim import (
    LearnAndAdaptParms,
    LobsterSystem,
    SuccessMeasure,
    WeightedStrategy,
    success_measure_ivc,
    success_measure_none,
    success_measure_roce,
)
from sim.worker import weight_adjustment


class TestWorking:

    def test_only_assigned_process_steps(self, strategies, advance):
        sys = LobsterSystem("assigned")
        vc = sys.add_value_chain("vc1", 100)
        vc.add_process_step("ps1", 1)
        vc.add_process_step("ps2", 1)
        worker = sys.add_worker("w1", [WeightedStrategy(strategies["random"], 1.0)])
        sys.assign(worker, "vc1", "ps2")
        sys.start()
        advance(sys, 1)
        advance(sys)
        advance(sys)
        wi = vc.process_steps[0].work_items[0]
        assert wi.accumulated_effort(sys.clock.time) == 0
        assert worker.worked_entries == []

    def test_overlapping_assignments_listed_once(self, system_factory, advance):
        sys = system_factory()
        worker = sys.workers[0]
        sys.assign(worker, "vc1", "ps1")
        advance(sys, 1)
        assert len(worker.work_items_at_hand(sys.assignment_set)) == 1

    def test_one_unit_per_tick(self, system_factory, advance):
        sys = system_factory(norm_efforts=(3,))
        advance(sys, 3)
        worker = sys.workers[0]
        assert len(worker.worked_entries) == 1
        assert worker.has_worked_at(1)
        assert worker.work(sys.assignment_set) is None

    def test_nothing_to_do(self, single_stage_system, advance):
        advance(single_stage_system)
        assert single_stage_system.workers[0].worked_entries == []

    def test_empty_strategies_halt(self):
        sys = LobsterSystem("empty")
        with pytest.raises(StopRule):
            sys.add_worker("w1", [])


class TestSelectionStrategies:
    """Norm effort 3; item A injected at tick 1, item B at tick 2."""

    def picked_at_tick_2(self, system_factory, advance, strategy):
        sys = system_factory(norm_efforts=(3,), workers=0)
        worker = sys.add_worker("w1", [WeightedStrategy(strategy, 1.0)])
        sys.assign(worker, "vc1", "ps1")
        advance(sys, 1)
        a = sys.value_chains[0].work_items[0]
        advance(sys, 1)
        b = next(wi for wi in sys.value_chains[0].work_items if wi is not a)
        return a, b, next(wi for wi in (a, b) if wi.has_been_worked_on_at(2))

    def test_fifo_picks_oldest(self, system_factory, advance, strategies):
        a, b, picked = self.picked_at_tick_2(system_factory, advance, strategies["fifo"])
        assert picked is a

    def test_lifo_picks_newest(self, system_factory, advance, strategies):
        a, b, picked = self.picked_at_tick_2(system_factory, advance, strategies["lifo"])
        assert picked is b


class TestLearnAndAdapt:

    def test_initial_weights_normalized(self, system_factory, strategies):
        sys = system_factory(strategies=(strategies["fifo"], strategies["lifo"]))
        worker = sys.workers[0]
        assert [ws.weight for ws in worker.current_weighted_strategies] == [0.5, 0.5]
        assert worker.current_strategy is strategies["fifo"]
        assert len(worker.learned_and_adapted_entries) == 1

    def test_improvement_raises_weight(self, system_factory, advance, strategies):
        parms = LearnAndAdaptParms(observation_period=2, success_measure=SuccessMeasure.IVC)
        sys = system_factory(strategies=(strategies["fifo"], strategies["lifo"]),
                             learn_and_adapt_parms=parms)
        advance(sys, 1)
        advance(sys)
        worker = sys.workers[0]
        entry = worker.learned_and_adapted_entries[-1]
        assert entry.timestamp == 2
        assert entry.measurement == 100
        assert entry.adjusted_strategy is strategies["fifo"]
        weights = {ws.strategy.id: ws.weight for ws in worker.current_weighted_strategies}
        assert weights["fifo"] == pytest.approx(0.8 / 1.3)
        assert weights["lifo"] == pytest.approx(0.5 / 1.3)
        receipts = [r for r in sys.receipt_ledger if r["receipt_type"] == "learned_and_adapted"]
        assert len(receipts) == 1
        assert receipts[0]["worker"] == "w1"

    def test_no_learning_between_periods(self, system_factory, advance):
        sys = system_factory(learn_and_adapt_parms=LearnAndAdaptParms(observation_period=5))
        for _ in range(4):
            advance(sys)
        assert len(sys.workers[0].learned_and_adapted_entries) == 1
        advance(sys)
        assert len(sys.workers[0].learned_and_adapted_entries) == 2

    def test_weights_invariant_over_long_run(self, system_factory, advance, strategies):
        parms = LearnAndAdaptParms(observation_period=3, success_measure=SuccessMeasure.ROCE)
        sys = system_factory(norm_efforts=(1, 2), workers=2,
                             strategies=tuple(strategies.values()), learn_and_adapt_parms=parms)
        for _ in range(60):
            advance(sys, 1)
        for worker in sys.workers:
            for entry in worker.learned_and_adapted_entries:
                assert sum(ws.weight for ws in entry.weighted_strategies) == pytest.approx(1.0)
                assert all(ws.weight >= parms.weight_floor - 1e-12
                           for ws in entry.weighted_strategies)

    def test_weight_adjustment(self):
        assert weight_adjustment(2.0, 1.0, 0.3) == 0.3
        assert weight_adjustment(1.0, 2.0, 0.3) == -0.3
        assert weight_adjustment(1.0, 1.0, 0.3) == 0.0

    def test_stats_over_time(self, system_factory, advance):
        sys = system_factory(learn_and_adapt_parms=LearnAndAdaptParms(observation_period=2))
        for _ in range(4):
            advance(sys)
        series = sys.workers[0].stats_over_time
        assert [s["timestamp"] for s in series] == [-1, 2, 4]
        assert series[0]["weights"] == [("random", 1.0)]


class TestSuccessMeasures:
    """Single stage scenario at tick 2: one end product worth 100."""

    @pytest.fixture
    def finished(self, single_stage_system, advance):
        advance(single_stage_system, 1)
        advance(single_stage_system)
        return single_stage_system

    def test_ivc(self, finished):
        assert success_measure_ivc(finished, finished.workers[0]) == 100

    def test_roce(self, finished):
        assert success_measure_roce(finished, finished.workers[0]) == pytest.approx(49.5)

    def test_none(self, finished):
        assert success_measure_none(finished, finished.workers[0]) == 0.0


class TestUtilization:

    def test_fraction_of_ticks_worked(self, single_stage_system, advance):
        worker = single_stage_system.workers[0]
        assert worker.utilization == 0.0
        advance(single_stage_system, 1)
        assert worker.utilization == 1.0
        advance(single_stage_system)
        assert worker.utilization == 0.5

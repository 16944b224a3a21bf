"""
tests/test_statistics.py - Tests for sim/statistics.py

Validates:
- Flow statistics of the single stage scenario over [0, 2]
- Empty windows report no cycle times and no economics
- Working capital counts effort of items inside a value chain
- roce, roce_var and roce_fix formulas
- Discounted value add of late end products
"""

import pytest

from sim import LobsterSystem, WeightedStrategy, value_degradation_fct
from sim.statistics import avg_working_capital_between, working_capital_at


@pytest.fixture
def finished(single_stage_system, advance):
    """Single stage scenario after tick 2: one end product, cycle time 1."""
    advance(single_stage_system, 1)
    advance(single_stage_system)
    return single_stage_system


class TestFlowStatistics:

    def test_value_chain(self, finished):
        vcs = finished.system_statistics(0, 2).value_chains[0]
        assert vcs.id == "vc1"
        assert vcs.stats.has_calculated_stats
        assert vcs.stats.throughput.items_per_time_unit == 0.5
        assert vcs.stats.throughput.value_per_time_unit == 50
        assert (vcs.stats.cycle_time.min, vcs.stats.cycle_time.avg, vcs.stats.cycle_time.max) == (1, 1, 1)

    def test_process_step(self, finished):
        pss = finished.system_statistics(0, 2).value_chains[0].process_steps[0]
        assert pss.id == "ps1"
        assert pss.stats.cycle_time.avg == 1
        assert pss.stats.throughput.items_per_time_unit == 0.5

    def test_output_basket_flow(self, finished):
        flow = finished.system_statistics(0, 2).output_basket.flow
        assert flow.throughput.items_per_time_unit == 0.5
        assert flow.cycle_time.max == 1

    def test_window_without_exits(self, single_stage_system, advance):
        advance(single_stage_system, 1)
        stats = single_stage_system.system_statistics(0, 1).value_chains[0].stats
        assert not stats.has_calculated_stats
        assert stats.cycle_time.avg is None
        assert stats.throughput.items_per_time_unit == 0.0

    def test_empty_window(self, finished):
        stats = finished.system_statistics(2, 2)
        assert stats.timestamp == 2
        assert stats.value_chains[0].stats.throughput.items_per_time_unit is None
        assert stats.output_basket.economics.roce is None
        assert stats.output_basket.economics.avg_working_capital is None

    def test_idempotent(self, finished):
        assert finished.system_statistics(0, 2) == finished.system_statistics(0, 2)

    def test_reading_does_not_mutate(self, finished):
        before = len(finished.output_basket.work_items[0].log)
        finished.system_statistics(0, 2)
        assert len(finished.output_basket.work_items[0].log) == before
        assert finished.clock.time == 2


class TestEconomics:

    def test_end_products(self, finished):
        ep = finished.system_statistics(0, 2).output_basket.economics.end_products
        assert ep.num_wis == 1
        assert ep.norm_effort == 1
        assert ep.elapsed_time == 1
        assert ep.net_value_add == 100
        assert ep.discounted_value_add == 100
        assert ep.avg_elapsed_time == 1

    def test_roce_figures(self, finished):
        eco = finished.system_statistics(0, 2).output_basket.economics
        assert eco.avg_working_capital == 1.0
        assert eco.roce == pytest.approx(50)
        assert eco.roce_var == pytest.approx(49.5)
        assert eco.roce_fix == pytest.approx(49)

    def test_no_end_products(self, single_stage_system, advance):
        advance(single_stage_system, 1)
        eco = single_stage_system.system_statistics(0, 1).output_basket.economics
        assert eco.end_products.num_wis == 0
        assert eco.end_products.avg_elapsed_time is None
        assert eco.roce == 0.0
        assert eco.roce_fix == pytest.approx(-1.0)

    def test_zero_working_capital(self, single_stage_system, advance):
        advance(single_stage_system)
        eco = single_stage_system.system_statistics(0, 1).output_basket.economics
        assert eco.avg_working_capital == 0.0
        assert eco.roce is None
        assert eco.roce_var is None
        assert eco.roce_fix is None

    def test_discounted_value_add(self, strategies, advance):
        sys = LobsterSystem("late")
        vc = sys.add_value_chain("vc1", 100, value_degradation=value_degradation_fct("discounted", 0.5))
        vc.add_process_step("ps1", 1)
        worker = sys.add_worker("w1", [WeightedStrategy(strategies["random"], 1.0)])
        sys.assign(worker, "vc1", "ps1")
        sys.start()
        advance(sys, 2)
        advance(sys)
        advance(sys)
        ep = sys.system_statistics(0, 3).output_basket.economics.end_products
        assert ep.num_wis == 2
        assert ep.net_value_add == 200
        assert ep.discounted_value_add == 150


class TestWorkingCapital:

    def test_effort_of_items_in_value_chain(self, finished):
        assert working_capital_at(finished, 0) == 0
        assert working_capital_at(finished, 1) == 1
        assert working_capital_at(finished, 2) == 1

    def test_end_products_leave_working_capital(self, finished, advance):
        advance(finished)
        assert working_capital_at(finished, 3) == 0

    def test_average(self, finished):
        assert avg_working_capital_between(finished, 0, 2) == 1.0
        assert avg_working_capital_between(finished, 2, 2) is None

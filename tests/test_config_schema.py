"""
tests/test_config_schema.py - Tests for config_schema.py

Validates:
- A configuration document builds value chains, strategies, workers
  and assignments
- Unknown metrics, criteria, value chains and process steps halt the load
- Unknown degradation functions and success measures heal with a warning
- JSON and YAML files load alike
"""

import copy
import json

import pytest
import yaml

from config_schema import load, system_from_config, validate
from receipts import StopRule
from sim import SuccessMeasure, WorkOrderFeeder

CONFIG = {
    "system_id": "blue-shop",
    "random_seed": 7,
    "value_chains": [{
        "value_chain_id": "blue",
        "value_add": 20,
        "injection": {"throughput": 0.5, "probability": 0.8},
        "value_degradation": {"function": "discounted", "argument": 0.1},
        "process_steps": [
            {"process_step_id": "design", "norm_effort": 2, "wip_limit": 3},
            {"process_step_id": "build", "norm_effort": 1},
        ],
    }],
    "globally_defined_workitem_selection_strategies": [
        {"id": "fifo", "strategy": [
            {"measure": "elapsedTimeInValueChain", "selection_criterion": "maximum"}]},
        {"id": "value", "strategy": [
            {"measure": "valueOfValueChain", "selection_criterion": "maximum"},
            {"measure": "remainingEffortInValueChain", "selection_criterion": "minimum"}]},
    ],
    "workers": [
        {"worker_id": "anna", "workitem_selection_strategies": ["fifo", "value"],
         "process_step_assignments": [{"value_chain_id": "blue", "process_steps_id": "design"}]},
        {"worker_id": "ben",
         "process_step_assignments": [{"value_chain_id": "blue", "process_steps_id": "build"}]},
    ],
    "learn_and_adapt_parms": {
        "observation_period": 10,
        "success_measure_function": "ivc",
        "adjustment_factor": 0.2,
    },
    "wip_limit_search_parms": {"measurement_period": 50, "initial_temperature": 30},
}


@pytest.fixture
def config():
    return copy.deepcopy(CONFIG)


class TestSystemFromConfig:

    def test_value_chains(self, config):
        sys = system_from_config(config)
        vc = sys.value_chain("blue")
        assert vc.total_value_add == 20
        assert vc.injection.throughput == 0.5
        assert vc.injection.probability == 0.8
        assert [ps.id for ps in vc.process_steps] == ["design", "build"]
        assert vc.process_step("design").wip_limit == 3
        assert vc.process_step("build").wip_limit == 0
        assert vc.value_degradation(100, 1) == pytest.approx(90)

    def test_workers_and_strategies(self, config):
        sys = system_from_config(config)
        anna, ben = sys.worker("anna"), sys.worker("ben")
        assert [(ws.strategy.id, ws.weight) for ws in anna.current_weighted_strategies] == [
            ("fifo", 0.5), ("value", 0.5)]
        assert len(anna.current_weighted_strategies[1].strategy.svs) == 2
        assert [ws.strategy.id for ws in ben.current_weighted_strategies] == ["random"]
        assert [a.process_step.id for a in sys.assignment_set.assignments_of(ben)] == ["build"]

    def test_parameters(self, config):
        sys = system_from_config(config)
        assert sys.learn_and_adapt_parms.observation_period == 10
        assert sys.learn_and_adapt_parms.success_measure is SuccessMeasure.IVC
        assert sys.learn_and_adapt_parms.adjustment_factor == 0.2
        assert sys.wip_limit_search.parms.measurement_period == 50
        assert sys.wip_limit_search.parms.search.init_temperature == 30

    def test_clock_left_at_start(self, config):
        sys = system_from_config(config)
        assert sys.clock.time == -1
        assert sys.start().clock.time == 0

    def test_config_loaded_receipt(self, config):
        sys = system_from_config(config)
        receipt = sys.receipt_ledger[-1]
        assert receipt["receipt_type"] == "config_loaded"
        assert receipt["workers"] == ["anna", "ben"]
        assert receipt["strategies"] == ["fifo", "value"]


class TestFailFast:

    def test_unknown_measure(self, config):
        config["globally_defined_workitem_selection_strategies"][0]["strategy"][0]["measure"] = "shoeSize"
        with pytest.raises(StopRule):
            system_from_config(config)

    def test_unknown_criterion(self, config):
        config["globally_defined_workitem_selection_strategies"][0]["strategy"][0][
            "selection_criterion"] = "median"
        with pytest.raises(StopRule):
            system_from_config(config)

    def test_unknown_value_chain(self, config):
        config["workers"][0]["process_step_assignments"][0]["value_chain_id"] = "red"
        with pytest.raises(StopRule):
            system_from_config(config)

    def test_unknown_process_step(self, config):
        config["workers"][0]["process_step_assignments"][0]["process_steps_id"] = "paint"
        with pytest.raises(StopRule):
            system_from_config(config)

    def test_missing_workers(self, config):
        del config["workers"]
        assert validate(config)
        with pytest.raises(StopRule, match="workers"):
            system_from_config(config)

    def test_valid_document(self, config):
        assert validate(config) == []


class TestSelfHealing:

    def test_unknown_value_degradation(self, config):
        config["value_chains"][0]["value_degradation"]["function"] = "exponential"
        with pytest.warns(UserWarning, match="exponential"):
            sys = system_from_config(config)
        assert sys.value_chain("blue").value_degradation(100, 1000) == 100

    def test_unknown_success_measure(self, config):
        config["learn_and_adapt_parms"]["success_measure_function"] = "happiness"
        with pytest.warns(UserWarning, match="happiness"):
            sys = system_from_config(config)
        assert sys.learn_and_adapt_parms.success_measure is SuccessMeasure.NONE

    def test_unknown_strategy_skipped(self, config):
        config["workers"][0]["workitem_selection_strategies"] = ["fifo", "lifo"]
        with pytest.warns(UserWarning, match="lifo"):
            sys = system_from_config(config)
        assert [ws.strategy.id for ws in sys.worker("anna").current_weighted_strategies] == ["fifo"]


class TestLoad:

    def test_json(self, config, tmp_path):
        path = tmp_path / "system.json"
        path.write_text(json.dumps(config))
        assert load(path).id == "blue-shop"

    def test_yaml(self, config, tmp_path):
        path = tmp_path / "system.yaml"
        path.write_text(yaml.safe_dump(config))
        sys = load(str(path))
        assert [wo.id for wo in sys.workers] == ["anna", "ben"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load(tmp_path / "absent.yaml")

    def test_loaded_system_runs(self, config):
        sys = system_from_config(config).start()
        sys.run(30, WorkOrderFeeder.for_system(sys))
        assert sys.clock.time == 30

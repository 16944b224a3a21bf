"""
config_schema.py - System Configuration Loading

Turns a configuration document (JSON/YAML file or dict) into a ready
LobsterSystem: value chains with their process steps, workers with their
selection strategies and assignments, learning & adaptation parameters and
WIP limit search parameters.

Design Principles:
- Validated: the document is checked against a Draft 2020-12 JSON Schema
- Fail fast: unknown metrics, selection criteria, value chains or process
  steps halt the load before any tick runs (StopRule)
- Self-healing: unknown value degradation or success measure names fall
  back to "net" / "none" with a warning
- Resolved once: every name is turned into its enum or object at load time
"""

import json
import logging
import warnings
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from jsonschema import Draft202012Validator

from optimize import PeakSearchParms
from receipts import emit_receipt, stoprule
from sim.constants import DEFAULT_RANDOM_SEED, RANDOM_STRATEGY_ID
from sim.selection import SelectionStrategy, WeightedStrategy, sort_vector
from sim.system import LobsterSystem
from sim.types_config import Injection, LearnAndAdaptParms, SuccessMeasure, WipLimitSearchParms
from sim.valuation import net, value_degradation_fct

logger = logging.getLogger(__name__)

__all__ = [
    "load",
    "system_from_config",
    "validate",
    "JSON_SCHEMA",
]

RECEIPT_SCHEMA = ["config_loaded"]


# =============================================================================
# JSON Schema Definition (Draft 2020-12)
# =============================================================================

_POSITIVE_NUMBER = {"type": "number", "exclusiveMinimum": 0}

JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "LobsterSystemConfig",
    "description": "Value chains, workers and learning parameters of a flow simulation",
    "type": "object",
    "required": ["system_id", "value_chains", "workers"],
    "properties": {
        "system_id": {"type": "string", "minLength": 1},
        "random_seed": {"type": ["integer", "null"]},
        "value_chains": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["value_chain_id", "value_add", "process_steps"],
                "properties": {
                    "value_chain_id": {"type": "string"},
                    "value_add": {"type": "number"},
                    "injection": {
                        "type": "object",
                        "properties": {
                            "throughput": {"type": "number", "minimum": 0},
                            "probability": {"type": "number", "minimum": 0, "maximum": 1},
                        },
                    },
                    "value_degradation": {
                        "type": "object",
                        "properties": {
                            "function": {"type": "string"},
                            "argument": {"type": "number"},
                        },
                    },
                    "process_steps": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "required": ["process_step_id", "norm_effort"],
                            "properties": {
                                "process_step_id": {"type": "string"},
                                "norm_effort": {"type": "integer", "minimum": 0},
                                "wip_limit": {"type": ["integer", "null"], "minimum": 0},
                            },
                        },
                    },
                },
            },
        },
        "globally_defined_workitem_selection_strategies": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "strategy"],
                "properties": {
                    "id": {"type": "string"},
                    "strategy": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["measure", "selection_criterion"],
                            "properties": {
                                "measure": {"type": "string"},
                                "selection_criterion": {"type": "string"},
                            },
                        },
                    },
                },
            },
        },
        "workers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["worker_id", "process_step_assignments"],
                "properties": {
                    "worker_id": {"type": "string"},
                    "workitem_selection_strategies": {"type": "array", "items": {"type": "string"}},
                    "process_step_assignments": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["value_chain_id", "process_steps_id"],
                            "properties": {
                                "value_chain_id": {"type": "string"},
                                "process_steps_id": {"type": "string"},
                            },
                        },
                    },
                },
            },
        },
        "learn_and_adapt_parms": {
            "type": "object",
            "properties": {
                "observation_period": {"type": "integer", "minimum": 1},
                "success_measure_function": {"type": "string"},
                "adjustment_factor": {"type": "number"},
            },
        },
        "wip_limit_search_parms": {
            "type": "object",
            "properties": {
                "initial_temperature": _POSITIVE_NUMBER,
                "cooling_gradient": {"type": "number", "minimum": 0},
                "degrees_per_downhill_step_tolerance": _POSITIVE_NUMBER,
                "initial_jump_distance": _POSITIVE_NUMBER,
                "measurement_period": {"type": "integer", "minimum": 1},
                "wip_limit_upper_boundary_factor": _POSITIVE_NUMBER,
                "search_on_at_start": {"type": "boolean"},
                "verbose": {"type": "boolean"},
            },
        },
    },
}

# Compiled once at import
Draft202012Validator.check_schema(JSON_SCHEMA)
_VALIDATOR = Draft202012Validator(JSON_SCHEMA)


# =============================================================================
# Module-Level Functions
# =============================================================================

def load(path: Union[str, Path]) -> LobsterSystem:
    """
    Load a system from a JSON or YAML configuration file.

    Raises:
        FileNotFoundError: If path doesn't exist
        StopRule: If the configuration is invalid
    """
    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(f"System config file not found: {path}")
    content = path_obj.read_text()
    if path_obj.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(content)
    else:
        data = json.loads(content)
    return system_from_config(data)


def validate(data: Dict[str, Any]) -> List[str]:
    """Schema violations of a configuration document, empty if valid."""
    return [f"{'/'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in _VALIDATOR.iter_errors(data)]


def system_from_config(data: Dict[str, Any]) -> LobsterSystem:
    """
    Build a LobsterSystem from a configuration document.

    The clock is left at its start time; call start() to run the initial
    empty iteration.

    Raises:
        StopRule: If the document violates the schema or references
                  unknown metrics, criteria, value chains or process steps
    """
    errors = validate(data)
    if errors:
        stoprule("config_schema_violation",
                 "System configuration invalid:\n" + "\n".join(f"  - {e}" for e in errors),
                 errors=errors)

    sys = LobsterSystem(
        data["system_id"],
        random_seed=data.get("random_seed", DEFAULT_RANDOM_SEED),
        learn_and_adapt_parms=_learn_and_adapt_parms(data.get("learn_and_adapt_parms") or {}),
        wip_limit_search_parms=_wip_limit_search_parms(data.get("wip_limit_search_parms") or {}),
    )

    for vcj in data["value_chains"]:
        vc = sys.add_value_chain(vcj["value_chain_id"], vcj["value_add"],
                                 _injection(vcj.get("injection")),
                                 _value_degradation(vcj.get("value_degradation")))
        for psj in vcj["process_steps"]:
            vc.add_process_step(psj["process_step_id"], psj["norm_effort"], psj.get("wip_limit") or 0)

    strategies = {sj["id"]: SelectionStrategy(
                      sj["id"], tuple(sort_vector(svj["measure"], svj["selection_criterion"])
                                      for svj in sj["strategy"]))
                  for sj in data.get("globally_defined_workitem_selection_strategies", [])}

    for woj in data["workers"]:
        worker = sys.add_worker(woj["worker_id"],
                                _weighted_strategies(woj, strategies))
        for psaj in woj["process_step_assignments"]:
            sys.assign(worker, psaj["value_chain_id"], psaj["process_steps_id"])

    emit_receipt("config_loaded", {
        "system_id": sys.id,
        "value_chains": [vc.id for vc in sys.value_chains],
        "workers": [wo.id for wo in sys.workers],
        "strategies": sorted(strategies),
        "success_measure": sys.learn_and_adapt_parms.success_measure.value,
    }, sys.receipt_ledger)
    logger.debug("system %s created from configuration", sys.id)
    return sys


# =============================================================================
# Internal Resolution Functions
# =============================================================================

def _injection(inj: Dict[str, Any] = None) -> Injection:
    inj = inj or {}
    return Injection(throughput=inj.get("throughput") or 1, probability=inj.get("probability") or 1)


def _value_degradation(vd: Dict[str, Any] = None):
    """Bind the degradation function; unknown or missing names heal to net."""
    if not vd:
        return net
    fct = value_degradation_fct(vd.get("function"), vd.get("argument", 0))
    if fct is None:
        warnings.warn(f"LobsterSystemConfig: value degradation function \"{vd.get('function')}\" "
                      f"unknown; resorting to \"net\"", UserWarning, stacklevel=3)
        return net
    return fct


def _success_measure(name: str) -> SuccessMeasure:
    try:
        return SuccessMeasure(name)
    except ValueError:
        warnings.warn(f"LobsterSystemConfig: success measure function \"{name}\" unknown; "
                      f"resorting to \"none\"", UserWarning, stacklevel=3)
        return SuccessMeasure.NONE


def _learn_and_adapt_parms(laj: Dict[str, Any]) -> LearnAndAdaptParms:
    defaults = LearnAndAdaptParms()
    return LearnAndAdaptParms(
        observation_period=laj.get("observation_period") or defaults.observation_period,
        success_measure=_success_measure(laj.get("success_measure_function") or "none"),
        adjustment_factor=laj.get("adjustment_factor") or defaults.adjustment_factor,
    )


def _wip_limit_search_parms(wlj: Dict[str, Any]) -> WipLimitSearchParms:
    psp = PeakSearchParms()
    defaults = WipLimitSearchParms()
    return WipLimitSearchParms(
        search=PeakSearchParms(
            init_temperature=wlj.get("initial_temperature", psp.init_temperature),
            temperature_cooling_gradient=wlj.get("cooling_gradient", psp.temperature_cooling_gradient),
            degrees_per_downhill_step_tolerance=wlj.get("degrees_per_downhill_step_tolerance",
                                                        psp.degrees_per_downhill_step_tolerance),
            init_jump_distance=wlj.get("initial_jump_distance", psp.init_jump_distance),
            verbose=wlj.get("verbose", psp.verbose),
        ),
        measurement_period=wlj.get("measurement_period", defaults.measurement_period),
        wip_limit_upper_boundary_factor=wlj.get("wip_limit_upper_boundary_factor",
                                                defaults.wip_limit_upper_boundary_factor),
        search_on_at_start=wlj.get("search_on_at_start", defaults.search_on_at_start),
    )


def _weighted_strategies(woj: Dict[str, Any],
                         strategies: Dict[str, SelectionStrategy]) -> List[WeightedStrategy]:
    """Equally weighted strategies of a worker; random if none are configured or known."""
    weighted = []
    for sid in woj.get("workitem_selection_strategies") or []:
        if sid in strategies:
            weighted.append(WeightedStrategy(strategies[sid], 1.0))
        else:
            warnings.warn(f"LobsterSystemConfig: worker \"{woj['worker_id']}\" refers to unknown "
                          f"strategy \"{sid}\"; ignored", UserWarning, stacklevel=3)
    if not weighted:
        return [WeightedStrategy(SelectionStrategy(RANDOM_STRATEGY_ID, ()), 1.0)]
    return [WeightedStrategy(ws.strategy, 1.0 / len(weighted)) for ws in weighted]

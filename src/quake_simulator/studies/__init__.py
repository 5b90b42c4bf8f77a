"""
Studies framework: parameter sweeps over headless runs.

These helpers avoid coupling to engine internals. All simulations are
executed via `quake_simulator.core.engine.run_simulation`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple
import copy
import re

import yaml

from quake_simulator.config.models import SimulationConfig

_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _check_key(key: str) -> str:
    key = key.strip()
    if not _KEY_RE.fullmatch(key):
        raise ValueError(f"Invalid parameter name: {key!r}")
    if key not in SimulationConfig.model_fields:
        known = ", ".join(sorted(SimulationConfig.model_fields))
        raise KeyError(f"Unknown parameter {key!r}. Known parameters: {known}")
    return key


def get_by_path(cfg: Dict[str, Any], path: str) -> Any:
    """Get a config value, falling back to the engine default."""
    key = _check_key(path)
    if key in cfg:
        return cfg[key]
    return merge_with_engine_defaults(cfg)[key]


def set_by_path(cfg: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """Return a deep-copied cfg with parameter `path` set to `value`."""
    key = _check_key(path)
    new_cfg = copy.deepcopy(cfg)
    new_cfg[key] = value
    return new_cfg


def parse_assignment(text: str) -> Tuple[str, Any]:
    """
    Parse 'key=value' overrides:
      - 'n_blocks=20' -> ('n_blocks', 20)
      - 'method=rk4' -> ('method', 'rk4')
      - 'seed=null' -> ('seed', None)
    Values go through YAML so numbers and null keep their types.
    """
    if "=" not in text:
        raise ValueError(f"Override {text!r} must look like key=value")
    key, raw = text.split("=", 1)
    return _check_key(key), yaml.safe_load(raw)


def apply_overrides(cfg: Dict[str, Any], assignments: List[str]) -> Dict[str, Any]:
    new_cfg = copy.deepcopy(cfg)
    for text in assignments:
        key, value = parse_assignment(text)
        new_cfg = set_by_path(new_cfg, key, value)
    return new_cfg


def merge_with_engine_defaults(cfg_overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge user overrides with engine defaults, returning a full config dict.
    """
    from quake_simulator.core.engine import get_default_simulation_params

    base = get_default_simulation_params()
    base.update(copy.deepcopy(cfg_overrides))
    return base


def parse_floats_csv(s: str) -> List[float]:
    """Parse '1,2,3' or '1 2 3' into list of floats."""
    parts = re.split(r"[,\s]+", (s or "").strip())
    return [float(p) for p in parts if p]

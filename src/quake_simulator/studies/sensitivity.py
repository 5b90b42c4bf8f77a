"""
Single-parameter sensitivity and integrator comparison studies.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from quake_simulator.config.models import IntegrationMethod
from quake_simulator.core.events import detect_slip_events, event_statistics

from . import get_by_path, merge_with_engine_defaults, set_by_path

SimFunc = Callable[..., pd.DataFrame]


def summarize_run(df: pd.DataFrame, *, event_threshold: float = 1e-3) -> Dict[str, float]:
    """Scalar response of one headless run."""
    if df.empty:
        return {
            "peak_kinetic": float("nan"),
            "final_potential": float("nan"),
            "max_x": float("nan"),
            "n_events": 0,
            "energy_released": 0.0,
        }
    stats = event_statistics(detect_slip_events(df, "E_kin", event_threshold))
    return {
        "peak_kinetic": float(np.nanmax(df["E_kin"].to_numpy(dtype=float))),
        "final_potential": float(df["E_pot"].iloc[-1]),
        "max_x": float(df["Max_x"].iloc[-1]),
        "n_events": stats["n_events"],
        "energy_released": stats["total_energy_released"],
    }


def run_sensitivity_study(
    cfg_overrides: Dict[str, Any],
    *,
    param_path: str,
    values: Iterable[Any],
    frames: int = 600,
    frame_time: float = 1.0 / 60.0,
    event_threshold: float = 1e-3,
    simulate_func: Optional[SimFunc] = None,
) -> pd.DataFrame:
    """
    Sweep one parameter over `values` and summarize the response.

    Each value gets a fresh simulation; set `seed` in `cfg_overrides` for
    identical friction draws across the sweep.
    """
    if simulate_func is None:
        from quake_simulator.core.engine import run_simulation as simulate_func  # type: ignore

    base_full = merge_with_engine_defaults(cfg_overrides)
    base_value = get_by_path(base_full, param_path)

    rows: List[Dict[str, Any]] = []
    for v in values:
        cfg = set_by_path(base_full, param_path, v)
        df = simulate_func(cfg, frames=frames, frame_time=frame_time)
        rows.append(
            {
                "param_path": param_path,
                "base_value": base_value,
                "param_value": v,
                **summarize_run(df, event_threshold=event_threshold),
            }
        )

    return pd.DataFrame(rows)


def run_method_comparison(
    cfg_overrides: Dict[str, Any],
    *,
    methods: Optional[Iterable[IntegrationMethod | str]] = None,
    frames: int = 600,
    frame_time: float = 1.0 / 60.0,
    event_threshold: float = 1e-3,
    simulate_func: Optional[SimFunc] = None,
) -> pd.DataFrame:
    """Run the same configuration under each integration method."""
    if methods is None:
        methods = list(IntegrationMethod)
    values = [IntegrationMethod(m).value for m in methods]
    summary = run_sensitivity_study(
        cfg_overrides,
        param_path="method",
        values=values,
        frames=frames,
        frame_time=frame_time,
        event_threshold=event_threshold,
        simulate_func=simulate_func,
    )
    return summary.drop(columns=["param_path", "base_value"]).rename(columns={"param_value": "method"})

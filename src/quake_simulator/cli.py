# src/quake_simulator/cli.py

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import typer
import yaml

from .config.loader import ConfigError, build_simulation_config, load_raw_config
from .core.engine import SimulationConstants, run_simulation
from .core.events import detect_slip_events, event_statistics
from .studies import apply_overrides

app = typer.Typer(
    add_completion=False,
    help=(
        "Stick-slip block chain simulator CLI\n\n"
        "Run the spring-block earthquake model headless and inspect its\n"
        "energy time series and slip events. Use 'run' for a single\n"
        "configuration, 'sensitivity' for a parameter sweep and\n"
        "'compare-methods' to contrast the integrators."
    ),
)

ENERGY_COLUMNS = ("E_kin", "E_pot")


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _setup_logging(level: str) -> logging.Logger:
    """
    Send package log records to stderr at the requested level.
    """
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level '{level}'.")

    logger = logging.getLogger("quake_simulator")
    logger.setLevel(numeric)
    logger.handlers.clear()
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def _load_config(path: Optional[Path]) -> Dict[str, Any]:
    """Load a YAML or JSON configuration file into a dict ({} if no file)."""
    if path is None:
        return {}
    try:
        return load_raw_config(path)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _resolve_params(
    config: Optional[Path],
    overrides: Optional[List[str]],
    method: Optional[str],
    seed: Optional[int],
) -> Dict[str, Any]:
    params = _load_config(config)
    try:
        params = apply_overrides(params, overrides or [])
    except (KeyError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    if method is not None:
        params["method"] = method
    if seed is not None:
        params["seed"] = seed
    try:
        build_simulation_config(params, filename=config.name if config else "<cli>")
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return params


def _parse_values(text: str) -> List[Any]:
    """
    Parse "0.2,0.4,0.8" or "euler leapfrog" into typed values.
    """
    tokens = [t for t in text.replace(",", " ").split() if t]
    if not tokens:
        raise typer.BadParameter("Empty --values list.")
    return [yaml.safe_load(t) for t in tokens]


def _ascii_plot(
    x: np.ndarray,
    y: np.ndarray,
    y_label: str,
    x_label: str,
    width: int = 70,
    height: int = 20,
) -> str:
    """
    Very simple ASCII plot: x ∈ [min, max], y ∈ [min(0, y), max].
    """
    if len(x) == 0 or len(y) == 0:
        return ""

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    x_min = float(np.min(x))
    x_max = float(np.max(x))
    if x_max <= x_min:
        x_min, x_max = 0.0, 1.0

    y_min = min(0.0, float(np.nanmin(y)))
    y_max = float(np.nanmax(y))
    if y_max <= y_min:
        y_max = y_min + 1.0

    grid = [[" " for _ in range(width)] for _ in range(height)]

    for xi, yi in zip(x, y):
        if not np.isfinite(yi):
            continue
        cx = (xi - x_min) / (x_max - x_min + 1e-12)
        cy = (yi - y_min) / (y_max - y_min + 1e-12)
        col = int(cx * (width - 1))
        row = int(cy * (height - 1))
        row_idx = height - 1 - row
        if 0 <= row_idx < height and 0 <= col < width:
            grid[row_idx][col] = "*"

    lines = [f"# {y_label} ({y_min:.3g} – {y_max:.3g})"]
    for r in grid:
        lines.append("".join(r).rstrip())
    lines.append(f"# {x_label} ({x_min:.3g} – {x_max:.3g})")
    return "\n".join(lines)


def _print_run_summary(df: pd.DataFrame, wall_time: float, events: pd.DataFrame) -> None:
    simulated = float(df["Time_s"].iloc[-1]) if len(df) else 0.0
    stats = event_statistics(events)

    typer.echo("")
    typer.echo("Run summary:")
    typer.echo(f"  Integrator            : {df.attrs.get('method', '?')}")
    typer.echo(f"  Blocks                : {df.attrs.get('n_blocks', '?')}")
    typer.echo(f"  Frames                : {len(df)}")
    typer.echo(f"  Substeps              : {int(df['Substeps'].sum()) if len(df) else 0}")
    typer.echo(f"  Simulated time        : {simulated:.4f} s")
    typer.echo(f"  Wall-clock time       : {wall_time:.3f} s")
    if len(df):
        typer.echo(f"  Max x reached         : {df['Max_x'].iloc[-1]:.4f}")
        typer.echo(f"  Peak kinetic energy   : {df['E_kin'].max():.4f}")
        typer.echo(f"  Final potential energy: {df['E_pot'].iloc[-1]:.4f}")
    typer.echo(f"  Slip events           : {stats['n_events']}")
    typer.echo(f"  Energy released       : {stats['total_energy_released']:.4f}")


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


@app.command()
def run(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML/JSON configuration file (blocks, springs, friction, integrator).",
    ),
    overrides: Optional[List[str]] = typer.Option(
        None,
        "--set",
        "-s",
        help="Override a parameter, e.g. --set n_blocks=20 --set distribution=uniform.",
    ),
    method: Optional[str] = typer.Option(
        None,
        "--method",
        "-m",
        help="Integrator: euler, rungekutta (rk4) or leapfrog.",
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed of the friction generator."),
    frames: int = typer.Option(SimulationConstants.FRAMES, "--frames", "-n", min=1, help="Frames to run."),
    frame_time: float = typer.Option(
        SimulationConstants.FRAME_TIME,
        "--frame-time",
        help="Wall-clock seconds per frame.",
    ),
    event_threshold: float = typer.Option(
        1e-3,
        "--event-threshold",
        help="Kinetic energy above which a frame belongs to a slip event.",
    ),
    ascii_plot: bool = typer.Option(
        False,
        "--ascii-plot",
        help="Print an ASCII plot of an energy series vs time.",
    ),
    quantity: str = typer.Option("E_kin", "--quantity", "-q", help="Series for --ascii-plot (E_kin or E_pot)."),
    show_events: bool = typer.Option(False, "--events", help="Print the slip event catalogue."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, ...)."),
) -> None:
    """
    Run a single headless simulation and print a summary.

    Examples
    --------
        quake-sim run --frames 1200 --method rk4 --seed 3 --ascii-plot

        quake-sim run -c configs/default.yml --set distribution=uniform --events
    """
    _setup_logging(log_level)
    if quantity not in ENERGY_COLUMNS:
        raise typer.BadParameter(f"--quantity must be one of {', '.join(ENERGY_COLUMNS)}")

    params = _resolve_params(config, overrides, method, seed)

    t0 = time.perf_counter()
    results_df = run_simulation(params, frames=frames, frame_time=frame_time)
    wall_time = time.perf_counter() - t0

    events = detect_slip_events(results_df, "E_kin", event_threshold)
    _print_run_summary(results_df, wall_time, events)

    if show_events:
        typer.echo("")
        typer.echo(events.to_string(index=False) if len(events) else "No slip events.")

    if ascii_plot:
        typer.echo("")
        typer.echo(
            _ascii_plot(
                results_df["Time_s"].to_numpy(),
                results_df[quantity].to_numpy(),
                y_label=quantity,
                x_label="Time_s",
            )
        )


@app.command()
def sensitivity(
    param_path: str = typer.Argument(..., help="Parameter name, e.g. k_c or friction_d"),
    values: str = typer.Option(..., "--values", help="Comma/space-separated values"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Base config YAML"),
    seed: Optional[int] = typer.Option(0, "--seed", help="Seed shared by every run."),
    frames: int = typer.Option(SimulationConstants.FRAMES, "--frames", "-n", min=1),
    frame_time: float = typer.Option(SimulationConstants.FRAME_TIME, "--frame-time"),
    event_threshold: float = typer.Option(1e-3, "--event-threshold"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Run single-parameter sensitivity study."""
    from .studies.sensitivity import run_sensitivity_study

    _setup_logging(log_level)
    params = _resolve_params(config, None, None, seed)
    try:
        summary = run_sensitivity_study(
            params,
            param_path=param_path,
            values=_parse_values(values),
            frames=frames,
            frame_time=frame_time,
            event_threshold=event_threshold,
        )
    except (KeyError, ConfigError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(summary.to_string(index=False))


@app.command("compare-methods")
def compare_methods(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Base config YAML"),
    seed: Optional[int] = typer.Option(0, "--seed", help="Seed shared by every run."),
    frames: int = typer.Option(SimulationConstants.FRAMES, "--frames", "-n", min=1),
    frame_time: float = typer.Option(SimulationConstants.FRAME_TIME, "--frame-time"),
    event_threshold: float = typer.Option(1e-3, "--event-threshold"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Run the same configuration with Euler, RK4 and Leapfrog."""
    from .studies.sensitivity import run_method_comparison

    _setup_logging(log_level)
    params = _resolve_params(config, None, None, seed)
    summary = run_method_comparison(
        params,
        frames=frames,
        frame_time=frame_time,
        event_threshold=event_threshold,
    )
    typer.echo(summary.to_string(index=False))


def main() -> None:
    app()


if __name__ == "__main__":
    main()

"""Slip-event (earthquake) detection on frame time series."""

from __future__ import annotations

from typing import Dict

import numpy as np
import pandas as pd

EVENT_COLUMNS = [
    "Event",
    "Start_frame",
    "End_frame",
    "Frames",
    "Duration_s",
    "Peak",
    "Energy_released",
]


def detect_slip_events(
    df: pd.DataFrame,
    column: str = "E_kin",
    threshold: float = 1e-3,
    *,
    t_col: str = "Time_s",
    frame_col: str = "Frame",
    pot_col: str = "E_pot",
    min_frames: int = 1,
) -> pd.DataFrame:
    """
    Group consecutive frames where ``column`` exceeds ``threshold`` into events.

    Parameters
    ----------
    df : pd.DataFrame
        Output of ``run_simulation``.
    column : str
        Activity indicator, usually kinetic energy.
    threshold : float
        Frames with ``column > threshold`` belong to an event.
    min_frames : int
        Shorter runs of active frames are discarded.

    Returns
    -------
    pd.DataFrame
        One row per event. ``Energy_released`` is the drop of potential
        energy from the frame before the event to its last frame.
    """
    if df.empty:
        return pd.DataFrame(columns=EVENT_COLUMNS)

    values = df[column].to_numpy(dtype=float)
    active = values > float(threshold)
    if not np.any(active):
        return pd.DataFrame(columns=EVENT_COLUMNS)

    # run boundaries of the active mask
    padded = np.concatenate([[False], active, [False]])
    edges = np.flatnonzero(np.diff(padded.astype(int)))
    starts, stops = edges[0::2], edges[1::2]

    t = df[t_col].to_numpy(dtype=float)
    frames = df[frame_col].to_numpy()
    pot = df[pot_col].to_numpy(dtype=float) if pot_col in df.columns else None

    rows = []
    for start, stop in zip(starts, stops):
        n = int(stop - start)
        if n < min_frames:
            continue
        last = stop - 1
        t_before = t[start - 1] if start > 0 else 0.0
        released = float("nan")
        if pot is not None:
            pot_before = pot[start - 1] if start > 0 else pot[start]
            released = float(pot_before - pot[last])
        rows.append(
            {
                "Event": len(rows) + 1,
                "Start_frame": int(frames[start]),
                "End_frame": int(frames[last]),
                "Frames": n,
                "Duration_s": float(t[last] - t_before),
                "Peak": float(np.max(values[start:stop])),
                "Energy_released": released,
            }
        )
    return pd.DataFrame(rows, columns=EVENT_COLUMNS)


def event_statistics(events: pd.DataFrame) -> Dict[str, float]:
    """Summary of an event catalogue."""
    if events.empty:
        return {
            "n_events": 0,
            "mean_duration_s": 0.0,
            "max_peak": 0.0,
            "total_energy_released": 0.0,
        }
    return {
        "n_events": int(len(events)),
        "mean_duration_s": float(events["Duration_s"].mean()),
        "max_peak": float(events["Peak"].max()),
        "total_energy_released": float(np.nansum(events["Energy_released"].to_numpy(dtype=float))),
    }

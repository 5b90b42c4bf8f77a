"""Engine for the stick-slip block chain simulator.

This module is UI-agnostic: it owns the block chain, the selected
integrator and the energy histories, and exposes the discrete commands a
front end issues (reset, pause, advance a frame, sample energies, select
a block).

Frame loop
----------
A front end calls, once per rendered frame:

    sim.advance(frame_seconds)   # floor(frame_seconds / dt) substeps
    sim.sample_energy()          # one kinetic/potential record

and then reads ``sim.blocks``, ``sim.max_x`` and ``sim.history(...)``.
Both calls do nothing while the simulation is paused.

Use from the CLI, notebooks or tests as:

    from quake_simulator.core.engine import run_simulation

    df = run_simulation({"method": "rungekutta", "seed": 1}, frames=300)
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..config.loader import build_simulation_config
from ..config.models import SimulationConfig
from .chain import Block, BlockChain, build_chain
from .history import EnergyAccumulator, EnergyKind, EnergySample
from .integrator import make_integrator

logger = logging.getLogger(__name__)


# ====================================================================
# SIMULATION CONSTANTS
# ====================================================================

class SimulationConstants:
    """Defaults of the headless frame loop."""

    FRAME_TIME = 1.0 / 60.0  # s - one frame at the reference 60 FPS
    FRAMES = 600             # ten seconds of wall-clock time


# ====================================================================
# SIMULATION
# ====================================================================

class Simulation:
    """Stick-slip chain simulation driven frame by frame.

    Parameters
    ----------
    config : SimulationConfig, dict or None
        Configuration, fixed for the lifetime of the object. A dict is
        validated (missing keys take their defaults).
    rng : np.random.Generator, optional
        Generator for the static friction draws. Defaults to
        ``np.random.default_rng(config.seed)``. It is created once and
        never reseeded: successive resets draw fresh friction values.

    Attributes
    ----------
    chain : BlockChain
        Current chain, replaced wholesale on reset.
    paused : bool
        External gate; while set, ``advance`` and ``sample_energy`` are
        no-ops.
    time : float
        Simulated time since the last reset.
    total_substeps : int
        Substeps run since the last reset.
    """

    def __init__(
        self,
        config: SimulationConfig | Dict[str, Any] | None = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = build_simulation_config(config)
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.integrator = make_integrator(self.config)
        self.energy = EnergyAccumulator(
            self.config.plot,
            self.config.method,
            capacity=self.config.history_capacity,
            scale_floor=self.config.history_scale_floor,
        )
        self.paused = False
        self.time = 0.0
        self.total_substeps = 0
        self._non_finite_reported = False
        self.chain: BlockChain
        self.reset()

    # ----------------------------------------------------------------
    # COMMANDS
    # ----------------------------------------------------------------
    def reset(self) -> None:
        """Rebuild the chain with fresh friction draws and clear histories."""
        cfg = self.config
        self.chain = build_chain(
            cfg.n_blocks,
            cfg.k_p,
            cfg.k_c,
            cfg.friction_d,
            cfg.distribution,
            self.rng,
            block_width=cfg.block_width,
            random_steps=cfg.random_steps,
        )
        self.energy.reset()
        self.time = 0.0
        self.total_substeps = 0
        self._non_finite_reported = False
        logger.info(
            "Reset: %d blocks, %s integrator, %s friction, dt=%g",
            cfg.n_blocks,
            cfg.method.value,
            cfg.distribution.value,
            cfg.dt,
        )

    def return_to_menu(self) -> None:
        """Leave the running simulation: unpause and start over."""
        self.paused = False
        self.reset()

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    def substeps_for(self, elapsed: float) -> int:
        """Number of fixed substeps covering ``elapsed`` seconds, capped."""
        if elapsed is None or not math.isfinite(elapsed) or elapsed <= 0.0:
            return 0
        substeps = int(math.floor(elapsed / self.config.dt))
        if substeps > self.config.max_substeps:
            logger.warning(
                "Frame of %.3f s needs %d substeps; capping at max_substeps=%d.",
                elapsed,
                substeps,
                self.config.max_substeps,
            )
            substeps = self.config.max_substeps
        return substeps

    def advance(self, elapsed: float) -> int:
        """Run ``floor(elapsed / dt)`` substeps over the whole chain.

        Each substep visits the blocks in increasing index order, records
        ``max_x`` from the block's position before its update, and updates
        the block in place. Later blocks therefore see neighbors already
        moved in the same substep.

        Returns
        -------
        int
            Number of substeps actually run (0 while paused).
        """
        if self.paused:
            return 0
        substeps = self.substeps_for(elapsed)
        if substeps == 0:
            return 0

        dt = self.config.dt
        chain = self.chain
        step = self.integrator.step
        sweep = list(chain.iter_with_neighbors())
        for _ in range(substeps):
            for prev, block, nxt in sweep:
                chain.track_max_x(block.x)
                step(block, prev, nxt, dt)

        self.time += substeps * dt
        self.total_substeps += substeps
        logger.debug("Advanced %d substeps (t=%.5f s)", substeps, self.time)
        self._check_finite()
        return substeps

    def sample_energy(self) -> Optional[EnergySample]:
        """Append one kinetic/potential record; None while paused."""
        if self.paused:
            return None
        return self.energy.sample(self.chain)

    def select_block_at(self, x: float) -> Optional[Block]:
        """Select the block whose body contains world coordinate ``x``."""
        if self.chain is None or len(self.chain) == 0:
            return None
        return self.chain.select_at(x, self.config.block_width)

    def clear_selection(self) -> None:
        if self.chain is not None:
            self.chain.clear_selection()

    # ----------------------------------------------------------------
    # READ ACCESSORS
    # ----------------------------------------------------------------
    @property
    def blocks(self) -> List[Block]:
        return list(self.chain)

    @property
    def max_x(self):
        return self.chain.max_x

    @property
    def selected(self) -> Optional[Block]:
        return self.chain.selected

    @property
    def energy_peak(self) -> float:
        return self.energy.peak

    def history(self, kind: EnergyKind | str, width: Optional[int] = None) -> List[float]:
        return self.energy.history(kind, width)

    def is_moving(self, block: Block) -> bool:
        return bool(abs(block.v) > self.config.v_epsilon)

    def moving_blocks(self) -> int:
        return sum(1 for block in self.chain if self.is_moving(block))

    def _check_finite(self) -> None:
        if self._non_finite_reported:
            return
        for block in self.chain:
            if not (np.isfinite(block.x) and np.isfinite(block.v)):
                logger.warning(
                    "Block %d reached a non-finite state (x=%s, v=%s) at t=%.5f s; "
                    "dt=%g may be too large for the spring constants.",
                    block.index,
                    block.x,
                    block.v,
                    self.time,
                    self.config.dt,
                )
                self._non_finite_reported = True
                return


# ====================================================================
# TABULAR VIEWS
# ====================================================================

def block_snapshot(sim: Simulation) -> pd.DataFrame:
    """Per-block state table (what an info panel shows for a block)."""
    rows = []
    for block in sim.chain:
        rows.append(
            {
                "Block": block.index,
                "x": float(block.x),
                "v": float(block.v),
                "a": float(block.a),
                "e": float(block.e),
                "k_p": block.k_p,
                "k_c": block.k_c,
                "Static_friction": block.friction,
                "Dynamic_friction": sim.config.friction_d,
                "E_kin": float(block.v * block.v / 2),
                "Moving": sim.is_moving(block),
                "Selected": block is sim.selected,
            }
        )
    return pd.DataFrame(rows)


# ====================================================================
# PUBLIC ENTRY POINT
# ====================================================================

def get_default_simulation_params() -> dict:
    """
    Reference configuration as a plain dict: ten blocks, k_p=1, k_c=0.4,
    dynamic friction 10, driver speed 1, dt=1e-5, Leapfrog, binomial
    static friction.

    Returned as a dict so it can be updated from YAML/JSON configs and
    CLI overrides before being validated.
    """
    return SimulationConfig().model_dump(mode="json")


def run_simulation(
    params: SimulationConfig | Dict[str, Any] | None = None,
    *,
    frames: int = SimulationConstants.FRAMES,
    frame_time: float = SimulationConstants.FRAME_TIME,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """
    Headless run of the frame loop.

    Every frame advances the chain by ``frame_time`` of wall-clock time and
    samples the energies once, as the interactive loop does.

    Returns
    -------
    pd.DataFrame
        One row per frame with columns ``Frame``, ``Time_s``, ``Substeps``,
        ``E_kin``, ``E_pot``, ``Max_x`` and ``Moving_blocks``.
    """
    if frames < 0:
        raise ValueError("frames must be >= 0")
    sim = Simulation(params, rng=rng)

    rows = []
    for frame in range(1, int(frames) + 1):
        substeps = sim.advance(frame_time)
        sample = sim.sample_energy()
        rows.append(
            {
                "Frame": frame,
                "Time_s": sim.time,
                "Substeps": substeps,
                "E_kin": sample.kinetic,
                "E_pot": sample.potential,
                "Max_x": float(sim.max_x),
                "Moving_blocks": sim.moving_blocks(),
            }
        )

    columns = ["Frame", "Time_s", "Substeps", "E_kin", "E_pot", "Max_x", "Moving_blocks"]
    df = pd.DataFrame(rows, columns=columns)
    df.attrs["method"] = sim.config.method.value
    df.attrs["n_blocks"] = sim.config.n_blocks
    df.attrs["dt"] = sim.config.dt
    return df

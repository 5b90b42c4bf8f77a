"""Fixed-step time integration of single blocks.

Three interchangeable schemes advance one block by one timestep ``dt``:
explicit Euler (accumulating), classical Runge-Kutta (RK4) and a
semi-implicit Leapfrog with an explicit stick test. The scheme is chosen
once from the configuration; the chain-wide sweep lives in the engine.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Type

from ..config.models import IntegrationMethod, SimulationConfig
from .chain import Block, LongDouble
from .forces import compute_acceleration, coupling_force, driver_force
from .friction import FrictionModels

logger = logging.getLogger(__name__)


class BlockIntegrator:
    """Base class of the per-block schemes.

    Every scheme mutates ``block`` in place (``x``, ``v``, ``a`` and, for
    Leapfrog, ``v_prev``) and advances its driver anchor by ``v_e * dt``.
    Neighbors are read, never written.

    Attributes
    ----------
    friction_d : float
        Global dynamic friction.
    v_e : float
        Driver anchor velocity.
    v_epsilon : float
        Stick threshold on speed.
    block_width : float
        Rest length of the coupling springs.
    """

    method: IntegrationMethod

    def __init__(self, *, friction_d: float, v_e: float, v_epsilon: float, block_width: float):
        self.friction_d = float(friction_d)
        self.v_e = float(v_e)
        self.v_epsilon = float(v_epsilon)
        self.block_width = float(block_width)

    @classmethod
    def from_config(cls, config: SimulationConfig) -> "BlockIntegrator":
        return cls(
            friction_d=config.friction_d,
            v_e=config.v_e,
            v_epsilon=config.v_epsilon,
            block_width=config.block_width,
        )

    def acceleration(self, block: Block, prev: Optional[Block], nxt: Optional[Block]):
        return compute_acceleration(
            block,
            prev,
            nxt,
            friction_d=self.friction_d,
            v_epsilon=self.v_epsilon,
            block_width=self.block_width,
        )

    def advance_anchor(self, block: Block, dt: float) -> None:
        block.e += self.v_e * dt

    def step(self, block: Block, prev: Optional[Block], nxt: Optional[Block], dt: float) -> None:
        raise NotImplementedError


class EulerIntegrator(BlockIntegrator):
    """Explicit Euler with accumulated acceleration.

    The acceleration is not recomputed from scratch: each step adds the
    driver force net of friction to the previous ``a``. Only the driver
    spring is considered and the stick test uses the signed velocity
    (``v <= v_epsilon``). This leaky variant is kept for comparison with
    the other two schemes, not for accuracy.
    """

    method = IntegrationMethod.EULER

    def step(self, block: Block, prev: Optional[Block], nxt: Optional[Block], dt: float) -> None:
        driver = driver_force(block)
        if block.v <= self.v_epsilon:
            block.a += FrictionModels.static_release(driver, block.v, block.friction)
        else:
            block.a += driver - FrictionModels.dynamic(block.v, self.friction_d)
        block.v += block.a * dt
        block.x += block.v * dt
        self.advance_anchor(block, dt)


class RungeKuttaIntegrator(BlockIntegrator):
    """Classical fourth-order Runge-Kutta on the velocity.

    The four slopes come from the force model evaluated on scratch copies
    of the block:

        k1 = a(x, v, e)
        k2 = a(x + v1*h/2, v1, e + v_e*h/2),   v1 = v + k1*h/2
        k3 = a(x + v2*h/2, v2, e + v_e*h/2),   v2 = v + k2*h/2
        k4 = a(x + v3*h,   v3, e + v_e*h),     v3 = v + k3*h

        v_new = v + (k1 + 2*k2 + 2*k3 + k4) * h/6
        x_new = x + v_new*h

    Neighbors are held fixed at their current state for all four slopes.
    """

    method = IntegrationMethod.RUNGEKUTTA

    def velocity_update(self, block: Block, prev: Optional[Block], nxt: Optional[Block], dt: float):
        """Return the RK4 velocity after ``dt`` without touching ``block``."""
        half_dt = dt / 2
        k_1 = block.a
        trial = block.copy()

        v_1 = block.v + k_1 * half_dt
        trial.x = block.x + v_1 * half_dt
        trial.v = v_1
        trial.e = block.e + self.v_e * half_dt
        k_2 = self.acceleration(trial, prev, nxt)

        v_2 = block.v + k_2 * half_dt
        trial.x = block.x + v_2 * half_dt
        trial.v = v_2
        k_3 = self.acceleration(trial, prev, nxt)

        v_3 = block.v + k_3 * dt
        trial.x = block.x + v_3 * dt
        trial.v = v_3
        trial.e = block.e + self.v_e * dt
        k_4 = self.acceleration(trial, prev, nxt)

        return block.v + (k_1 + 2 * k_2 + 2 * k_3 + k_4) * dt / 6

    def step(self, block: Block, prev: Optional[Block], nxt: Optional[Block], dt: float) -> None:
        block.a = self.acceleration(block, prev, nxt)
        block.v = self.velocity_update(block, prev, nxt, dt)
        block.x += block.v * dt
        self.advance_anchor(block, dt)


class LeapfrogIntegrator(BlockIntegrator):
    """Semi-implicit (symplectic) Euler with an explicit stick test.

    The acceleration is rebuilt every step from both coupling springs, the
    driver spring and dynamic friction opposing the current velocity:

        a = k_p*(e - x) - sign(v)*friction_d + coupling
        v_prev = v
        v = v_prev + a*dt

    If the velocity changed sign or dropped below ``v_epsilon`` while
    ``|a|`` does not exceed the block's static friction, the block sticks:
    ``a`` and ``v`` are set to exactly zero. The position is then advanced
    with the new velocity.

    The bound is inclusive (``|a| <= friction``), not strict: with the
    ``ZERO`` distribution a block at rest with relaxed springs has
    ``|a| == friction_d == friction`` and must stay stuck.
    """

    method = IntegrationMethod.LEAPFROG

    def step(self, block: Block, prev: Optional[Block], nxt: Optional[Block], dt: float) -> None:
        block.a = (
            driver_force(block)
            - FrictionModels.dynamic(block.v, self.friction_d)
            + coupling_force(block, prev, nxt, self.block_width)
        )

        block.v_prev = block.v
        block.v = block.v_prev + dt * block.a
        if block.v * block.v_prev < 0 or abs(block.v) < self.v_epsilon:
            if abs(block.a) <= block.friction:
                block.a = LongDouble(0)
                block.v = LongDouble(0)

        block.x += dt * block.v
        self.advance_anchor(block, dt)


INTEGRATORS: Dict[IntegrationMethod, Type[BlockIntegrator]] = {
    IntegrationMethod.EULER: EulerIntegrator,
    IntegrationMethod.RUNGEKUTTA: RungeKuttaIntegrator,
    IntegrationMethod.LEAPFROG: LeapfrogIntegrator,
}


def make_integrator(config: SimulationConfig) -> BlockIntegrator:
    """Instantiate the scheme selected by ``config.method``."""
    method = IntegrationMethod(config.method)
    integrator = INTEGRATORS[method].from_config(config)
    logger.debug("Using %s integrator", method.value)
    return integrator


__all__ = [
    "BlockIntegrator",
    "EulerIntegrator",
    "RungeKuttaIntegrator",
    "LeapfrogIntegrator",
    "INTEGRATORS",
    "make_integrator",
]

from __future__ import annotations

import sys

sys.path.insert(0, "src")

import pytest

from quake_simulator.config.models import IntegrationMethod, SimulationConfig
from quake_simulator.core.chain import Block, LongDouble
from quake_simulator.core.integrator import (
    EulerIntegrator,
    LeapfrogIntegrator,
    RungeKuttaIntegrator,
    make_integrator,
)

DT = 1e-5


def _integrator(cls, v_e: float = 1.0):
    return cls(friction_d=10.0, v_e=v_e, v_epsilon=1e-3, block_width=3.0)


def _block(x: float = 0.0, e: float = 0.0, v: float = 0.0, friction: float = 10.0) -> Block:
    return Block(index=1, x=LongDouble(x), e=LongDouble(e), k_p=1.0, k_c=0.4, friction=friction, v=LongDouble(v))


@pytest.mark.parametrize(
    "method, cls",
    [
        ("euler", EulerIntegrator),
        ("rk4", RungeKuttaIntegrator),
        ("LEAPFROG", LeapfrogIntegrator),
    ],
)
def test_make_integrator_selects_scheme(method: str, cls) -> None:
    integrator = make_integrator(SimulationConfig(method=method, v_e=2.0))
    assert isinstance(integrator, cls)
    assert integrator.v_e == 2.0
    assert integrator.method is IntegrationMethod(method)


@pytest.mark.parametrize("cls", [EulerIntegrator, RungeKuttaIntegrator, LeapfrogIntegrator])
def test_anchor_advances_regardless_of_dynamics(cls) -> None:
    block = _block(e=4.0)
    _integrator(cls, v_e=2.0).step(block, None, None, DT)
    assert block.e == LongDouble(4.0) + 2.0 * DT


def test_leapfrog_resting_block_sticks() -> None:
    block = _block(x=1.0, e=1.0)
    integrator = _integrator(LeapfrogIntegrator, v_e=0.0)
    for _ in range(100):
        integrator.step(block, None, None, DT)
    assert block.x == 1.0
    assert block.v == 0
    assert block.a == 0


def test_leapfrog_records_previous_velocity() -> None:
    block = _block(x=0.0, e=50.0, v=0.5)
    _integrator(LeapfrogIntegrator).step(block, None, None, DT)
    assert block.v_prev == LongDouble(0.5)
    assert float(block.a) == pytest.approx(50.0 - 10.0)
    assert float(block.v) == pytest.approx(0.5 + 40.0 * DT)
    assert float(block.x) == pytest.approx(float(block.v) * DT)


def test_leapfrog_releases_when_net_force_beats_static_friction() -> None:
    block = _block(x=0.0, e=25.0)
    _integrator(LeapfrogIntegrator).step(block, None, None, DT)
    assert block.v > 0
    assert block.x > 0


def test_leapfrog_sticks_on_velocity_reversal() -> None:
    # slow forward motion, dynamic friction outweighs the driver pull
    block = _block(x=0.0, e=5.0, v=2e-5)
    _integrator(LeapfrogIntegrator).step(block, None, None, DT)
    assert block.v == 0
    assert block.a == 0


def test_euler_accumulates_acceleration() -> None:
    block = _block(x=0.0, e=20.0)
    integrator = _integrator(EulerIntegrator, v_e=0.0)
    integrator.step(block, None, None, DT)
    assert float(block.a) == pytest.approx(10.0)
    integrator.step(block, None, None, DT)
    assert float(block.a) == pytest.approx(20.0, rel=1e-6)


def test_euler_holds_block_below_threshold() -> None:
    block = _block(x=0.0, e=8.0)
    _integrator(EulerIntegrator, v_e=0.0).step(block, None, None, DT)
    assert block.a == 0
    assert block.v == 0
    assert block.x == 0


def test_euler_backward_block_takes_signed_stick_branch() -> None:
    # v < -v_epsilon still passes the signed test v <= v_epsilon
    block = _block(x=0.0, e=20.0, v=-0.5, friction=15.0)
    integrator = _integrator(EulerIntegrator, v_e=0.0)
    integrator.step(block, None, None, DT)
    # static threshold with sign(v) = -1, not driver + friction_d = 30
    assert float(block.a) == pytest.approx(20.0 + 15.0)
    assert float(block.v) == pytest.approx(-0.5 + 35.0 * DT)
    integrator.step(block, None, None, DT)
    assert float(block.a) == pytest.approx(2 * 35.0, rel=1e-6)


def test_rk4_trial_evaluations_leave_block_untouched() -> None:
    block = _block(x=0.0, e=30.0, v=0.3)
    neighbor = Block(index=2, x=LongDouble(9.0), e=LongDouble(9.0), k_p=1.0, k_c=0.4, friction=10.0)
    integrator = _integrator(RungeKuttaIntegrator)
    block.a = integrator.acceleration(block, None, neighbor)
    before = (block.x, block.v, block.v_prev, block.a, block.e)
    v_new = integrator.velocity_update(block, None, neighbor, DT)
    assert (block.x, block.v, block.v_prev, block.a, block.e) == before
    assert v_new > block.v


def test_rk4_matches_constant_force_motion() -> None:
    # moving block, x and e shifting together keeps the force constant
    block = _block(x=0.0, e=25.0, v=1.0)
    integrator = _integrator(RungeKuttaIntegrator, v_e=1.0)
    integrator.step(block, None, None, DT)
    assert float(block.a) == pytest.approx(15.0)
    assert float(block.v) == pytest.approx(1.0 + 15.0 * DT, rel=1e-9)
    assert float(block.x) == pytest.approx(float(block.v) * DT)

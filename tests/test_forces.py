from __future__ import annotations

import sys

sys.path.insert(0, "src")

import pytest

from quake_simulator.core.chain import Block, LongDouble
from quake_simulator.core.forces import (
    compute_acceleration,
    coupling_force,
    driver_force,
    neighbor_force,
)

W = 3.0


def _block(index: int, x: float, e: float | None = None, v: float = 0.0, friction: float = 10.0) -> Block:
    return Block(
        index=index,
        x=LongDouble(x),
        e=LongDouble(x if e is None else e),
        k_p=1.0,
        k_c=0.4,
        friction=friction,
        v=LongDouble(v),
    )


def _accel(block, prev=None, nxt=None):
    return float(compute_acceleration(block, prev, nxt, friction_d=10.0, v_epsilon=1e-3, block_width=W))


def test_right_neighbor_takes_precedence() -> None:
    left, mid, right = _block(1, -10.0), _block(2, 0.0), _block(3, 5.0)
    assert float(neighbor_force(mid, left, right, W)) == pytest.approx(0.4 * (5.0 - 0.0 - W))


def test_left_neighbor_used_for_tail() -> None:
    left, tail = _block(1, -5.0), _block(2, 0.0)
    left.k_c = 0.8
    assert float(neighbor_force(tail, left, None, W)) == pytest.approx(0.8 * (-5.0 - 0.0 - W))


def test_isolated_block_has_no_coupling() -> None:
    assert neighbor_force(_block(1, 0.0), None, None, W) == 0.0


def test_two_sided_coupling() -> None:
    left, mid, right = _block(1, -4.0), _block(2, 0.0), _block(3, 5.0)
    expected = 0.4 * (5.0 - 0.0 - W) - 0.4 * (0.0 + 4.0 - W)
    assert float(coupling_force(mid, left, right, W)) == pytest.approx(expected)


def test_driver_force() -> None:
    assert float(driver_force(_block(1, 2.0, e=7.0))) == pytest.approx(5.0)


def test_resting_block_sticks_below_threshold() -> None:
    block = _block(1, 0.0, e=9.0)
    assert _accel(block) == 0.0


def test_resting_block_releases_above_threshold() -> None:
    block = _block(1, 0.0, e=12.5)
    assert _accel(block) == pytest.approx(2.5)


def test_resting_block_is_never_pushed_backward() -> None:
    block = _block(1, 0.0, e=-30.0)
    assert _accel(block) == 0.0


def test_moving_block_feels_dynamic_friction_unclamped() -> None:
    forward = _block(1, 0.0, e=2.0, v=0.5)
    backward = _block(1, 0.0, e=2.0, v=-0.5)
    assert _accel(forward) == pytest.approx(2.0 - 10.0)
    assert _accel(backward) == pytest.approx(2.0 + 10.0)


def test_threshold_uses_block_static_friction() -> None:
    weak = _block(1, 0.0, e=15.0, friction=10.0)
    strong = _block(1, 0.0, e=15.0, friction=18.0)
    assert _accel(weak) == pytest.approx(5.0)
    assert _accel(strong) == 0.0


def test_force_model_does_not_mutate_inputs() -> None:
    left, mid, right = _block(1, -9.0), _block(2, 0.0, e=30.0, v=0.2), _block(3, 9.0)
    before = [(b.x, b.v, b.a, b.e) for b in (left, mid, right)]
    _accel(mid, left, right)
    assert [(b.x, b.v, b.a, b.e) for b in (left, mid, right)] == before

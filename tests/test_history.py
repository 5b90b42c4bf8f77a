from __future__ import annotations

import sys

sys.path.insert(0, "src")

import pytest

from quake_simulator.config.models import EnergyPlot, IntegrationMethod
from quake_simulator.core.chain import Block, LongDouble
from quake_simulator.core.history import (
    EnergyAccumulator,
    EnergyHistory,
    EnergyKind,
    kinetic_energy,
    potential_energy,
)


def _blocks(n: int, *, v: float, v_prev: float, stretch: float) -> list:
    return [
        Block(
            index=i + 1,
            x=LongDouble(10.0 * i),
            e=LongDouble(10.0 * i + stretch),
            k_p=1.0,
            k_c=0.4,
            friction=10.0,
            v=LongDouble(v),
            v_prev=LongDouble(v_prev),
        )
        for i in range(n)
    ]


def test_history_is_newest_first() -> None:
    history = EnergyHistory(capacity=10)
    for value in (1.0, 2.0, 3.0):
        history.push(value)
    assert history.newest == 3.0
    assert list(history) == [3.0, 2.0, 1.0]


def test_read_trims_older_samples() -> None:
    history = EnergyHistory(capacity=10)
    for value in range(6):
        history.push(float(value))
    assert history.read(3) == [5.0, 4.0, 3.0]
    assert len(history) == 3
    # a wider read cannot bring trimmed samples back
    assert history.read(10) == [5.0, 4.0, 3.0]


def test_trim_is_idempotent() -> None:
    history = EnergyHistory(capacity=10)
    for value in range(8):
        history.push(float(value))
    history.trim(4)
    once = list(history)
    history.trim(4)
    assert list(history) == once


def test_capacity_drops_oldest() -> None:
    history = EnergyHistory(capacity=3)
    for value in range(5):
        history.push(float(value))
    assert list(history) == [4.0, 3.0, 2.0]


def test_non_positive_capacity_rejected() -> None:
    with pytest.raises(ValueError):
        EnergyHistory(capacity=0)


def test_leapfrog_kinetic_energy_uses_literal_average() -> None:
    blocks = _blocks(3, v=2.0, v_prev=1.0, stretch=0.0)
    assert kinetic_energy(blocks, IntegrationMethod.LEAPFROG) == pytest.approx(3 * (2.0 + 1.0) / 4)


def test_kinetic_energy_other_schemes() -> None:
    blocks = _blocks(3, v=2.0, v_prev=1.0, stretch=0.0)
    assert kinetic_energy(blocks, IntegrationMethod.RUNGEKUTTA) == pytest.approx(3 * 2.0)
    assert kinetic_energy(blocks, IntegrationMethod.EULER) == pytest.approx(3 * 2.0)


def test_potential_energy() -> None:
    blocks = _blocks(4, v=0.0, v_prev=0.0, stretch=2.0)
    assert potential_energy(blocks) == pytest.approx(4 * 2.0)


def test_accumulator_seeds_and_appends() -> None:
    acc = EnergyAccumulator(EnergyPlot.ALL, IntegrationMethod.RUNGEKUTTA)
    assert acc.history("kinetic") == [0.0]
    assert acc.history(EnergyKind.POTENTIAL) == [0.0]

    sample = acc.sample(_blocks(2, v=1.0, v_prev=0.0, stretch=3.0))
    assert sample.kinetic == pytest.approx(1.0)
    assert sample.potential == pytest.approx(9.0)
    assert acc.history("kinetic") == [pytest.approx(1.0), 0.0]
    assert acc.history("potential", width=1) == [pytest.approx(9.0)]


def test_accumulator_tracks_only_configured_series() -> None:
    acc = EnergyAccumulator(EnergyPlot.KINETIC, IntegrationMethod.LEAPFROG)
    acc.sample(_blocks(1, v=0.0, v_prev=0.0, stretch=1.0))
    assert len(acc.history("kinetic")) == 2
    with pytest.raises(KeyError):
        acc.history("potential")


def test_peak_has_floor_and_survives_reset() -> None:
    acc = EnergyAccumulator(EnergyPlot.ALL, IntegrationMethod.RUNGEKUTTA, scale_floor=100.0)
    acc.sample(_blocks(1, v=0.0, v_prev=0.0, stretch=1.0))
    assert acc.peak == 100.0
    acc.sample(_blocks(1, v=0.0, v_prev=0.0, stretch=20.0))
    assert acc.peak == pytest.approx(200.0)
    acc.reset()
    assert acc.peak == pytest.approx(200.0)
    assert acc.history("potential") == [0.0]

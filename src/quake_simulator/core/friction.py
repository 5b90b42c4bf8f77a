"""Stick-slip friction for the block chain.

This module contains the per-block static friction sampler used when a
chain is built, and the two friction laws applied during stepping: the
clamped static (stick) law and the constant dynamic (slip) law.
"""

from __future__ import annotations

import numpy as np

from ..config.models import FrictionDistribution


class SimulationConstants:
    """Constants of the friction initialization policy."""

    RANDOM_STEPS = 20  # Resolution of the friction multiplier (1 + k/steps)
    BINOMIAL_P = 0.5   # Success probability of the binomial draw


def sign(value) -> int:
    """Sign with ``sign(0) == +1``.

    A block at rest is treated as moving forward, so static friction
    always opposes forward release.
    """
    if value < 0:
        return -1
    return 1


def friction_multiplier(
    distribution: FrictionDistribution,
    rng: np.random.Generator,
    steps: int = SimulationConstants.RANDOM_STEPS,
) -> float:
    """Draw the static friction multiplier ``1 + k/steps``.

    Parameters
    ----------
    distribution : FrictionDistribution
        ``ZERO`` gives exactly 1. ``UNIFORM`` draws ``k`` uniformly from
        the closed integer range ``[0, steps]``. ``BINOMIAL`` draws
        ``k ~ Binomial(steps, 0.5)``.
    rng : np.random.Generator
        Generator owned by the simulation. ``ZERO`` does not consume it.
    steps : int
        Number of discrete increments between 1 and 2.

    Returns
    -------
    float
        Multiplier in ``[1, 2]``.
    """
    distribution = FrictionDistribution(distribution)
    if distribution is FrictionDistribution.ZERO:
        return 1.0
    if distribution is FrictionDistribution.UNIFORM:
        k = int(rng.integers(0, steps, endpoint=True))
    elif distribution is FrictionDistribution.BINOMIAL:
        k = int(rng.binomial(steps, SimulationConstants.BINOMIAL_P))
    else:
        raise ValueError(f"Unsupported friction distribution: {distribution!r}")
    return 1.0 + k / float(steps)


def sample_friction(
    distribution: FrictionDistribution,
    base: float,
    rng: np.random.Generator,
    steps: int = SimulationConstants.RANDOM_STEPS,
) -> float:
    """Static friction threshold for one block: ``base * multiplier``."""
    return float(base) * friction_multiplier(distribution, rng, steps)


class FrictionModels:
    """Friction laws of the stick-slip model.

    Examples
    --------
    >>> FrictionModels.static_release(elastic=12.0, v=0.0, friction=10.0)
    2.0
    >>> FrictionModels.static_release(elastic=5.0, v=0.0, friction=10.0)
    0.0
    >>> FrictionModels.dynamic(v=-0.3, friction_d=10.0)
    -10.0
    """

    @staticmethod
    def static_release(elastic, v, friction):
        """Net force on a resting block.

        The elastic force minus static friction, clamped at zero: a block
        in the stick state is only ever released forward, once the elastic
        force exceeds its static threshold.

        Parameters
        ----------
        elastic : float
            Sum of spring forces acting on the block.
        v : float
            Current velocity (only its sign is used).
        friction : float
            Static friction threshold of the block.
        """
        return max(elastic - sign(v) * friction, 0.0)

    @staticmethod
    def dynamic(v, friction_d: float) -> float:
        """Dynamic friction force, opposing the direction of motion."""
        return sign(v) * float(friction_d)

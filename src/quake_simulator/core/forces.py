"""Force model of the stick-slip chain.

Blocks have unit mass, so every function here returns a force that is
also the block's acceleration. All functions are pure: they read the
block and its direct neighbors and mutate nothing.
"""

from __future__ import annotations

from typing import Optional

from .chain import Block
from .friction import FrictionModels


def driver_force(block: Block):
    """Pull of the driver spring, ``k_p * (e - x)``."""
    return block.k_p * (block.e - block.x)


def neighbor_force(
    block: Block,
    prev: Optional[Block],
    nxt: Optional[Block],
    block_width: float,
):
    """One-sided coupling force used by the force model.

    Only one spring contributes: the right one when a right neighbor
    exists, otherwise the left one (with the left neighbor's ``k_c``).
    """
    if nxt is not None:
        return block.k_c * (nxt.x - block.x - block_width)
    if prev is not None:
        return prev.k_c * (prev.x - block.x - block_width)
    return 0.0


def coupling_force(
    block: Block,
    prev: Optional[Block],
    nxt: Optional[Block],
    block_width: float,
):
    """Two-sided coupling force: right spring pull minus left spring stretch."""
    force = 0.0
    if nxt is not None:
        force += block.k_c * (nxt.x - block.x - block_width)
    if prev is not None:
        force -= prev.k_c * (block.x - prev.x - block_width)
    return force


def elastic_force(
    block: Block,
    prev: Optional[Block],
    nxt: Optional[Block],
    block_width: float,
):
    """Driver spring plus one-sided neighbor spring."""
    return neighbor_force(block, prev, nxt, block_width) + driver_force(block)


def compute_acceleration(
    block: Block,
    prev: Optional[Block],
    nxt: Optional[Block],
    *,
    friction_d: float,
    v_epsilon: float,
    block_width: float,
):
    """Acceleration of ``block`` under springs and stick-slip friction.

    A block with ``|v| <= v_epsilon`` is in the stick state: the elastic
    force minus its static threshold, clamped at zero. A moving block
    feels the elastic force minus the constant dynamic friction, unclamped.

    Parameters
    ----------
    block : Block
        Block to evaluate (may be a scratch copy).
    prev, nxt : Block or None
        Direct neighbors in the chain.
    friction_d : float
        Global dynamic friction.
    v_epsilon : float
        Speed below which a block counts as resting.
    block_width : float
        Rest length of the coupling springs.
    """
    elastic = elastic_force(block, prev, nxt, block_width)
    if abs(block.v) <= v_epsilon:
        return FrictionModels.static_release(elastic, block.v, block.friction)
    return elastic - FrictionModels.dynamic(block.v, friction_d)

"""Block chain data model.

The chain owns its blocks in a contiguous list; a block's neighbors are
the entries one position before and after it. Block ``index`` is the
1-based position label and never changes during a run.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from ..config.loader import ConfigError
from ..config.models import FrictionDistribution
from .friction import SimulationConstants, sample_friction

logger = logging.getLogger(__name__)

# Positions are differences of large accumulated values; keep them in
# extended precision.
LongDouble = np.longdouble

# Block pitch and anchor offset, in block widths
BLOCK_PITCH = 3
ANCHOR_OFFSET = 2


@dataclass
class Block:
    """One point mass of the chain (unit mass)."""

    index: int
    x: np.longdouble
    e: np.longdouble
    k_p: float
    k_c: float
    friction: float
    v: np.longdouble = LongDouble(0)
    v_prev: np.longdouble = LongDouble(0)
    a: np.longdouble = LongDouble(0)

    def copy(self) -> "Block":
        """Scratch copy for trial evaluations."""
        return copy.copy(self)

    @property
    def driver_extension(self) -> np.longdouble:
        """Stretch of the driver spring, ``e - x``."""
        return self.e - self.x


class BlockChain:
    """Ordered open chain of blocks plus the history-derived ``max_x``.

    Attributes
    ----------
    blocks : list of Block
        Blocks in index order (``blocks[i].index == i + 1``).
    max_x : np.longdouble
        Largest position any block has reached. Never decreases.
    selected : Block or None
        Block picked by the caller for inspection.
    """

    def __init__(self, blocks: List[Block]):
        self.blocks: List[Block] = list(blocks)
        self.max_x = self.blocks[-1].x if self.blocks else LongDouble(0)
        self.selected: Optional[Block] = None

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def __getitem__(self, pos: int) -> Block:
        return self.blocks[pos]

    @property
    def head(self) -> Optional[Block]:
        return self.blocks[0] if self.blocks else None

    @property
    def tail(self) -> Optional[Block]:
        return self.blocks[-1] if self.blocks else None

    def _position(self, block: Block) -> int:
        pos = block.index - 1
        if not (0 <= pos < len(self.blocks)) or self.blocks[pos] is not block:
            raise ValueError(f"Block {block.index} does not belong to this chain")
        return pos

    def prev_of(self, block: Block) -> Optional[Block]:
        pos = self._position(block)
        return self.blocks[pos - 1] if pos > 0 else None

    def next_of(self, block: Block) -> Optional[Block]:
        pos = self._position(block)
        return self.blocks[pos + 1] if pos + 1 < len(self.blocks) else None

    def neighbors(self, block: Block) -> Tuple[Optional[Block], Optional[Block]]:
        return self.prev_of(block), self.next_of(block)

    def iter_with_neighbors(self) -> Iterator[Tuple[Optional[Block], Block, Optional[Block]]]:
        """Yield ``(prev, block, next)`` in index order."""
        n = len(self.blocks)
        for pos, block in enumerate(self.blocks):
            prev = self.blocks[pos - 1] if pos > 0 else None
            nxt = self.blocks[pos + 1] if pos + 1 < n else None
            yield prev, block, nxt

    def track_max_x(self, x) -> None:
        if x > self.max_x:
            self.max_x = x

    def block_at(self, x: float, block_width: float) -> Optional[Block]:
        """First block whose body ``[x, x + block_width]`` contains ``x``."""
        for block in self.blocks:
            if block.x <= x <= block.x + block_width:
                return block
        return None

    def select_at(self, x: float, block_width: float) -> Optional[Block]:
        self.selected = self.block_at(x, block_width)
        return self.selected

    def clear_selection(self) -> None:
        self.selected = None

    def check_links(self) -> None:
        """Raise ``ValueError`` if the index/neighbor invariant is broken."""
        seen = set()
        block = self.head
        expected = 1
        prev = None
        while block is not None:
            if id(block) in seen:
                raise ValueError(f"Cycle at block {block.index}")
            seen.add(id(block))
            if block.index != expected:
                raise ValueError(f"Block index {block.index} at position {expected}")
            if self.prev_of(block) is not prev:
                raise ValueError(f"Block {block.index} is not linked to its predecessor")
            prev = block
            block = self.next_of(block)
            expected += 1
        if len(seen) != len(self.blocks):
            raise ValueError(f"{len(self.blocks) - len(seen)} blocks unreachable from the head")


def build_chain(
    n: int,
    k_p: float,
    k_c: float,
    friction_d: float,
    distribution: FrictionDistribution,
    rng: np.random.Generator,
    *,
    block_width: float = 3.0,
    random_steps: int = SimulationConstants.RANDOM_STEPS,
) -> BlockChain:
    """Lay out ``n`` resting blocks with a pitch of three block widths.

    Block ``i`` starts at ``x = 3*w*(i-1)`` with its driver anchor two
    widths ahead, at ``e = w*(3*(i-1) + 2)``. Static friction is sampled
    per block, in index order.

    Raises
    ------
    ConfigError
        If ``n <= 0``. No partial chain is built.
    """
    if n <= 0:
        raise ConfigError(f"n_blocks must be > 0, got {n}")

    blocks: List[Block] = []
    for i in range(n):
        blocks.append(
            Block(
                index=i + 1,
                x=LongDouble(BLOCK_PITCH * block_width * i),
                e=LongDouble(block_width * (BLOCK_PITCH * i + ANCHOR_OFFSET)),
                k_p=float(k_p),
                k_c=float(k_c),
                friction=sample_friction(distribution, friction_d, rng, random_steps),
            )
        )

    chain = BlockChain(blocks)
    logger.debug(
        "Built chain of %d blocks, static friction range [%.3f, %.3f]",
        n,
        min(b.friction for b in blocks),
        max(b.friction for b in blocks),
    )
    return chain

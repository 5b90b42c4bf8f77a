"""Rolling energy histories.

Each tracked series (kinetic, potential) is a newest-first log of one
sample per rendered frame. Retention is decided by the reader: every
read trims the log to the width the caller can display. The backing
deque has a fixed capacity, so memory stays bounded even if nobody reads.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, Iterable, Iterator, List, Optional

from ..config.models import EnergyPlot, IntegrationMethod
from .chain import Block

logger = logging.getLogger(__name__)


class EnergyKind(str, Enum):
    KINETIC = "kinetic"
    POTENTIAL = "potential"


@dataclass(frozen=True)
class EnergySample:
    """Energies of the whole chain at the end of one frame."""

    kinetic: float
    potential: float


class EnergyHistory:
    """Newest-first log of scalar samples with trim-on-read retention."""

    def __init__(self, capacity: int = 4096):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        # appendleft on a full deque drops the oldest sample from the right
        self._samples: Deque[float] = deque(maxlen=int(capacity))

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[float]:
        return iter(self._samples)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def newest(self) -> Optional[float]:
        return self._samples[0] if self._samples else None

    def push(self, value: float) -> None:
        self._samples.appendleft(float(value))

    def trim(self, width: int) -> None:
        """Keep only the ``width`` newest samples."""
        width = max(int(width), 0)
        while len(self._samples) > width:
            self._samples.pop()

    def read(self, width: int) -> List[float]:
        """Trim to ``width`` and return the retained samples, newest first."""
        self.trim(width)
        return list(self._samples)


def kinetic_energy(blocks: Iterable[Block], method: IntegrationMethod) -> float:
    """Total kinetic energy of the chain.

    Under Leapfrog the per-block term is ``(v + v_prev)/2/2``: the mean of
    the two staggered velocities, halved. It is deliberately not squared.
    Other schemes use ``v*v/2``.
    """
    total = 0.0
    if method is IntegrationMethod.LEAPFROG:
        for block in blocks:
            v = (block.v + block.v_prev) / 2
            total += v / 2
    else:
        for block in blocks:
            total += block.v * block.v / 2
    return float(total)


def potential_energy(blocks: Iterable[Block]) -> float:
    """Energy stored in the driver springs, ``sum(k_p*(e - x)**2/2)``."""
    total = 0.0
    for block in blocks:
        stretch = block.e - block.x
        total += block.k_p * stretch * stretch / 2
    return float(total)


class EnergyAccumulator:
    """Samples chain energies once per frame into per-series histories.

    Attributes
    ----------
    histories : dict
        One ``EnergyHistory`` per tracked ``EnergyKind``.
    peak : float
        Largest sample ever recorded across series, never below the
        configured scale floor. Used to normalise display scales; kept
        across resets.
    """

    def __init__(
        self,
        plot: EnergyPlot = EnergyPlot.ALL,
        method: IntegrationMethod = IntegrationMethod.LEAPFROG,
        *,
        capacity: int = 4096,
        scale_floor: float = 100.0,
    ):
        self.plot = EnergyPlot(plot)
        self.method = IntegrationMethod(method)
        self.capacity = int(capacity)
        self.peak = float(scale_floor)
        self.histories: Dict[EnergyKind, EnergyHistory] = {}
        self.reset()

    @property
    def tracked(self) -> List[EnergyKind]:
        kinds = []
        if self.plot.tracks_kinetic:
            kinds.append(EnergyKind.KINETIC)
        if self.plot.tracks_potential:
            kinds.append(EnergyKind.POTENTIAL)
        return kinds

    def reset(self) -> None:
        """Drop all samples; every tracked history restarts with a zero."""
        self.histories = {}
        for kind in self.tracked:
            history = EnergyHistory(self.capacity)
            history.push(0.0)
            self.histories[kind] = history

    def sample(self, blocks: Iterable[Block]) -> EnergySample:
        blocks = list(blocks)
        record = EnergySample(
            kinetic=kinetic_energy(blocks, self.method),
            potential=potential_energy(blocks),
        )
        if EnergyKind.KINETIC in self.histories:
            self._record(EnergyKind.KINETIC, record.kinetic)
        if EnergyKind.POTENTIAL in self.histories:
            self._record(EnergyKind.POTENTIAL, record.potential)
        return record

    def _record(self, kind: EnergyKind, value: float) -> None:
        self.histories[kind].push(value)
        if value > self.peak:
            self.peak = value

    def history(self, kind: EnergyKind | str, width: Optional[int] = None) -> List[float]:
        """Samples of one series, newest first, trimmed to ``width`` if given.

        Raises
        ------
        KeyError
            If the series is not tracked by the configured plot mode.
        """
        kind = EnergyKind(kind)
        if kind not in self.histories:
            raise KeyError(f"{kind.value} energy is not tracked (plot={self.plot.value})")
        history = self.histories[kind]
        if width is None:
            return list(history)
        return history.read(width)

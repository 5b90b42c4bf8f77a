from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_")
            key = cls._aliases().get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        return None

    @classmethod
    def _aliases(cls) -> dict:
        return {}


class IntegrationMethod(_CaseInsensitiveEnum):
    EULER = "euler"
    RUNGEKUTTA = "rungekutta"
    LEAPFROG = "leapfrog"

    @classmethod
    def _aliases(cls) -> dict:
        return {"rk4": "rungekutta", "runge_kutta": "rungekutta"}


class FrictionDistribution(_CaseInsensitiveEnum):
    ZERO = "zero"
    UNIFORM = "uniform"
    BINOMIAL = "binomial"

    @classmethod
    def _aliases(cls) -> dict:
        return {"constant": "zero", "none": "zero"}


class EnergyPlot(_CaseInsensitiveEnum):
    NO_PLOT = "none"
    KINETIC = "kinetic"
    POTENTIAL = "potential"
    ALL = "all"

    @classmethod
    def _aliases(cls) -> dict:
        return {"no_plot": "none", "both": "all"}

    @property
    def tracks_kinetic(self) -> bool:
        return self in (EnergyPlot.KINETIC, EnergyPlot.ALL)

    @property
    def tracks_potential(self) -> bool:
        return self in (EnergyPlot.POTENTIAL, EnergyPlot.ALL)


class ConfigBase(BaseModel):
    model_config = {"extra": "forbid"}


class SimulationConfig(ConfigBase):
    """Fixed-at-start configuration of one block chain simulation.

    Defaults reproduce the reference setup: ten blocks, unit driver
    springs, weak coupling springs and a binomial spread of static friction.
    """

    # Chain
    n_blocks: int = 10
    block_width: float = 3.0

    # Springs and friction
    k_p: float = 1.0
    k_c: float = 0.4
    friction_d: float = 10.0
    distribution: FrictionDistribution = FrictionDistribution.BINOMIAL
    random_steps: int = 20

    # Driver and stick threshold
    v_e: float = 1.0
    v_epsilon: float = 1e-3

    # Time integration
    dt: float = 1e-5
    method: IntegrationMethod = IntegrationMethod.LEAPFROG
    max_substeps: int = 100_000

    # Energy histories
    plot: EnergyPlot = EnergyPlot.ALL
    history_capacity: int = 4096
    history_scale_floor: float = 100.0

    seed: Optional[int] = None

    @field_validator("method", "distribution", "plot", mode="before")
    @classmethod
    def _parse_enum(cls, value, info):
        if isinstance(value, str):
            enum_cls = cls.model_fields[info.field_name].annotation
            return enum_cls(value)
        return value

    @field_validator("n_blocks")
    @classmethod
    def _n_blocks_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("n_blocks must be > 0")
        return value

    @field_validator("dt")
    @classmethod
    def _dt_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("dt must be > 0")
        return value

    @field_validator("block_width", "history_scale_floor")
    @classmethod
    def _strictly_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("value must be > 0")
        return value

    @field_validator("k_p", "k_c", "friction_d", "v_epsilon")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0.0:
            raise ValueError("value must be >= 0")
        return value

    @field_validator("random_steps", "max_substeps", "history_capacity")
    @classmethod
    def _count_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be >= 1")
        return value


def format_validation_error(exc: ValidationError, *, filename: str) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", []))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}")
    details = "; ".join(parts) if parts else str(exc)
    return f"{filename}: invalid configuration: {details}"

"""Configuration loading and validation utilities."""

from .loader import (
    ConfigError,
    build_simulation_config,
    load_raw_config,
    load_simulation_config,
    normalize_config_dict,
)
from .models import EnergyPlot, FrictionDistribution, IntegrationMethod, SimulationConfig

__all__ = [
    "ConfigError",
    "EnergyPlot",
    "FrictionDistribution",
    "IntegrationMethod",
    "SimulationConfig",
    "build_simulation_config",
    "load_raw_config",
    "load_simulation_config",
    "normalize_config_dict",
]

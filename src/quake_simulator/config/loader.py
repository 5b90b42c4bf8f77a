from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .models import SimulationConfig, format_validation_error


class ConfigError(ValueError):
    pass


def load_simulation_config(path: Path) -> SimulationConfig:
    raw = load_raw_config(path)
    return build_simulation_config(raw, filename=path.name)


def load_raw_config(path: Path) -> Dict[str, Any]:
    """Read a YAML or JSON config file into a plain, unvalidated dict."""
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    # JSON is a subset of YAML, one parser covers both
    if path.suffix.lower() in {".yaml", ".yml", ".json"}:
        data = yaml.safe_load(text)
    else:
        raise ConfigError(f"Unsupported config extension '{path.suffix}'.")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: configuration must be a mapping")
    return data


def normalize_config_dict(config: Dict[str, Any], *, filename: str) -> Dict[str, Any]:
    """Validate a raw config mapping and return it with every default filled in."""
    return build_simulation_config(config, filename=filename).model_dump(mode="json")


def build_simulation_config(
    config: Optional[Dict[str, Any]] | SimulationConfig,
    *,
    filename: str = "<config>",
) -> SimulationConfig:
    if isinstance(config, SimulationConfig):
        return config
    raw = deepcopy(config) if config else {}
    # metadata keys allowed in YAML files, not part of the model
    for key in ("case_name", "notes", "description", "title", "tags"):
        raw.pop(key, None)
    try:
        return SimulationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc, filename=filename)) from exc

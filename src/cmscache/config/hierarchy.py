"""Configuration hierarchy — merges sources in priority order.

Precedence (later overrides earlier):
  1. Package defaults
  2. Global config   (~/.cmscache/config.yaml, or $CMSCACHE_CONFIG_DIR/config.yaml)
  3. Project config   (./cmscache.yaml, searched upward from cwd)
  4. Environment variables (CMSCACHE_*)
  5. Runtime arguments
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from cmscache.config.defaults import get_defaults

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_DIR = Path.home() / ".cmscache"
_GLOBAL_CONFIG_NAME = "config.yaml"
_PROJECT_CONFIG_NAME = "cmscache.yaml"
_ENV_PREFIX = "CMSCACHE_"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"not a boolean: {value!r}")


# Config key -> parser for its CMSCACHE_<KEY> environment variable
_ENV_PARSERS: dict[str, Callable[[str], Any]] = {
    "backend": str,
    "max_entries": int,
    "default_ttl": float,
    "sliding": _parse_bool,
    "db_path": str,
    "registry_shards": int,
    "log_level": str,
}


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Load and merge configuration from all sources."""
    config = get_defaults()

    layers = [_load_yaml_config(_global_config_path())]
    project_path = _find_project_config()
    if project_path:
        layers.append(_load_yaml_config(project_path))
    layers.append(_load_env_vars())
    for layer in layers:
        if layer:
            config.update(layer)

    # None means "not given", so it never overrides a lower layer
    config.update({k: v for k, v in runtime_overrides.items() if v is not None})
    return config


def env_var_name(key: str) -> str:
    """Environment variable that overrides config ``key``."""
    return f"{_ENV_PREFIX}{key.upper()}"


def _global_config_path() -> Path:
    config_dir = os.environ.get(env_var_name("config_dir"))
    base = Path(config_dir) if config_dir else _GLOBAL_CONFIG_DIR
    return base / _GLOBAL_CONFIG_NAME


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Load a YAML config file if it exists."""
    if not path.is_file():
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring", path)
        return None
    return data


def _find_project_config() -> Path | None:
    """Search for cmscache.yaml from cwd upward."""
    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / _PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def _load_env_vars() -> dict[str, Any]:
    """Read CMSCACHE_* environment variables, skipping unparseable ones."""
    result: dict[str, Any] = {}
    for key, parse in _ENV_PARSERS.items():
        name = env_var_name(key)
        raw = os.environ.get(name)
        if raw is None:
            continue
        try:
            result[key] = parse(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: cannot parse value for '%s'", name, raw, key)
    return result

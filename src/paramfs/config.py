"""
Configuration loading.

Settings are layered, later sources winning:

    defaults  <  config.yaml  <  PARAMFS_* environment  <  CLI options

The config file lives at $PARAMFS_HOME/config.yaml (default
~/.paramfs/config.yaml). A missing file is fine; a broken one is not.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from . import PARAMFS_HOME
from .errors import ConfigError
from .models import ParamfsConfig

logger = logging.getLogger("paramfs.config")

ENV_VARS = {
    "PARAMFS_REGION": "region",
    "PARAMFS_PROFILE": "profile",
    "PARAMFS_ENDPOINT_URL": "endpoint_url",
    "PARAMFS_CHUNK_SIZE": "chunk_size",
    "PARAMFS_PARAMETER_TYPE": "parameter_type",
    "PARAMFS_DOCKER": "docker_command",
}


def default_config_path() -> Path:
    return Path(PARAMFS_HOME).expanduser() / "config.yaml"


def _read_file(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")
    return data


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ParamfsConfig:
    """Resolve the effective configuration.

    Args:
        path: Explicit config file. Must exist when given.
        overrides: Values from the command line; None entries are ignored.
        environ: Environment to read PARAMFS_* variables from.

    Returns:
        Validated ParamfsConfig.

    Raises:
        ConfigError: If the file or any value is invalid.
    """
    environ = os.environ if environ is None else environ

    data: dict[str, Any] = {}
    if path is not None:
        data.update(_read_file(Path(path).expanduser()))
    else:
        default = default_config_path()
        if default.exists():
            data.update(_read_file(default))
            logger.debug("Loaded config from %s", default)

    for var, field in ENV_VARS.items():
        if environ.get(var):
            data[field] = environ[var]

    for field, value in (overrides or {}).items():
        if value is not None:
            data[field] = value

    try:
        return ParamfsConfig(**data)
    except (TypeError, ValidationError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

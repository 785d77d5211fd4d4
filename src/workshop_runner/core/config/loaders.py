"""Loading RunnerConfig from YAML and the environment."""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from workshop_runner.core.exceptions import ConfigError

from .models import RunnerConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".workshop-runner.yaml"
ENV_PREFIX = "WORKSHOP_RUNNER_"

_ENV_FIELDS = (
    "cache_dir",
    "deployed",
    "enable_watcher",
    "watch_interval",
    "persist_playground",
    "package_manager",
    "node_command",
    "git_command",
)


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _env_overrides(environ: dict[str, str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for field in _ENV_FIELDS:
        value = environ.get(f"{ENV_PREFIX}{field.upper()}")
        if value is not None:
            overrides[field] = value
    return overrides


def load_runner_config(
    workshop_root: Path,
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> RunnerConfig:
    """Build a RunnerConfig for a workshop.

    Precedence, lowest first: model defaults, YAML file, WORKSHOP_RUNNER_*
    environment variables, explicit overrides.

    Args:
        workshop_root: Root directory of the workshop.
        config_path: YAML file to read. Defaults to
            <workshop_root>/.workshop-runner.yaml when it exists.
        overrides: Values taking precedence over everything else.
        environ: Environment mapping, os.environ when None.

    Returns:
        Validated RunnerConfig.

    Raises:
        ConfigError: If the file cannot be parsed or values fail validation.

    """
    data: dict[str, Any] = {}

    path = config_path or workshop_root / DEFAULT_CONFIG_FILENAME
    if config_path is not None and not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    if path.exists():
        data.update(_load_yaml(path))
        logger.debug("Loaded runner config from %s", path)

    data.update(_env_overrides(dict(os.environ) if environ is None else environ))
    if overrides:
        data.update(overrides)
    data["workshop_root"] = workshop_root

    try:
        return RunnerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid runner configuration: {e}") from e

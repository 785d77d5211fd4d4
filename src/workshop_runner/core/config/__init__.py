"""Configuration for workshop-runner.

Provides:
- RunnerConfig: validated runner settings (timeouts, tools, feature flags)
- load_runner_config: YAML file + environment variable loader
- WorkshopConfig / AppConfig: settings read from package.json manifests
"""

from .loaders import DEFAULT_CONFIG_FILENAME, ENV_PREFIX, load_runner_config
from .models import RunnerConfig
from .workshop import (
    CONFIG_NAMESPACE,
    AppConfig,
    WorkshopConfig,
    read_package_json,
)

__all__ = [
    "CONFIG_NAMESPACE",
    "DEFAULT_CONFIG_FILENAME",
    "ENV_PREFIX",
    "AppConfig",
    "RunnerConfig",
    "WorkshopConfig",
    "load_runner_config",
    "read_package_json",
]

"""Runner configuration model."""

import hashlib
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "workshop-runner"


class RunnerConfig(BaseModel):
    """Settings for a single workshop-runner instance.

    Attributes:
        workshop_root: Absolute path of the workshop checkout.
        cache_dir: Base directory for filesystem caches.
        instance_id: Namespace for this workshop inside cache_dir. Derived
            from the workshop root when not given.
        deployed: When True the runner never spawns local processes.
        enable_watcher: Start the polling change watcher with the services.
        watch_interval: Seconds between watcher polls.
        persist_playground: Save the previous playground before each sync.
        package_manager: Executable used to run app scripts ("npm run dev").
        node_command: Executable used to run playground hook scripts.
        git_command: Executable used for no-index diffs.
        wait_on_app_timeout: Seconds to wait for a dev server to answer.
        wait_on_app_interval: Seconds between reachability probes.
        close_timeout: Seconds to wait for a killed process to exit.
        port_release_timeout: Seconds to wait for a freed port.
        sidecar_stop_timeout: Seconds before a sidecar stop escalates to kill.
        sidecar_output_limit: Lines kept per sidecar output ring buffer.
        connectivity_url: URL probed to decide whether the machine is online.

    """

    model_config = ConfigDict(frozen=True)

    workshop_root: Path
    cache_dir: Path = Field(default=DEFAULT_CACHE_DIR)
    instance_id: str = ""
    deployed: bool = False
    enable_watcher: bool = True
    watch_interval: float = Field(default=1.0, gt=0)
    persist_playground: bool = False
    package_manager: str = "npm"
    node_command: str = "node"
    git_command: str = "git"
    wait_on_app_timeout: float = Field(default=20.0, gt=0)
    wait_on_app_interval: float = Field(default=0.1, gt=0)
    close_timeout: float = Field(default=0.5, gt=0)
    port_release_timeout: float = Field(default=10.0, gt=0)
    sidecar_stop_timeout: float = Field(default=5.0, gt=0)
    sidecar_output_limit: int = Field(default=1000, ge=1)
    connectivity_url: str = "https://www.cloudflare.com"

    @field_validator("workshop_root", "cache_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        """Expand ~ and make paths absolute."""
        if isinstance(v, str | Path):
            return Path(v).expanduser().resolve()
        return v

    @model_validator(mode="before")
    @classmethod
    def derive_instance_id(cls, data: Any) -> Any:
        """Derive a stable instance id from the workshop root."""
        if isinstance(data, dict) and not data.get("instance_id") and data.get("workshop_root"):
            root = Path(data["workshop_root"]).expanduser().resolve()
            digest = hashlib.md5(str(root).encode("utf-8")).hexdigest()[:12]
            data = {**data, "instance_id": f"{root.name}-{digest}"}
        return data

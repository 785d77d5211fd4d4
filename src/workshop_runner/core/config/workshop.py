"""Workshop and app settings read from package.json manifests.

Both the workshop root and each app may carry a package.json. Runner specific
settings live under the "workshop" key; app settings fall back to the
workshop's values.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

CONFIG_NAMESPACE = "workshop"
DEFAULT_INITIAL_ROUTE = "/"


def read_package_json(directory: Path) -> dict[str, Any] | None:
    """Read <directory>/package.json.

    Returns:
        Parsed manifest, or None when the file does not exist.

    Raises:
        ValueError: If the file exists but is not a JSON object.

    """
    path = directory / "package.json"
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def _namespace(manifest: dict[str, Any] | None) -> dict[str, Any]:
    if not manifest:
        return {}
    section = manifest.get(CONFIG_NAMESPACE) or {}
    return section if isinstance(section, dict) else {}


class WorkshopConfig(BaseModel):
    """Workshop-wide settings from the root package.json.

    Attributes:
        title: Human readable workshop title.
        initial_route: Default route opened for script apps.
        test_tab_enabled: Whether apps expose tests by default.
        sidecar_processes: Name to shell command of long-running helpers.

    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    initial_route: str = DEFAULT_INITIAL_ROUTE
    test_tab_enabled: bool = True
    sidecar_processes: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def load(cls, workshop_root: Path) -> "WorkshopConfig":
        """Load workshop settings, defaults when package.json is missing."""
        manifest = read_package_json(workshop_root)
        section = _namespace(manifest)
        return cls(
            title=section.get("title") or (manifest or {}).get("name", "") or workshop_root.name,
            initial_route=section.get("initialRoute", DEFAULT_INITIAL_ROUTE),
            test_tab_enabled=(section.get("testTab") or {}).get("enabled", True),
            sidecar_processes=section.get("sidecarProcesses") or {},
        )


class AppConfig(BaseModel):
    """Per-app settings derived from the app's package.json.

    Attributes:
        has_package_json: Whether the app directory has a manifest at all.
        name: Manifest "name" field.
        dev_script: Command behind scripts.dev, if any.
        test_script: Command behind workshop.scripts.test or scripts.test.
        initial_route: Route opened after the dev server starts.
        test_tab_enabled: False hides tests for this app.
        app_type: Optional app kind, "export" for export-only apps.

    """

    model_config = ConfigDict(frozen=True)

    has_package_json: bool = False
    name: str = ""
    dev_script: str | None = None
    test_script: str | None = None
    initial_route: str = DEFAULT_INITIAL_ROUTE
    test_tab_enabled: bool = True
    app_type: str | None = None

    @property
    def is_export_app(self) -> bool:
        return self.app_type == "export"

    @classmethod
    def load(cls, app_dir: Path, workshop: WorkshopConfig | None = None) -> "AppConfig":
        """Load app settings, falling back to workshop defaults.

        Args:
            app_dir: App directory.
            workshop: Workshop-wide settings used for defaults.

        Returns:
            AppConfig for the directory.

        """
        workshop = workshop or WorkshopConfig()
        manifest = read_package_json(app_dir)
        section = _namespace(manifest)
        scripts = (manifest or {}).get("scripts") or {}
        ns_scripts = section.get("scripts") or {}
        test_tab = section.get("testTab") or {}
        return cls(
            has_package_json=manifest is not None,
            name=(manifest or {}).get("name", ""),
            dev_script=scripts.get("dev"),
            test_script=ns_scripts.get("test") or scripts.get("test"),
            initial_route=section.get("initialRoute", workshop.initial_route),
            test_tab_enabled=test_tab.get("enabled", workshop.test_tab_enabled),
            app_type=section.get("appType"),
        )

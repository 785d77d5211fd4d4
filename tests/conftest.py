"""Pytest configuration and fixtures for workshop-runner tests.

Provides:
- workshop_root: a small workshop on disk (two exercises, one example)
- runner_config: RunnerConfig for that workshop with caches under tmp_path
- services: wired WorkshopServices, shut down after the test
- fake_package_manager: a Python stand-in for ``npm`` that serves HTTP on
  $PORT for ``run dev`` and prints a few lines for ``run test``
"""

import json
import socket
import sys
from pathlib import Path
from typing import Any

import pytest

from workshop_runner.core.config import RunnerConfig, load_runner_config
from workshop_runner.services import WorkshopServices

FAKE_PACKAGE_MANAGER = """\
import http.server
import os
import sys

command = sys.argv[2] if len(sys.argv) > 2 else ""
if command == "dev":
    port = int(os.environ["PORT"])
    print(f"listening on {port}", flush=True)
    server = http.server.HTTPServer(("127.0.0.1", port), http.server.SimpleHTTPRequestHandler)
    server.serve_forever()
elif command == "test":
    print("running tests", flush=True)
    print("1 passed", flush=True)
    print("deprecation warning", file=sys.stderr, flush=True)
    sys.exit(int(os.environ.get("FAKE_TEST_EXIT_CODE", "0")))
else:
    print(f"unknown command {command}", file=sys.stderr)
    sys.exit(2)
"""


def write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def write_json(path: Path, data: Any) -> Path:
    return write_file(path, json.dumps(data, indent=2))


def build_workshop(root: Path) -> Path:
    """Lay out a workshop with the directory conventions the runner expects.

    exercises/01.basics: two steps, browser apps, solution carries a test file
    exercises/02.hooks: one step, script apps with dev and test scripts
    examples/counter: one example app
    """
    write_json(root / "package.json", {"name": "react-fundamentals", "workshop": {"title": "React Fundamentals"}})

    basics = root / "exercises" / "01.basics"
    write_file(basics / "README.mdx", "# Basics\n")
    write_file(basics / "01.problem.hello" / "README.mdx", "# Hello World\n")
    write_file(basics / "01.problem.hello" / "index.js", "console.log('hello')\n")
    write_file(basics / "01.solution.hello" / "README.mdx", "# Hello World\n")
    write_file(basics / "01.solution.hello" / "index.js", "console.log('hello, world')\n")
    write_file(basics / "01.solution.hello" / "hello.test.js", "test('greets', () => {})\n")
    write_file(basics / "02.problem.styles" / "README.mdx", "# Styles\n")
    write_file(basics / "02.problem.styles" / "index.css", "body {}\n")
    write_file(basics / "02.solution.styles" / "README.mdx", "# Styles\n")
    write_file(basics / "02.solution.styles" / "index.css", "body { color: red; }\n")

    hooks = root / "exercises" / "02.hooks"
    write_file(hooks / "README.mdx", "# Hooks\n")
    manifest = {"name": "state", "scripts": {"dev": "node server.js", "test": "node test.js"}}
    for app_dir in ("01.problem", "01.solution"):
        write_file(hooks / app_dir / "README.mdx", "# State\n")
        write_json(hooks / app_dir / "package.json", manifest)
        write_file(hooks / app_dir / "server.js", f"// {app_dir}\n")

    write_file(root / "examples" / "counter" / "README.md", "# Counter\n")
    write_file(root / "examples" / "counter" / "index.js", "let count = 0\n")
    return root


@pytest.fixture
def workshop_root(tmp_path: Path) -> Path:
    """A freshly built workshop under tmp_path."""
    return build_workshop(tmp_path / "workshop")


@pytest.fixture
def config_overrides() -> dict[str, Any]:
    """Extra RunnerConfig values; override in a test module to customise."""
    return {}


@pytest.fixture
def runner_config(tmp_path: Path, workshop_root: Path, config_overrides: dict[str, Any]) -> RunnerConfig:
    """RunnerConfig isolated from the user's environment and cache dir."""
    overrides = {
        "cache_dir": tmp_path / "cache",
        "enable_watcher": False,
        "close_timeout": 5.0,
        "port_release_timeout": 5.0,
        "wait_on_app_timeout": 10.0,
        **config_overrides,
    }
    return load_runner_config(workshop_root, overrides=overrides, environ={})


@pytest.fixture
async def services(runner_config: RunnerConfig):
    """Wired services for the test workshop."""
    services = WorkshopServices.create(runner_config)
    yield services
    await services.shutdown()


@pytest.fixture
def unused_port() -> int:
    """A port nothing listens on right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def fake_package_manager(tmp_path: Path) -> str:
    """Command line usable as RunnerConfig.package_manager."""
    script = write_file(tmp_path / "fake_pm.py", FAKE_PACKAGE_MANAGER)
    return f'"{sys.executable}" "{script}"'

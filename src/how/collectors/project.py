"""
Project type detection for the working directory.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Callable, List

from ..types import ProjectContext

logger = logging.getLogger(__name__)

_NODE_FRAMEWORKS = (
    ("react", "react"),
    ("vue", "vue"),
    ("@angular/core", "angular"),
    ("next", "next.js"),
    ("express", "express"),
)
_PYTHON_MARKERS = ("requirements.txt", "setup.py", "pyproject.toml", "Pipfile")
_PYTHON_FRAMEWORKS = ("django", "flask", "fastapi")
_REQUIREMENT_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*")
_CARGO_NAME = re.compile(r'^\s*name\s*=\s*"([^"]+)"', re.MULTILINE)


def detect_node_project(directory: Path) -> ProjectContext | None:
    package_json = directory / "package.json"
    if not package_json.is_file():
        return None

    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Could not parse %s: %s", package_json, exc)
        return ProjectContext(type="nodejs")
    if not isinstance(data, dict):
        return ProjectContext(type="nodejs")

    dependencies = data.get("dependencies") or {}
    framework = next((name for dep, name in _NODE_FRAMEWORKS if dep in dependencies), "")
    return ProjectContext(
        type="nodejs",
        name=str(data.get("name") or ""),
        version=str(data.get("version") or ""),
        dependencies=sorted(dependencies),
        scripts={str(k): str(v) for k, v in (data.get("scripts") or {}).items()},
        framework=framework,
    )


def read_requirements(path: Path) -> List[str]:
    """Package names from a requirements.txt, without version specifiers."""
    names: List[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "-")):
            continue
        match = _REQUIREMENT_NAME.match(line)
        if match:
            names.append(match.group(0))
    return names


def detect_python_project(directory: Path) -> ProjectContext | None:
    marker = next((name for name in _PYTHON_MARKERS if (directory / name).is_file()), None)
    if marker is None and not any(directory.glob("*.py")):
        return None

    dependencies: List[str] = []
    framework = ""
    if marker == "requirements.txt":
        try:
            dependencies = read_requirements(directory / marker)
        except OSError as exc:
            logger.debug("Could not read requirements.txt: %s", exc)
        lowered = [dep.lower() for dep in dependencies]
        framework = next((fw for fw in _PYTHON_FRAMEWORKS if fw in lowered), "")

    return ProjectContext(
        type="python",
        name=directory.name,
        dependencies=dependencies,
        framework=framework,
    )


def detect_go_project(directory: Path) -> ProjectContext | None:
    go_mod = directory / "go.mod"
    if not go_mod.is_file():
        return None

    name = ""
    try:
        for line in go_mod.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line.startswith("module "):
                name = line[len("module ") :].strip().rsplit("/", 1)[-1]
                break
    except OSError as exc:
        logger.debug("Could not read go.mod: %s", exc)
    return ProjectContext(type="go", name=name)


def detect_rust_project(directory: Path) -> ProjectContext | None:
    cargo_toml = directory / "Cargo.toml"
    if not cargo_toml.is_file():
        return None

    name = directory.name
    try:
        match = _CARGO_NAME.search(cargo_toml.read_text(encoding="utf-8"))
        if match:
            name = match.group(1)
    except OSError as exc:
        logger.debug("Could not read Cargo.toml: %s", exc)
    return ProjectContext(type="rust", name=name)


def detect_docker_project(directory: Path) -> ProjectContext | None:
    has_dockerfile = (directory / "Dockerfile").is_file()
    has_compose = any(
        (directory / name).is_file() for name in ("docker-compose.yml", "docker-compose.yaml")
    )
    if not has_dockerfile and not has_compose:
        return None
    return ProjectContext(
        type="docker",
        name=directory.name,
        framework="docker-compose" if has_compose else "",
    )


# First match wins.
DETECTORS: List[Callable[[Path], ProjectContext | None]] = [
    detect_node_project,
    detect_python_project,
    detect_go_project,
    detect_rust_project,
    detect_docker_project,
]


def detect_project(directory: str | Path | None = None) -> ProjectContext | None:
    """Detect the project type of ``directory`` (default: the current directory)."""
    path = Path(directory) if directory is not None else Path.cwd()
    for detector in DETECTORS:
        project = detector(path)
        if project is not None:
            return project
    return None


__all__ = [
    "DETECTORS",
    "detect_docker_project",
    "detect_go_project",
    "detect_node_project",
    "detect_project",
    "detect_python_project",
    "detect_rust_project",
    "read_requirements",
]

"""Tests for project type detection."""

from __future__ import annotations

import json
from pathlib import Path

from how.collectors.project import detect_project, read_requirements


def write(directory: Path, name: str, text: str) -> None:
    (directory / name).write_text(text)


class TestNode:
    def test_package_json(self, tmp_path: Path) -> None:
        write(
            tmp_path,
            "package.json",
            json.dumps(
                {
                    "name": "web",
                    "version": "1.2.0",
                    "dependencies": {"react": "^18", "axios": "^1"},
                    "scripts": {"build": "vite build"},
                }
            ),
        )
        project = detect_project(tmp_path)

        assert project.type == "nodejs"
        assert project.name == "web"
        assert project.version == "1.2.0"
        assert project.dependencies == ["axios", "react"]
        assert project.scripts == {"build": "vite build"}
        assert project.framework == "react"

    def test_broken_package_json_still_node(self, tmp_path: Path) -> None:
        write(tmp_path, "package.json", "{oops")
        project = detect_project(tmp_path)

        assert project.type == "nodejs"
        assert project.name == ""


class TestPython:
    def test_requirements_framework(self, tmp_path: Path) -> None:
        write(tmp_path, "requirements.txt", "# deps\nFlask>=2.0\nrequests==2.31\n-e .\n")
        project = detect_project(tmp_path)

        assert project.type == "python"
        assert project.name == tmp_path.name
        assert project.dependencies == ["Flask", "requests"]
        assert project.framework == "flask"

    def test_loose_python_files(self, tmp_path: Path) -> None:
        write(tmp_path, "script.py", "print('hi')\n")
        project = detect_project(tmp_path)

        assert project.type == "python"
        assert project.dependencies == []

    def test_read_requirements(self, tmp_path: Path) -> None:
        write(tmp_path, "requirements.txt", "django[argon2]~=4.2\n\n--index-url x\nuvicorn\n")
        assert read_requirements(tmp_path / "requirements.txt") == ["django", "uvicorn"]


class TestOtherTypes:
    def test_go_module(self, tmp_path: Path) -> None:
        write(tmp_path, "go.mod", "module github.com/acme/tool\n\ngo 1.22\n")
        project = detect_project(tmp_path)

        assert project.type == "go"
        assert project.name == "tool"

    def test_rust_crate(self, tmp_path: Path) -> None:
        write(tmp_path, "Cargo.toml", '[package]\nname = "ripper"\nversion = "0.1.0"\n')
        project = detect_project(tmp_path)

        assert project.type == "rust"
        assert project.name == "ripper"

    def test_docker_compose(self, tmp_path: Path) -> None:
        write(tmp_path, "Dockerfile", "FROM alpine\n")
        write(tmp_path, "docker-compose.yml", "services: {}\n")
        project = detect_project(tmp_path)

        assert project.type == "docker"
        assert project.framework == "docker-compose"

    def test_plain_dockerfile(self, tmp_path: Path) -> None:
        write(tmp_path, "Dockerfile", "FROM alpine\n")
        assert detect_project(tmp_path).framework == ""


class TestPrecedence:
    def test_node_beats_python(self, tmp_path: Path) -> None:
        write(tmp_path, "package.json", "{}")
        write(tmp_path, "requirements.txt", "flask\n")
        assert detect_project(tmp_path).type == "nodejs"

    def test_python_beats_docker(self, tmp_path: Path) -> None:
        write(tmp_path, "Dockerfile", "FROM python\n")
        write(tmp_path, "pyproject.toml", "[project]\n")
        assert detect_project(tmp_path).type == "python"

    def test_nothing_detected(self, tmp_path: Path) -> None:
        write(tmp_path, "notes.txt", "hello")
        assert detect_project(tmp_path) is None

"""
Assemble a Context from the local environment.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping

from ..config import ContextSettings
from ..types import SHELLS, Context, FileContext
from .git import collect_git_context
from .history import read_recent_commands
from .project import detect_project

logger = logging.getLogger(__name__)

MAX_FILES = 50
MAX_CONTENT_BYTES = 2048

DEFAULT_EXCLUSIONS = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        "node_modules",
        "__pycache__",
        ".pytest_cache",
        "target",
        "build",
        "dist",
        ".next",
        ".DS_Store",
        "Thumbs.db",
    }
)

# Small files whose content is worth sending. Never includes .env files.
IMPORTANT_FILES = frozenset(
    {
        "README.md",
        "README.txt",
        "README.rst",
        "README",
        "package.json",
        "go.mod",
        "requirements.txt",
        "setup.py",
        "pyproject.toml",
        "Cargo.toml",
        "Dockerfile",
        "docker-compose.yml",
        "docker-compose.yaml",
        "Makefile",
        "makefile",
        ".gitignore",
        ".env.example",
        "tsconfig.json",
        "pom.xml",
        "build.gradle",
    }
)

RELEVANT_ENV_VARS = (
    "PATH",
    "HOME",
    "USER",
    "SHELL",
    "PWD",
    "NODE_ENV",
    "PYTHON_VERSION",
    "GOPATH",
    "GOROOT",
    "DOCKER_HOST",
    "KUBERNETES_NAMESPACE",
    "AWS_REGION",
    "AWS_PROFILE",
    "GIT_AUTHOR_NAME",
    "GIT_AUTHOR_EMAIL",
)

LANGUAGES = {
    ".go": "go",
    ".js": "javascript",
    ".ts": "typescript",
    ".py": "python",
    ".rs": "rust",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "zsh",
    ".fish": "fish",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
    ".sql": "sql",
    ".md": "markdown",
    ".txt": "text",
}


def detect_language(filename: str) -> str:
    return LANGUAGES.get(os.path.splitext(filename)[1], "unknown")


def detect_shell(environ: Mapping[str, str] | None = None) -> str:
    """Shell name from $SHELL, one of bash, zsh, fish or other."""
    environ = os.environ if environ is None else environ
    name = os.path.basename(environ.get("SHELL", ""))
    return name if name in SHELLS else "other"


class ContextGatherer:
    """
    Collect working directory, files, history, environment, git and project
    information according to ContextSettings.

    A collector that fails is logged and skipped; gathering never raises for
    an unreadable directory or a missing tool.
    """

    def __init__(
        self,
        settings: ContextSettings | None = None,
        cwd: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
        home: str | Path | None = None,
    ):
        self.settings = settings or ContextSettings()
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.environ = os.environ if environ is None else environ
        self.home = home

    def gather(self, conversation_id: str = "") -> Context:
        shell = detect_shell(self.environ)
        files: List[FileContext] = []
        if self.settings.include_files:
            try:
                files = self.gather_files()
            except OSError as exc:
                logger.warning("Skipping file context: %s", exc)

        recent_commands = (
            read_recent_commands(shell, self.settings.include_history, home=self.home)
            if self.settings.include_history > 0
            else []
        )
        environment = self.gather_environment() if self.settings.include_environment else {}
        git = collect_git_context(str(self.cwd)) if self.settings.include_git else None

        try:
            project = detect_project(self.cwd)
        except OSError as exc:
            logger.warning("Skipping project detection: %s", exc)
            project = None

        return Context(
            working_directory=str(self.cwd),
            shell=shell,
            files=files,
            recent_commands=recent_commands,
            environment=environment,
            git=git,
            project=project,
            conversation_id=conversation_id,
        )

    def should_exclude(self, name: str) -> bool:
        if name in DEFAULT_EXCLUSIONS:
            return True
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.settings.exclude_patterns)

    def gather_files(self) -> List[FileContext]:
        """List the working directory, reading small important files."""
        files: List[FileContext] = []
        for entry in sorted(os.scandir(self.cwd), key=lambda item: item.name):
            if self.should_exclude(entry.name):
                continue

            important = entry.name in IMPORTANT_FILES
            if entry.is_dir():
                files.append(FileContext(path=entry.name, kind="directory", is_important=important))
            else:
                size = entry.stat().st_size
                content = None
                if important and size < MAX_CONTENT_BYTES:
                    try:
                        content = Path(entry.path).read_text(encoding="utf-8", errors="replace")
                    except OSError as exc:
                        logger.debug("Could not read %s: %s", entry.path, exc)
                files.append(
                    FileContext(
                        path=entry.name,
                        kind="file",
                        size=size,
                        content=content,
                        language=detect_language(entry.name),
                        is_important=important,
                    )
                )

            if len(files) >= MAX_FILES:
                break
        return files

    def gather_environment(self) -> Dict[str, str]:
        return {name: self.environ[name] for name in RELEVANT_ENV_VARS if self.environ.get(name)}


def gather_context(settings: ContextSettings | None = None, **kwargs) -> Context:
    """Shortcut for ``ContextGatherer(settings, **kwargs).gather()``."""
    return ContextGatherer(settings, **kwargs).gather()


__all__ = [
    "ContextGatherer",
    "IMPORTANT_FILES",
    "MAX_FILES",
    "RELEVANT_ENV_VARS",
    "detect_language",
    "detect_shell",
    "gather_context",
]

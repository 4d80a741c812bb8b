"""Collectors that describe the user's local environment as a Context."""

from .gatherer import ContextGatherer, detect_shell, gather_context
from .git import collect_git_context
from .history import read_recent_commands
from .project import detect_project

__all__ = [
    "ContextGatherer",
    "collect_git_context",
    "detect_project",
    "detect_shell",
    "gather_context",
    "read_recent_commands",
]

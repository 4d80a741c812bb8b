"""
Shell history readers.

Each reader returns the most recent commands, oldest first, so their order is
preserved into the prompt. Exit codes are not recorded by these history
formats and are reported as 0.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from ..types import CommandHistory

logger = logging.getLogger(__name__)

HISTORY_FILES = {
    "bash": Path(".bash_history"),
    "zsh": Path(".zsh_history"),
    "fish": Path(".local") / "share" / "fish" / "fish_history",
}


def _timestamp(value: str) -> datetime | None:
    try:
        return datetime.fromtimestamp(int(value.strip()), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def _read_lines(path: Path) -> List[str]:
    return path.read_text(encoding="utf-8", errors="replace").splitlines()


def parse_bash_history(lines: List[str]) -> List[CommandHistory]:
    """One command per line; ``#<epoch>`` lines timestamp the next command."""
    commands: List[CommandHistory] = []
    pending: datetime | None = None
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            pending = _timestamp(line[1:])
            continue
        commands.append(CommandHistory(command=line, timestamp=pending))
        pending = None
    return commands


def parse_zsh_history(lines: List[str]) -> List[CommandHistory]:
    """
    Extended zsh format ``: <epoch>:<duration>;<command>``.

    Plain lines (zsh without EXTENDED_HISTORY) are kept without a timestamp.
    """
    commands: List[CommandHistory] = []
    for raw in lines:
        line = raw.rstrip()
        if not line.strip():
            continue
        if line.startswith(": ") and ";" in line:
            meta, command = line[2:].split(";", 1)
            timestamp = _timestamp(meta.split(":", 1)[0])
            if command.strip():
                commands.append(CommandHistory(command=command.strip(), timestamp=timestamp))
            continue
        commands.append(CommandHistory(command=line.strip()))
    return commands


def parse_fish_history(lines: List[str]) -> List[CommandHistory]:
    """Fish's YAML-like format of ``- cmd:`` entries with ``when:`` lines."""
    commands: List[CommandHistory] = []
    command: str | None = None
    when: datetime | None = None
    for line in lines:
        if line.startswith("- cmd: "):
            if command:
                commands.append(CommandHistory(command=command, timestamp=when))
            command = line[len("- cmd: ") :].strip()
            when = None
        elif line.startswith("  when: ") and command is not None:
            when = _timestamp(line[len("  when: ") :])
    if command:
        commands.append(CommandHistory(command=command, timestamp=when))
    return commands


_PARSERS = {
    "bash": parse_bash_history,
    "zsh": parse_zsh_history,
    "fish": parse_fish_history,
}


def read_recent_commands(
    shell: str, count: int, home: str | Path | None = None
) -> List[CommandHistory]:
    """
    Read the last ``count`` commands from the shell's history file.

    Unknown shells fall back to the bash format. A missing or unreadable
    history file yields an empty list.
    """
    if count <= 0:
        return []
    key = shell if shell in _PARSERS else "bash"
    path = Path(home or Path.home()) / HISTORY_FILES[key]
    try:
        lines = _read_lines(path)
    except OSError as exc:
        logger.debug("No %s history at %s: %s", key, path, exc)
        return []
    return _PARSERS[key](lines)[-count:]


__all__ = [
    "HISTORY_FILES",
    "parse_bash_history",
    "parse_fish_history",
    "parse_zsh_history",
    "read_recent_commands",
]

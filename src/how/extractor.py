"""
Extract suggested shell commands from model answers.

Answers are asked to end with a ``<structured_commands>`` JSON block. When
that block is missing or malformed, commands are recovered from shell code
fences instead.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

DANGEROUS_COMMANDS = ("rm", "sudo", "chmod", "mv", "dd", "mkfs", "fdisk")

CATEGORIES = ("file", "network", "system", "git", "package", "build", "container", "general")

_CATEGORY_BY_PROGRAM = {
    "ls": "file",
    "cat": "file",
    "grep": "file",
    "find": "file",
    "cp": "file",
    "mv": "file",
    "rm": "file",
    "mkdir": "file",
    "chmod": "file",
    "curl": "network",
    "wget": "network",
    "ping": "network",
    "ssh": "network",
    "netstat": "network",
    "ss": "network",
    "ps": "system",
    "top": "system",
    "df": "system",
    "du": "system",
    "free": "system",
    "kill": "system",
    "systemctl": "system",
    "git": "git",
    "npm": "package",
    "yarn": "package",
    "pip": "package",
    "apt": "package",
    "apt-get": "package",
    "brew": "package",
    "go": "build",
    "make": "build",
    "cargo": "build",
    "docker": "container",
    "kubectl": "container",
    "podman": "container",
}

_PROMPT_PREFIXES = ("$ ", "> ")


def _program(command: str) -> str:
    words = command.split()
    return words[0] if words else ""


def is_command_safe(command: str) -> bool:
    """Return False when the command starts with a destructive or privileged program."""
    return _program(command) not in DANGEROUS_COMMANDS


def categorize_command(command: str) -> str:
    """Guess the category of a command from its program name."""
    return _CATEGORY_BY_PROGRAM.get(_program(command), "general")


@dataclass
class SuggestedCommand:
    """A single command suggested by the model."""

    command: str
    description: str = ""
    category: str = "general"
    safe: bool = True
    required: bool = False
    order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuggestedCommand":
        command = str(data.get("command") or "").strip()
        category = str(data.get("category") or "") or categorize_command(command)
        safe = data.get("safe")
        return cls(
            command=command,
            description=str(data.get("description") or ""),
            category=category,
            safe=is_command_safe(command) if safe is None else bool(safe),
            required=bool(data.get("required", False)),
            order=int(data.get("order") or 0),
        )


@dataclass
class Workflow:
    """An ordered multi-step sequence of commands."""

    name: str
    description: str = ""
    steps: List[SuggestedCommand] = field(default_factory=list)


@dataclass
class ExtractedCommands:
    """Commands and workflows pulled out of one answer."""

    commands: List[SuggestedCommand] = field(default_factory=list)
    workflows: List[Workflow] = field(default_factory=list)
    structured: bool = False

    def all_commands(self) -> List[SuggestedCommand]:
        """Individual commands followed by every workflow step, as a flat list."""
        flat = list(self.commands)
        for workflow in self.workflows:
            flat.extend(workflow.steps)
        return flat

    def count(self) -> int:
        return len(self.commands) + sum(len(workflow.steps) for workflow in self.workflows)

    def has_commands(self) -> bool:
        return bool(self.commands or self.workflows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commands": [asdict(command) for command in self.commands],
            "workflows": [asdict(workflow) for workflow in self.workflows],
        }


class CommandExtractor:
    """Robustly extract suggested commands from model output."""

    STRUCTURED_PATTERN = re.compile(
        r"<structured_commands>\s*(.*?)\s*</structured_commands>", re.DOTALL
    )
    CODE_FENCE_PATTERN = re.compile(r"```([\w+-]*)[ \t]*\n(.*?)```", re.DOTALL)
    BLOCK_START = "<structured_commands>"
    SHELL_LANGUAGES = ("", "bash", "shell", "sh", "zsh", "console")

    def extract(self, text: str) -> ExtractedCommands:
        """
        Extract commands from an answer.

        The structured block wins when it parses; otherwise every non-comment
        line of the shell code fences becomes a command, numbered in order.
        """
        structured = self._extract_structured(text)
        if structured is not None:
            return structured
        return self._extract_from_code_blocks(text)

    def strip(self, text: str) -> str:
        """Remove the structured commands block so the answer can be displayed."""
        return self.STRUCTURED_PATTERN.sub("", text).rstrip()

    def visible_length(self, text: str, final: bool = False) -> int:
        """
        Length of the prefix of a partial answer that can be displayed.

        Everything from the structured block onward is held back, including
        a trailing fragment that may turn out to be the opening tag. With
        ``final=True`` the answer is complete and only a real block is hidden.
        """
        start = text.find(self.BLOCK_START)
        if start >= 0:
            return len(text[:start].rstrip())
        if final:
            return len(text)
        for size in range(min(len(text), len(self.BLOCK_START) - 1), 0, -1):
            if self.BLOCK_START.startswith(text[-size:]):
                return len(text) - size
        return len(text)

    def _extract_structured(self, text: str) -> ExtractedCommands | None:
        match = self.STRUCTURED_PATTERN.search(text)
        if not match:
            return None
        payload = match.group(1).strip()
        if payload.startswith("```"):
            payload = payload.strip("`").strip()
            if payload.startswith("json"):
                payload = payload[len("json") :]
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None

        try:
            commands = [
                SuggestedCommand.from_dict(item)
                for item in data.get("commands") or []
                if isinstance(item, dict)
            ]
            workflows = [
                Workflow(
                    name=str(item.get("name") or ""),
                    description=str(item.get("description") or ""),
                    steps=[
                        SuggestedCommand.from_dict(step)
                        for step in item.get("steps") or []
                        if isinstance(step, dict)
                    ],
                )
                for item in data.get("workflows") or []
                if isinstance(item, dict)
            ]
        except (TypeError, ValueError):
            return None
        return ExtractedCommands(commands=commands, workflows=workflows, structured=True)

    def _extract_from_code_blocks(self, text: str) -> ExtractedCommands:
        result = ExtractedCommands()
        order = 1
        for language, block in self.CODE_FENCE_PATTERN.findall(text):
            if language.lower() not in self.SHELL_LANGUAGES:
                continue
            for line in block.strip().splitlines():
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                for prefix in _PROMPT_PREFIXES:
                    if line.startswith(prefix):
                        line = line[len(prefix) :].strip()
                        break
                if not line:
                    continue
                result.commands.append(
                    SuggestedCommand(
                        command=line,
                        category=categorize_command(line),
                        safe=is_command_safe(line),
                        order=order,
                    )
                )
                order += 1
        return result


__all__ = [
    "CATEGORIES",
    "DANGEROUS_COMMANDS",
    "CommandExtractor",
    "ExtractedCommands",
    "SuggestedCommand",
    "Workflow",
    "categorize_command",
    "is_command_safe",
]

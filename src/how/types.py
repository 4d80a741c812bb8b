"""
Core value types shared by the provider layer, the collectors, and the CLI.

These primitives are provider-agnostic and are reused across adapters,
prompt assembly, the manager, and tests.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

SHELLS = ("bash", "zsh", "fish", "other")


class Role(str, Enum):
    """Conversation role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    """A single conversation turn sent to a backend."""

    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

_CONFIG_KEY_ALIASES = {
    "apiKey": "api_key",
    "baseUrl": "base_url",
    "baseURL": "base_url",
    "maxTokens": "max_tokens",
    "customHeaders": "custom_headers",
}


@dataclass(frozen=True)
class ProviderConfig:
    """
    Settings for one provider instance.

    Attributes:
        type: Backend discriminator (e.g. "anthropic", "openai").
        api_key: Credential for remote backends.
        model: Model identifier sent with every request.
        base_url: Optional endpoint override; empty means the backend default.
        max_tokens: Output token ceiling per request.
        timeout: Per-request timeout in seconds.
        temperature: Optional sampling temperature.
        custom_headers: Extra HTTP headers added to every request.
    """

    type: str
    api_key: str = ""
    model: str = ""
    base_url: str = ""
    max_tokens: int = 1024
    timeout: float = 60.0
    temperature: float | None = None
    custom_headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        # Read-only view over a private copy of the caller's headers.
        object.__setattr__(self, "custom_headers", MappingProxyType(dict(self.custom_headers)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProviderConfig":
        """Build a config from a mapping using snake_case or camelCase keys."""
        values: Dict[str, Any] = {}
        for key, value in data.items():
            values[_CONFIG_KEY_ALIASES.get(key, key)] = value

        temperature = values.get("temperature")
        max_tokens = values.get("max_tokens")
        return cls(
            type=str(values.get("type") or ""),
            api_key=str(values.get("api_key") or ""),
            model=str(values.get("model") or ""),
            base_url=str(values.get("base_url") or ""),
            max_tokens=int(max_tokens) if max_tokens is not None else 1024,
            timeout=float(values.get("timeout") or 60.0),
            temperature=float(temperature) if temperature is not None else None,
            custom_headers=dict(values.get("custom_headers") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase mapping used by the config file."""
        data: Dict[str, Any] = {
            "type": self.type,
            "apiKey": self.api_key,
            "model": self.model,
            "maxTokens": self.max_tokens,
        }
        if self.base_url:
            data["baseUrl"] = self.base_url
        if self.timeout != 60.0:
            data["timeout"] = self.timeout
        if self.temperature is not None:
            data["temperature"] = self.temperature
        if self.custom_headers:
            data["customHeaders"] = dict(self.custom_headers)
        return data


# -----------------------------------------------------------------------------
# Context
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FileContext:
    """A file or directory entry from the working directory."""

    path: str
    kind: str = "file"
    size: int = 0
    content: str | None = None
    summary: str | None = None
    language: str | None = None
    is_important: bool = False


@dataclass(frozen=True)
class CommandHistory:
    """A recent shell command."""

    command: str
    exit_code: int = 0
    timestamp: datetime | None = None
    output: str | None = None


@dataclass(frozen=True)
class GitContext:
    """Git repository information for the working directory."""

    repository: str = ""
    branch: str = ""
    commit_hash: str = ""
    status: str = ""
    recent_commits: List[str] = field(default_factory=list)
    remote_url: str = ""


@dataclass(frozen=True)
class ProjectContext:
    """Detected project information."""

    type: str
    name: str = ""
    version: str = ""
    dependencies: List[str] = field(default_factory=list)
    scripts: Dict[str, str] = field(default_factory=dict)
    framework: str = ""


@dataclass(frozen=True)
class HistoryEntry:
    """One completed prompt/response pair from an earlier turn."""

    prompt: str
    response: str
    timestamp: datetime | None = None


@dataclass(frozen=True)
class Context:
    """
    Per-call description of the user's local environment.

    Produced by the collectors, consumed read-only by prompt assembly and
    discarded after the response is returned.
    """

    working_directory: str = ""
    shell: str = ""
    files: List[FileContext] = field(default_factory=list)
    recent_commands: List[CommandHistory] = field(default_factory=list)
    environment: Dict[str, str] = field(default_factory=dict)
    git: GitContext | None = None
    project: ProjectContext | None = None
    conversation_id: str = ""
    previous_prompts: List[HistoryEntry] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (
                self.working_directory,
                self.shell,
                self.files,
                self.recent_commands,
                self.environment,
                self.git,
                self.project,
                self.conversation_id,
                self.previous_prompts,
            )
        )


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------


@dataclass
class Response:
    """
    Result of a completed prompt.

    Attributes:
        text: Plain text with markdown and an optional trailing
            ``<structured_commands>`` block.
        model: Model reported by the backend.
        provider: Type tag of the provider that answered.
        tokens_used: Input plus output tokens when the backend reports both.
        response_time: Wall-clock seconds from call entry to decode completion.
    """

    text: str
    model: str
    provider: str
    tokens_used: int = 0
    response_time: float = 0.0
    conversation_id: str | None = None
    confidence: float | None = None
    tags: List[str] | None = None
    language: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StreamResponse:
    """One element of a streamed answer: a text chunk or the terminal element."""

    text: str = ""
    done: bool = False
    error: Exception | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderInfo:
    """Descriptive information about a provider instance."""

    name: str
    type: str
    model: str
    version: str = ""
    description: str = ""


@dataclass(frozen=True)
class Capabilities:
    """Declared feature profile of a provider, used for scoring and gating."""

    streaming: bool = False
    function_calling: bool = False
    code_execution: bool = False
    image_analysis: bool = False
    conversation_memory: bool = False
    max_context_size: int = 0
    max_tokens: int = 0


__all__ = [
    "SHELLS",
    "Role",
    "Message",
    "ProviderConfig",
    "FileContext",
    "CommandHistory",
    "GitContext",
    "ProjectContext",
    "HistoryEntry",
    "Context",
    "Response",
    "StreamResponse",
    "ProviderInfo",
    "Capabilities",
]

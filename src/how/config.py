"""
Configuration file loading for the ``how`` command.

The file is YAML with camelCase keys::

    currentProvider: claude
    providers:
      claude:
        type: anthropic
        apiKey: sk-ant-...
        model: claude-3-5-sonnet-20241022
        maxTokens: 1024
    context:
      includeHistory: 10
      includeGit: true
    display:
      color: true

Location: the ``path`` argument, else ``$HOW_CONFIG``, else
``~/.config/how/config.yaml``. A missing file yields defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from .exceptions import ConfigFileError
from .types import ProviderConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "HOW"
CONFIG_ENV_VAR = f"{ENV_PREFIX}_CONFIG"
CURRENT_PROVIDER_ENV_VAR = f"{ENV_PREFIX}_CURRENT_PROVIDER"

# Provider types whose api key may come from the environment.
API_KEY_ENV_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

DEFAULT_EXCLUDE_PATTERNS = [
    ".git",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    "dist",
    "build",
    "target",
    ".DS_Store",
]


def default_config_dir() -> Path:
    return Path.home() / ".config" / "how"


def default_config_path() -> Path:
    return default_config_dir() / "config.yaml"


@dataclass
class ContextSettings:
    """Which parts of the local environment are gathered for each prompt."""

    include_files: bool = True
    include_history: int = 10
    include_environment: bool = False
    include_git: bool = True
    max_context_size: int = 8192
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContextSettings":
        defaults = cls()
        patterns = data.get("excludePatterns")
        return cls(
            include_files=bool(data.get("includeFiles", defaults.include_files)),
            include_history=int(data.get("includeHistory", defaults.include_history)),
            include_environment=bool(
                data.get("includeEnvironment", defaults.include_environment)
            ),
            include_git=bool(data.get("includeGit", defaults.include_git)),
            max_context_size=int(data.get("maxContextSize", defaults.max_context_size)),
            exclude_patterns=(
                [str(pattern) for pattern in patterns]
                if patterns is not None
                else defaults.exclude_patterns
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "includeFiles": self.include_files,
            "includeHistory": self.include_history,
            "includeEnvironment": self.include_environment,
            "includeGit": self.include_git,
            "maxContextSize": self.max_context_size,
            "excludePatterns": list(self.exclude_patterns),
        }


@dataclass
class DisplaySettings:
    """Terminal output preferences."""

    syntax_highlight: bool = True
    show_context: bool = False
    emoji: bool = True
    color: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DisplaySettings":
        defaults = cls()
        return cls(
            syntax_highlight=bool(data.get("syntaxHighlight", defaults.syntax_highlight)),
            show_context=bool(data.get("showContext", defaults.show_context)),
            emoji=bool(data.get("emoji", defaults.emoji)),
            color=bool(data.get("color", defaults.color)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "syntaxHighlight": self.syntax_highlight,
            "showContext": self.show_context,
            "emoji": self.emoji,
            "color": self.color,
        }


@dataclass
class AppConfig:
    """Parsed configuration file."""

    current_provider: str = ""
    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    context: ContextSettings = field(default_factory=ContextSettings)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    path: Path | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], path: Path | None = None) -> "AppConfig":
        providers: Dict[str, ProviderConfig] = {}
        for name, value in (data.get("providers") or {}).items():
            if not isinstance(value, Mapping):
                raise ValueError(f"provider '{name}' must be a mapping")
            providers[str(name)] = ProviderConfig.from_dict(value)
        return cls(
            current_provider=str(data.get("currentProvider") or ""),
            providers=providers,
            context=ContextSettings.from_dict(data.get("context") or {}),
            display=DisplaySettings.from_dict(data.get("display") or {}),
            path=path,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentProvider": self.current_provider,
            "providers": {name: cfg.to_dict() for name, cfg in self.providers.items()},
            "context": self.context.to_dict(),
            "display": self.display.to_dict(),
        }


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path:
        return Path(path).expanduser()
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return default_config_path()


def _apply_environment(config: AppConfig) -> AppConfig:
    current = os.environ.get(CURRENT_PROVIDER_ENV_VAR)
    if current:
        config.current_provider = current

    for name, provider_config in list(config.providers.items()):
        env_var = API_KEY_ENV_VARS.get(provider_config.type)
        if provider_config.api_key or not env_var:
            continue
        api_key = os.environ.get(env_var, "")
        if api_key:
            logger.debug("Using %s for provider %s", env_var, name)
            config.providers[name] = replace(provider_config, api_key=api_key)
    return config


def load_config(path: str | Path | None = None, apply_environment: bool = True) -> AppConfig:
    """
    Load the configuration file and apply environment overrides.

    With ``apply_environment=False`` the file is returned as written, which is
    what a caller that saves the config back wants.

    Raises:
        ConfigFileError: If the file exists but cannot be read or parsed.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        logger.warning("Config file not found: %s (using defaults)", config_path)
        config = AppConfig(path=config_path)
        return _apply_environment(config) if apply_environment else config

    try:
        with open(config_path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigFileError(str(config_path), exc) from exc

    if not isinstance(data, Mapping):
        raise ConfigFileError(
            str(config_path), ValueError("top level of the config file must be a mapping")
        )

    try:
        config = AppConfig.from_dict(data, path=config_path)
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigFileError(str(config_path), exc) from exc

    logger.info("Loaded %d provider(s) from %s", len(config.providers), config_path)
    return _apply_environment(config) if apply_environment else config


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    """Write the configuration as YAML, creating the directory if needed."""
    config_path = Path(path).expanduser() if path else (config.path or default_config_path())
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(config.to_dict(), handle, sort_keys=False, default_flow_style=False)
    except OSError as exc:
        raise ConfigFileError(str(config_path), exc) from exc
    return config_path


__all__ = [
    "API_KEY_ENV_VARS",
    "AppConfig",
    "ContextSettings",
    "DisplaySettings",
    "default_config_path",
    "load_config",
    "resolve_config_path",
    "save_config",
]

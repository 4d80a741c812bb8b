"""
Model catalog for the supported backends.

Single source of truth for per-model output ceilings and context windows.
Providers consult it to report ``Capabilities.max_context_size``.

Example:
    >>> from how.models import Anthropic, context_window_for
    >>> Anthropic.CLAUDE_SONNET_4.context_window
    200000
    >>> context_window_for("unknown-model", default=8192)
    8192
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class ModelInfo:
    """
    Metadata for an LLM model.

    Attributes:
        id: Model identifier (e.g., "gpt-4o", "claude-sonnet-4-20250514")
        provider: Provider type ("anthropic", "openai", "ollama")
        max_tokens: Maximum output tokens per request
        context_window: Maximum context length in tokens
    """

    id: str
    provider: str
    max_tokens: int
    context_window: int


class Anthropic:
    """Anthropic Claude models."""

    CLAUDE_OPUS_4 = ModelInfo(
        id="claude-opus-4-20250514", provider="anthropic", max_tokens=32000, context_window=200000
    )
    CLAUDE_SONNET_4 = ModelInfo(
        id="claude-sonnet-4-20250514", provider="anthropic", max_tokens=64000, context_window=200000
    )
    CLAUDE_3_7_SONNET = ModelInfo(
        id="claude-3-7-sonnet-20250219",
        provider="anthropic",
        max_tokens=64000,
        context_window=200000,
    )
    CLAUDE_3_5_SONNET = ModelInfo(
        id="claude-3-5-sonnet-20241022",
        provider="anthropic",
        max_tokens=8192,
        context_window=200000,
    )
    CLAUDE_3_5_HAIKU = ModelInfo(
        id="claude-3-5-haiku-20241022",
        provider="anthropic",
        max_tokens=8192,
        context_window=200000,
    )


class OpenAI:
    """OpenAI GPT models."""

    GPT_4O = ModelInfo(id="gpt-4o", provider="openai", max_tokens=16384, context_window=128000)
    GPT_4O_MINI = ModelInfo(
        id="gpt-4o-mini", provider="openai", max_tokens=16384, context_window=128000
    )
    GPT_4_1 = ModelInfo(id="gpt-4.1", provider="openai", max_tokens=32768, context_window=1047576)
    GPT_4_1_MINI = ModelInfo(
        id="gpt-4.1-mini", provider="openai", max_tokens=32768, context_window=1047576
    )
    GPT_4_TURBO = ModelInfo(
        id="gpt-4-turbo", provider="openai", max_tokens=4096, context_window=128000
    )


class Ollama:
    """Common local models served by Ollama."""

    LLAMA_3_2 = ModelInfo(id="llama3.2", provider="ollama", max_tokens=4096, context_window=128000)
    LLAMA_3_1 = ModelInfo(id="llama3.1", provider="ollama", max_tokens=4096, context_window=128000)
    MISTRAL = ModelInfo(id="mistral", provider="ollama", max_tokens=4096, context_window=32768)
    QWEN_2_5_CODER = ModelInfo(
        id="qwen2.5-coder", provider="ollama", max_tokens=8192, context_window=32768
    )


def _collect(namespace: type) -> List[ModelInfo]:
    return [value for value in vars(namespace).values() if isinstance(value, ModelInfo)]


ALL_MODELS: List[ModelInfo] = _collect(Anthropic) + _collect(OpenAI) + _collect(Ollama)
MODELS_BY_ID: Dict[str, ModelInfo] = {model.id: model for model in ALL_MODELS}


def models_for(provider: str) -> List[ModelInfo]:
    """Return catalog entries for a provider type in declaration order."""
    return [model for model in ALL_MODELS if model.provider == provider]


def context_window_for(model_id: str, default: int) -> int:
    """Return the context window of a known model, or ``default``."""
    info = MODELS_BY_ID.get(model_id)
    return info.context_window if info else default


__all__ = [
    "ModelInfo",
    "Anthropic",
    "OpenAI",
    "Ollama",
    "ALL_MODELS",
    "MODELS_BY_ID",
    "models_for",
    "context_window_for",
]

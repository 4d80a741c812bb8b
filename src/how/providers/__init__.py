"""Provider implementations for the supported LLM backends.

Importing this package registers every built-in backend with the default
factory in ``how.registry``.
"""

from ..registry import register_provider
from .anthropic_provider import AnthropicProvider
from .base import PromptStream, Provider
from .ollama_provider import OllamaProvider
from .openai_provider import OpenAIProvider
from .stubs import LocalProvider

BUILTIN_PROVIDERS = {
    AnthropicProvider.name: AnthropicProvider,
    OpenAIProvider.name: OpenAIProvider,
    OllamaProvider.name: OllamaProvider,
    LocalProvider.name: LocalProvider,
}

for _type, _constructor in BUILTIN_PROVIDERS.items():
    register_provider(_type, _constructor)

__all__ = [
    "Provider",
    "PromptStream",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "LocalProvider",
    "BUILTIN_PROVIDERS",
]

"""
Ollama provider adapter for local LLM inference.
"""

from __future__ import annotations

from .openai_provider import OpenAIProvider


class OllamaProvider(OpenAIProvider):
    """
    Adapter for Ollama models using its OpenAI-compatible API.

    Ollama serves the Chat Completions format under ``/v1``, so requests,
    streaming and error mapping are shared with OpenAIProvider. No API key is
    required.

    Example:
        >>> from how.types import ProviderConfig
        >>> provider = OllamaProvider(ProviderConfig(type="ollama", model="llama3.2"))
        >>> provider.get_models()

    Note:
        Requires Ollama to be installed and running. Start it with `ollama serve`
        and pull the model first with `ollama pull <model>`.
    """

    name = "ollama"
    display_name = "Ollama"
    description = "Local models served by Ollama through its OpenAI-compatible API."
    label = "Ollama"

    DEFAULT_BASE_URL = "http://localhost:11434/v1"
    MAX_TOKENS_LIMIT = 16384
    DEFAULT_CONTEXT_SIZE = 8192
    REQUIRES_API_KEY = False
    FUNCTION_CALLING = False
    IMAGE_ANALYSIS = False

    def _client_api_key(self) -> str:
        # The OpenAI client needs a non-empty key; Ollama ignores it.
        return self.config.api_key or "ollama"


__all__ = ["OllamaProvider"]

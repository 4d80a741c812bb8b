"""
Local provider for offline testing and development.

This provider doesn't call any external API and simply echoes the prompt.
"""

from __future__ import annotations

import time
from typing import Iterator, List, Tuple

from ..models import ALL_MODELS
from ..prompt import PromptBuilder
from ..types import Capabilities, Context, ProviderConfig, ProviderInfo, Response
from .base import PromptStream, Provider, check_config, estimate_tokens


class LocalProvider(Provider):
    """
    Local fallback provider.

    This does not call a model. It echoes the user's prompt and is useful for
    offline/manual testing or as a safe default. Prompt assembly still runs,
    so template and history errors surface exactly as they would remotely.
    """

    name = "local"
    display_name = "Local Echo"
    description = "Offline provider that echoes the prompt back."
    supports_streaming = True

    MAX_TOKENS_LIMIT = 4096
    MAX_CONTEXT_SIZE = 8192

    def __init__(self, config: ProviderConfig, *, prompt_builder: PromptBuilder | None = None):
        self.config = config
        self.prompt_builder = prompt_builder or PromptBuilder()

    def _answer(self, prompt: str, context: Context | None) -> Tuple[str, int]:
        self.validate_config()
        system_prompt = self.prompt_builder.build(context)
        messages = self.prompt_builder.messages(prompt, context)
        text = f"[local provider: {self.config.model}] {prompt or 'No prompt provided.'}"
        return text, estimate_tokens(system_prompt, messages)

    def send_prompt(self, prompt: str, context: Context | None = None) -> Response:
        started = time.perf_counter()
        text, tokens_used = self._answer(prompt, context)
        return Response(
            text=text,
            model=self.config.model,
            provider=self.name,
            tokens_used=tokens_used,
            response_time=time.perf_counter() - started,
            conversation_id=(context.conversation_id or None) if context is not None else None,
        )

    def send_prompt_stream(self, prompt: str, context: Context | None = None) -> PromptStream:
        text, _ = self._answer(prompt, context)
        return PromptStream(self._words(text), provider=self.name, model=self.config.model)

    @staticmethod
    def _words(text: str) -> Iterator[str]:
        for token in text.split():
            yield token + " "

    def validate_config(self) -> None:
        check_config(self.config, require_api_key=False, max_tokens_limit=self.MAX_TOKENS_LIMIT)

    def get_info(self) -> ProviderInfo:
        return ProviderInfo(
            name=self.display_name,
            type=self.name,
            model=self.config.model,
            description=self.description,
        )

    def get_capabilities(self) -> Capabilities:
        return Capabilities(
            streaming=True,
            conversation_memory=True,
            max_context_size=self.MAX_CONTEXT_SIZE,
            max_tokens=self.MAX_TOKENS_LIMIT,
        )

    def get_models(self) -> List[str]:
        """Return every catalog model id, plus the configured one if it is unknown."""
        ids = [model.id for model in ALL_MODELS]
        if self.config.model and self.config.model not in ids:
            ids.append(self.config.model)
        return ids


__all__ = ["LocalProvider"]

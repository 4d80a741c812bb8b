"""
Anthropic provider adapter for the shell assistant.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List

import httpx

from ..exceptions import DecodeError, ProviderError, UnsupportedError
from ..prompt import PromptBuilder
from ..types import Capabilities, Context, ProviderConfig, ProviderInfo, Response
from .base import PromptStream, Provider, check_config, ensure_context_fits, translate_sdk_error

logger = logging.getLogger(__name__)


class AnthropicProvider(Provider):
    """
    Anthropic Messages API adapter.

    Requests are sent through the ``anthropic`` SDK with retries disabled and
    a bounded per-request timeout. Response bodies are decoded here rather
    than by the SDK so a malformed body surfaces as a DecodeError.

    Example:
        >>> from how.types import ProviderConfig
        >>> config = ProviderConfig(type="anthropic", api_key="sk-ant-", model="claude-3-5-haiku")
        >>> provider = AnthropicProvider(config)
        >>> provider.send_prompt("how do I list open ports?").text
    """

    name = "anthropic"
    display_name = "Anthropic Claude AI"
    description = "Anthropic's Claude AI assistant, designed for safe and helpful interactions."
    supports_streaming = False

    ANTHROPIC_VERSION = "2023-06-01"
    # Endpoint paths are joined onto this, so it carries the API version.
    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
    MESSAGES_PATH = "messages"
    MODELS_PATH = "models"
    MAX_TOKENS_LIMIT = 4096
    MAX_CONTEXT_SIZE = 200000

    def __init__(
        self,
        config: ProviderConfig,
        *,
        http_client: Any = None,
        prompt_builder: PromptBuilder | None = None,
    ):
        try:
            import anthropic
        except ImportError as exc:
            raise ProviderError(
                "anthropic package not installed. Install with `pip install anthropic`."
            ) from exc

        self.config = config
        self.base_url = config.base_url or self.DEFAULT_BASE_URL
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._sdk = anthropic

        headers = {"anthropic-version": self.ANTHROPIC_VERSION}
        headers.update(config.custom_headers)
        client_args: Dict[str, Any] = {
            "api_key": config.api_key,
            "base_url": self.base_url,
            "timeout": config.timeout,
            "max_retries": 0,
            "default_headers": headers,
        }
        if http_client is not None:
            client_args["http_client"] = http_client
        self._client = anthropic.Anthropic(**client_args)

    def send_prompt(self, prompt: str, context: Context | None = None) -> Response:
        """
        Send a prompt to the Messages API and wait for the full answer.

        Args:
            prompt: The user's question.
            context: Local environment and earlier turns.

        Returns:
            Response with the first text block, token usage and timing.

        Raises:
            ConfigValidationError: If the captured config is invalid.
            ContextTooLargeError: If the prompt cannot fit the context window.
            TransportError: On network failure or timeout.
            RemoteError: On a non-success status.
            DecodeError: On a malformed body.
        """
        started = time.perf_counter()
        self.validate_config()

        system_prompt = self.prompt_builder.build(context)
        messages = self.prompt_builder.messages(prompt, context)
        ensure_context_fits(system_prompt, messages, self.MAX_CONTEXT_SIZE)

        request_args: Dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": system_prompt,
            "messages": [message.to_dict() for message in messages],
            "stream": False,
        }
        if self.config.temperature is not None:
            request_args["temperature"] = self.config.temperature

        logger.debug(
            "Sending prompt to Anthropic model %s (%d messages)", self.config.model, len(messages)
        )
        try:
            http_response = self._client.post(
                self.MESSAGES_PATH, body=request_args, cast_to=httpx.Response
            )
        except Exception as exc:
            raise translate_sdk_error(exc, self._sdk, "Anthropic", self.config.timeout) from exc

        body = self._decode_body(http_response)
        content = body.get("content") or []
        if not isinstance(content, list):
            raise DecodeError("Anthropic response 'content' is not a list")

        text = ""
        if content:
            first = content[0]
            if not isinstance(first, dict):
                raise DecodeError("Anthropic response content block is not an object")
            text = first.get("text") or ""

        usage = body.get("usage") or {}
        try:
            tokens_used = int(usage.get("input_tokens") or 0) + int(usage.get("output_tokens") or 0)
        except (AttributeError, TypeError, ValueError) as exc:
            raise DecodeError(f"Anthropic response has malformed usage: {usage!r}") from exc

        return Response(
            text=text,
            model=body.get("model") or self.config.model,
            provider=self.name,
            tokens_used=tokens_used,
            response_time=time.perf_counter() - started,
            conversation_id=(context.conversation_id or None) if context is not None else None,
        )

    def send_prompt_stream(self, prompt: str, context: Context | None = None) -> PromptStream:
        raise UnsupportedError("streaming", provider_type=self.name)

    def validate_config(self) -> None:
        check_config(self.config, max_tokens_limit=self.MAX_TOKENS_LIMIT)

    def get_info(self) -> ProviderInfo:
        return ProviderInfo(
            name=self.display_name,
            type=self.name,
            model=self.config.model,
            version=self.ANTHROPIC_VERSION,
            description=self.description,
        )

    def get_capabilities(self) -> Capabilities:
        return Capabilities(
            streaming=False,
            function_calling=False,
            code_execution=False,
            image_analysis=False,
            conversation_memory=True,
            max_context_size=self.MAX_CONTEXT_SIZE,
            max_tokens=self.MAX_TOKENS_LIMIT,
        )

    def get_models(self) -> List[str]:
        """List model ids from ``GET {base_url}/models`` in the order returned."""
        try:
            http_response = self._client.get(self.MODELS_PATH, cast_to=httpx.Response)
        except Exception as exc:
            raise translate_sdk_error(exc, self._sdk, "Anthropic", self.config.timeout) from exc

        entries = self._decode_body(http_response).get("data") or []
        if not isinstance(entries, list):
            raise DecodeError("Anthropic model listing 'data' is not a list")
        return [str(entry["id"]) for entry in entries if isinstance(entry, dict) and "id" in entry]

    def _decode_body(self, http_response: Any) -> Dict[str, Any]:
        try:
            body = http_response.json()
        except ValueError as exc:
            raise DecodeError(f"failed to decode Anthropic response: {exc}") from exc
        if not isinstance(body, dict):
            raise DecodeError("Anthropic response body is not a JSON object")
        return body


__all__ = ["AnthropicProvider"]

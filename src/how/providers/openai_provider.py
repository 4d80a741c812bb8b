"""
OpenAI provider adapter for the shell assistant.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterator, List

import httpx

from ..exceptions import DecodeError, ProviderError, TransportError
from ..models import context_window_for
from ..prompt import PromptBuilder
from ..types import Capabilities, Context, Message, ProviderConfig, ProviderInfo, Response
from .base import (
    PromptStream,
    Provider,
    check_config,
    ensure_context_fits,
    translate_sdk_error,
    transport_kind,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(Provider):
    """Adapter that speaks to OpenAI's Chat Completions API."""

    name = "openai"
    display_name = "OpenAI"
    description = "OpenAI GPT models through the Chat Completions API."
    label = "OpenAI"
    supports_streaming = True

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    MAX_TOKENS_LIMIT = 16384
    DEFAULT_CONTEXT_SIZE = 128000
    REQUIRES_API_KEY = True
    FUNCTION_CALLING = True
    IMAGE_ANALYSIS = True

    def __init__(
        self,
        config: ProviderConfig,
        *,
        http_client: Any = None,
        prompt_builder: PromptBuilder | None = None,
    ):
        try:
            import openai
        except ImportError as exc:
            raise ProviderError(
                "openai package not installed. Install with `pip install openai`."
            ) from exc

        self.config = config
        self.base_url = config.base_url or self.DEFAULT_BASE_URL
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._sdk = openai

        client_args: Dict[str, Any] = {
            "api_key": self._client_api_key(),
            "base_url": self.base_url,
            "timeout": config.timeout,
            "max_retries": 0,
            "default_headers": dict(config.custom_headers),
        }
        if http_client is not None:
            client_args["http_client"] = http_client
        self._client = openai.OpenAI(**client_args)

    def _client_api_key(self) -> str:
        return self.config.api_key

    def send_prompt(self, prompt: str, context: Context | None = None) -> Response:
        started = time.perf_counter()
        request_args = self._request_args(prompt, context)

        logger.debug("Sending prompt to %s model %s", self.label, self.config.model)
        try:
            raw = self._client.chat.completions.with_raw_response.create(**request_args)
        except Exception as exc:
            raise translate_sdk_error(exc, self._sdk, self.label, self.config.timeout) from exc

        body = self._decode_body(raw.http_response)
        choices = body.get("choices") or []
        if not isinstance(choices, list):
            raise DecodeError(f"{self.label} response 'choices' is not a list")

        text = ""
        if choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if not isinstance(message, dict):
                raise DecodeError(f"{self.label} response choice has no message object")
            text = message.get("content") or ""

        usage = body.get("usage") or {}
        try:
            tokens_used = int(usage.get("prompt_tokens") or 0) + int(
                usage.get("completion_tokens") or 0
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise DecodeError(f"{self.label} response has malformed usage: {usage!r}") from exc

        return Response(
            text=text,
            model=body.get("model") or self.config.model,
            provider=self.name,
            tokens_used=tokens_used,
            response_time=time.perf_counter() - started,
            conversation_id=(context.conversation_id or None) if context is not None else None,
        )

    def send_prompt_stream(self, prompt: str, context: Context | None = None) -> PromptStream:
        """
        Stream the answer as server-sent chunks.

        Configuration and prompt errors raise immediately. The request itself
        is opened on the first ``next()``; failures after that arrive as the
        terminal element's ``error``.
        """
        request_args = self._request_args(prompt, context)
        request_args["stream"] = True
        return PromptStream(
            self._iter_chunks(request_args), provider=self.name, model=self.config.model
        )

    def _request_args(self, prompt: str, context: Context | None) -> Dict[str, Any]:
        self.validate_config()

        system_prompt = self.prompt_builder.build(context)
        messages = self.prompt_builder.messages(prompt, context)
        ensure_context_fits(system_prompt, messages, self._context_size())

        request_args: Dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": self._format_messages(system_prompt, messages),
        }
        if self.config.temperature is not None:
            request_args["temperature"] = self.config.temperature
        return request_args

    def _iter_chunks(self, request_args: Dict[str, Any]) -> Iterator[str]:
        logger.debug("Opening %s stream for model %s", self.label, self.config.model)
        try:
            stream = self._client.chat.completions.create(**request_args)
        except Exception as exc:
            raise translate_sdk_error(exc, self._sdk, self.label, self.config.timeout) from exc

        try:
            for chunk in stream:
                text = self._chunk_text(chunk)
                if text:
                    yield text
        except self._sdk.OpenAIError as exc:
            raise translate_sdk_error(exc, self._sdk, self.label, self.config.timeout) from exc
        except httpx.TimeoutException as exc:
            raise TransportError(f"{self.label} stream timed out", "timeout") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{self.label} stream failed: {exc}", transport_kind(exc)) from exc
        except ValueError as exc:
            raise DecodeError(f"failed to decode {self.label} stream chunk: {exc}") from exc
        finally:
            stream.close()

    @staticmethod
    def _chunk_text(chunk: Any) -> str:
        choices = getattr(chunk, "choices", None) or []
        if not choices:
            return ""
        delta = getattr(choices[0], "delta", None)
        content = getattr(delta, "content", None) if delta is not None else None
        if isinstance(content, list):
            content = "".join(part.text for part in content if getattr(part, "text", None))
        return content or ""

    def _format_messages(self, system_prompt: str, messages: List[Message]) -> List[Dict[str, str]]:
        payload = [{"role": "system", "content": system_prompt}]
        payload.extend(message.to_dict() for message in messages)
        return payload

    def _context_size(self) -> int:
        return context_window_for(self.config.model, self.DEFAULT_CONTEXT_SIZE)

    def validate_config(self) -> None:
        check_config(
            self.config,
            require_api_key=self.REQUIRES_API_KEY,
            max_tokens_limit=self.MAX_TOKENS_LIMIT,
        )

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
            function_calling=self.FUNCTION_CALLING,
            code_execution=False,
            image_analysis=self.IMAGE_ANALYSIS,
            conversation_memory=True,
            max_context_size=self._context_size(),
            max_tokens=self.MAX_TOKENS_LIMIT,
        )

    def get_models(self) -> List[str]:
        """List model ids from ``GET {base}/models`` in the order returned."""
        try:
            raw = self._client.models.with_raw_response.list()
        except Exception as exc:
            raise translate_sdk_error(exc, self._sdk, self.label, self.config.timeout) from exc

        entries = self._decode_body(raw.http_response).get("data") or []
        if not isinstance(entries, list):
            raise DecodeError(f"{self.label} model listing 'data' is not a list")
        return [str(entry["id"]) for entry in entries if isinstance(entry, dict) and "id" in entry]

    def _decode_body(self, http_response: Any) -> Dict[str, Any]:
        try:
            body = http_response.json()
        except ValueError as exc:
            raise DecodeError(f"failed to decode {self.label} response: {exc}") from exc
        if not isinstance(body, dict):
            raise DecodeError(f"{self.label} response body is not a JSON object")
        return body


__all__ = ["OpenAIProvider"]

"""
Wire-level tests for OpenAIProvider and OllamaProvider.

Both adapters use the real ``openai`` SDK client against an
httpx.MockTransport, including server-sent event streaming.
"""

from __future__ import annotations

import json
import threading
from dataclasses import replace

import httpx
import pytest

from how.exceptions import (
    ContextTooLargeError,
    DecodeError,
    InvalidAPIKeyError,
    QuotaExceededError,
    RateLimitedError,
    RemoteError,
    RequestCancelledError,
    TransportError,
)
from how.providers.ollama_provider import OllamaProvider
from how.providers.openai_provider import OpenAIProvider
from how.types import ProviderConfig

COMPLETION_BODY = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "gpt-4o-2024-08-06",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Run `df -h`."},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 20, "completion_tokens": 5, "total_tokens": 25},
}


def sse(*texts: str) -> httpx.Response:
    """Build a streaming response with one chunk per text, then [DONE]."""
    events = []
    for text in texts:
        chunk = {
            "id": "chatcmpl-1",
            "object": "chat.completion.chunk",
            "created": 1700000000,
            "model": "gpt-4o",
            "choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}],
        }
        events.append(f"data: {json.dumps(chunk)}\n\n")
    events.append("data: [DONE]\n\n")
    return httpx.Response(
        200,
        content="".join(events).encode(),
        headers={"content-type": "text/event-stream"},
    )


def make_provider(config, transport, cls=OpenAIProvider):
    return cls(config, http_client=transport.client())


class TestOpenAIRequest:
    """Request shaping for Chat Completions."""

    def test_posts_chat_completions(self, openai_config, recording_transport) -> None:
        transport = recording_transport(httpx.Response(200, json=COMPLETION_BODY))
        make_provider(openai_config, transport).send_prompt("disk usage?")

        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"

    def test_system_message_comes_first(
        self, openai_config, recording_transport, sample_context
    ) -> None:
        transport = recording_transport(httpx.Response(200, json=COMPLETION_BODY))
        make_provider(openai_config, transport).send_prompt("e", sample_context)

        body = transport.last_json
        roles = [message["role"] for message in body["messages"]]
        assert roles == ["system", "user", "assistant", "user", "assistant", "user"]
        assert "Shell: zsh" in body["messages"][0]["content"]
        assert body["messages"][-1]["content"] == "e"
        assert body["model"] == "gpt-4o"
        assert body["max_tokens"] == 1024


class TestOpenAIResponse:
    """Decoding of Chat Completions answers."""

    def test_response_fields(self, openai_config, recording_transport) -> None:
        transport = recording_transport(httpx.Response(200, json=COMPLETION_BODY))
        response = make_provider(openai_config, transport).send_prompt("disk usage?")

        assert response.text == "Run `df -h`."
        assert response.model == "gpt-4o-2024-08-06"
        assert response.provider == "openai"
        assert response.tokens_used == 25

    def test_no_choices_is_empty_text(self, openai_config, recording_transport) -> None:
        body = dict(COMPLETION_BODY, choices=[])
        transport = recording_transport(httpx.Response(200, json=body))

        assert make_provider(openai_config, transport).send_prompt("hi").text == ""

    def test_choice_without_message_is_decode_error(
        self, openai_config, recording_transport
    ) -> None:
        body = dict(COMPLETION_BODY, choices=[{"index": 0}])
        transport = recording_transport(httpx.Response(200, json=body))

        with pytest.raises(DecodeError):
            make_provider(openai_config, transport).send_prompt("hi")

    def test_list_body_is_decode_error(self, openai_config, recording_transport) -> None:
        transport = recording_transport(httpx.Response(200, json=[1, 2]))

        with pytest.raises(DecodeError):
            make_provider(openai_config, transport).send_prompt("hi")


class TestOpenAIErrors:
    """Status and transport error mapping."""

    def test_rate_limited(self, openai_config, recording_transport) -> None:
        transport = recording_transport(
            httpx.Response(
                429, json={"error": {"message": "slow down", "type": "requests", "code": None}}
            )
        )
        with pytest.raises(RateLimitedError) as exc_info:
            make_provider(openai_config, transport).send_prompt("hi")

        assert exc_info.value.status == 429
        assert exc_info.value.message == "slow down"

    def test_insufficient_quota(self, openai_config, recording_transport) -> None:
        transport = recording_transport(
            httpx.Response(
                402, json={"error": {"message": "no credit", "type": "insufficient_quota"}}
            )
        )
        with pytest.raises(QuotaExceededError):
            make_provider(openai_config, transport).send_prompt("hi")

    def test_timeout(self, openai_config, recording_transport) -> None:
        transport = recording_transport(httpx.ReadTimeout("slow"))
        with pytest.raises(TransportError) as exc_info:
            make_provider(openai_config, transport).send_prompt("hi")

        assert exc_info.value.transport_kind == "timeout"

    def test_missing_key_never_reaches_network(self, openai_config, recording_transport) -> None:
        transport = recording_transport()
        provider = make_provider(replace(openai_config, api_key=""), transport)

        with pytest.raises(InvalidAPIKeyError):
            provider.send_prompt("hi")
        assert transport.requests == []


class TestOpenAIStreaming:
    """Server-sent event streaming through PromptStream."""

    def test_chunks_then_terminal_element(self, openai_config, recording_transport) -> None:
        transport = recording_transport(sse("Hel", "lo", " world"))
        stream = make_provider(openai_config, transport).send_prompt_stream("hi")

        elements = list(stream)

        assert [element.text for element in elements[:-1]] == ["Hel", "lo", " world"]
        assert all(not element.done for element in elements[:-1])
        terminal = elements[-1]
        assert terminal.done is True
        assert terminal.error is None
        assert terminal.metadata["characters"] == len("Hello world")
        assert stream.text == "Hello world"
        assert stream.closed
        assert transport.last_json["stream"] is True

    def test_stream_opens_lazily(self, openai_config, recording_transport) -> None:
        transport = recording_transport(sse("a"))
        stream = make_provider(openai_config, transport).send_prompt_stream("hi")

        assert transport.requests == []
        assert stream.state == "idle"
        next(stream)
        assert len(transport.requests) == 1
        assert stream.state == "open"

    def test_cancel_emits_cancelled_terminal(self, openai_config, recording_transport) -> None:
        transport = recording_transport(sse("one", "two", "three"))
        stream = make_provider(openai_config, transport).send_prompt_stream("hi")

        first = next(stream)
        canceller = threading.Thread(target=stream.cancel)
        canceller.start()
        canceller.join()
        terminal = next(stream)

        assert first.text == "one"
        assert terminal.done is True
        assert isinstance(terminal.error, RequestCancelledError)
        with pytest.raises(StopIteration):
            next(stream)

    def test_status_error_becomes_terminal_error(
        self, openai_config, recording_transport
    ) -> None:
        transport = recording_transport(
            httpx.Response(500, json={"error": {"message": "boom", "type": "server_error"}})
        )
        stream = make_provider(openai_config, transport).send_prompt_stream("hi")

        elements = list(stream)

        assert len(elements) == 1
        assert elements[0].done is True
        assert isinstance(elements[0].error, RemoteError)
        assert elements[0].error.status == 500

    def test_prompt_errors_raise_before_streaming(
        self, openai_config, recording_transport
    ) -> None:
        transport = recording_transport()
        config = replace(openai_config, model="gpt-4o")
        provider = make_provider(config, transport)

        with pytest.raises(ContextTooLargeError):
            provider.send_prompt_stream("x" * 600_000)
        assert transport.requests == []

    def test_close_before_iteration(self, openai_config, recording_transport) -> None:
        transport = recording_transport(sse("a"))
        stream = make_provider(openai_config, transport).send_prompt_stream("hi")

        stream.close()

        assert stream.closed
        assert list(stream) == []
        assert transport.requests == []


class TestOpenAIDescriptors:
    def test_capabilities_use_model_catalog(self, openai_config) -> None:
        caps = OpenAIProvider(openai_config).get_capabilities()

        assert caps.streaming is True
        assert caps.function_calling is True
        assert caps.max_context_size == 128000
        assert caps.max_tokens == 16384

    def test_get_models(self, openai_config, recording_transport) -> None:
        transport = recording_transport(
            httpx.Response(
                200,
                json={
                    "object": "list",
                    "data": [
                        {"id": "gpt-4o", "object": "model", "created": 1, "owned_by": "openai"},
                        {"id": "gpt-4o-mini", "object": "model", "created": 1, "owned_by": "o"},
                    ],
                },
            )
        )

        assert make_provider(openai_config, transport).get_models() == ["gpt-4o", "gpt-4o-mini"]
        assert transport.requests[0].url.path == "/v1/models"


class TestOllama:
    """Ollama rides on the OpenAI-compatible endpoint."""

    @pytest.fixture
    def ollama_config(self) -> ProviderConfig:
        return ProviderConfig(type="ollama", model="llama3.2", max_tokens=512)

    def test_no_api_key_needed(self, ollama_config, recording_transport) -> None:
        transport = recording_transport(httpx.Response(200, json=COMPLETION_BODY))
        response = make_provider(ollama_config, transport, OllamaProvider).send_prompt("hi")

        request = transport.requests[0]
        assert str(request.url) == "http://localhost:11434/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer ollama"
        assert response.provider == "ollama"

    def test_custom_base_url(self, ollama_config, recording_transport) -> None:
        config = replace(ollama_config, base_url="http://gpu-box:11434/v1")
        transport = recording_transport(httpx.Response(200, json=COMPLETION_BODY))
        make_provider(config, transport, OllamaProvider).send_prompt("hi")

        assert transport.requests[0].url.host == "gpu-box"

    def test_capabilities(self, ollama_config) -> None:
        caps = OllamaProvider(ollama_config).get_capabilities()

        assert caps.streaming is True
        assert caps.function_calling is False
        assert caps.image_analysis is False
        assert caps.max_context_size == 128000

    def test_unknown_model_uses_default_window(self, ollama_config) -> None:
        caps = OllamaProvider(replace(ollama_config, model="phi3")).get_capabilities()

        assert caps.max_context_size == 8192

    def test_info(self, ollama_config) -> None:
        info = OllamaProvider(ollama_config).get_info()

        assert info.type == "ollama"
        assert info.name == "Ollama"

"""
End-to-End tests using real provider APIs.

These tests require real API keys (or a running Ollama) and make actual API
calls. They are skipped by default and must be run explicitly:

    # Run all e2e tests:
    pytest tests/providers/test_e2e_providers.py -v --run-e2e

    # Run only OpenAI tests:
    pytest tests/providers/test_e2e_providers.py -v --run-e2e -k openai

    # Run only Anthropic tests:
    pytest tests/providers/test_e2e_providers.py -v --run-e2e -k anthropic

Required environment variables:
    - OPENAI_API_KEY: For OpenAI tests
    - ANTHROPIC_API_KEY: For Anthropic tests
    - OLLAMA_HOST (optional): Base URL of a running Ollama, e.g. http://localhost:11434/v1
"""

from __future__ import annotations

import os

import pytest

from how.exceptions import RemoteError
from how.extractor import CommandExtractor
from how.types import CommandHistory, Context, ProviderConfig


@pytest.fixture
def shell_context() -> Context:
    return Context(
        working_directory="/home/user/project",
        shell="bash",
        recent_commands=[CommandHistory(command="git status", exit_code=0)],
    )


# =============================================================================
# OpenAI Provider Tests
# =============================================================================


@pytest.mark.e2e
@pytest.mark.openai
class TestOpenAIProvider:
    """End-to-end tests for OpenAI provider."""

    @pytest.fixture(autouse=True)
    def check_api_key(self) -> None:
        """Skip if OpenAI API key is not available."""
        if not os.getenv("OPENAI_API_KEY"):
            pytest.skip("OPENAI_API_KEY not set")

    @pytest.fixture
    def provider(self):
        from how.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(
            ProviderConfig(
                type="openai",
                api_key=os.environ["OPENAI_API_KEY"],
                model="gpt-4o-mini",
                max_tokens=300,
            )
        )

    def test_openai_basic_completion(self, provider, shell_context: Context) -> None:
        response = provider.send_prompt("How do I list hidden files?", shell_context)

        assert response.text
        assert response.provider == "openai"
        assert response.tokens_used > 0
        print(f"\n  Response: {response.text[:200]}")

    def test_openai_streaming(self, provider, shell_context: Context) -> None:
        stream = provider.send_prompt_stream("Say 'hello' and nothing else.", shell_context)
        elements = list(stream)

        assert elements[-1].done
        assert elements[-1].error is None
        assert "hello" in stream.text.lower()

    def test_openai_models(self, provider) -> None:
        assert "gpt-4o-mini" in provider.get_models()


# =============================================================================
# Anthropic Provider Tests
# =============================================================================


@pytest.mark.e2e
@pytest.mark.anthropic
class TestAnthropicProvider:
    """End-to-end tests for Anthropic provider."""

    @pytest.fixture(autouse=True)
    def check_api_key(self) -> None:
        """Skip if Anthropic API key is not available."""
        if not os.getenv("ANTHROPIC_API_KEY"):
            pytest.skip("ANTHROPIC_API_KEY not set")

    @pytest.fixture
    def provider(self):
        from how.providers.anthropic_provider import AnthropicProvider

        return AnthropicProvider(
            ProviderConfig(
                type="anthropic",
                api_key=os.environ["ANTHROPIC_API_KEY"],
                model="claude-3-5-haiku-20241022",
                max_tokens=500,
            )
        )

    def test_anthropic_basic_completion(self, provider, shell_context: Context) -> None:
        response = provider.send_prompt("How do I undo my last git commit?", shell_context)

        assert response.text
        assert response.provider == "anthropic"
        assert response.tokens_used > 0
        extracted = CommandExtractor().extract(response.text)
        assert extracted.has_commands()
        print(f"\n  Commands: {[c.command for c in extracted.all_commands()]}")

    def test_anthropic_bad_key(self, shell_context: Context) -> None:
        from how.providers.anthropic_provider import AnthropicProvider

        provider = AnthropicProvider(
            ProviderConfig(type="anthropic", api_key="sk-ant-invalid", model="claude-3-5-haiku")
        )
        with pytest.raises(RemoteError) as exc_info:
            provider.send_prompt("hi", shell_context)
        assert exc_info.value.status == 401


# =============================================================================
# Ollama Provider Tests
# =============================================================================


@pytest.mark.e2e
class TestOllamaProvider:
    """End-to-end tests against a local Ollama instance."""

    @pytest.fixture
    def provider(self):
        from how.providers.ollama_provider import OllamaProvider

        base_url = os.getenv("OLLAMA_HOST", "http://localhost:11434/v1")
        provider = OllamaProvider(
            ProviderConfig(type="ollama", model="llama3.2", base_url=base_url, timeout=5.0)
        )
        try:
            provider.get_models()
        except Exception as exc:
            pytest.skip(f"Ollama not available: {exc}")
        return provider

    def test_ollama_basic_completion(self, provider) -> None:
        response = provider.send_prompt("Say 'hello'")

        assert response.text
        assert response.provider == "ollama"

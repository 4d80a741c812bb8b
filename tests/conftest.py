"""
Pytest configuration for how tests.

Registers the e2e marker, the --run-e2e option, and shared fixtures for
building providers against an in-memory HTTP transport.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from how.types import CommandHistory, Context, GitContext, HistoryEntry, ProviderConfig


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run end-to-end tests with real API calls",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real API keys, use --run-e2e to run)"
    )
    config.addinivalue_line("markers", "openai: mark test as requiring OpenAI API key")
    config.addinivalue_line("markers", "anthropic: mark test as requiring Anthropic API key")


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --run-e2e is passed."""
    if config.getoption("--run-e2e"):
        return

    skip_e2e = pytest.mark.skip(reason="Need --run-e2e option to run end-to-end tests")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


class RecordingTransport:
    """
    httpx.MockTransport wrapper that records requests and replays responses.

    ``responses`` may hold httpx.Response objects, exceptions to raise, or
    callables taking the request.
    """

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item

    def client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport)

    @property
    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def recording_transport() -> Callable[..., RecordingTransport]:
    """Factory: ``recording_transport(response, ...)``."""
    return lambda *responses: RecordingTransport(list(responses))


@pytest.fixture
def anthropic_config() -> ProviderConfig:
    return ProviderConfig(
        type="anthropic",
        api_key="sk-ant-test",
        model="claude-3-5-sonnet-20241022",
        max_tokens=1024,
    )


@pytest.fixture
def openai_config() -> ProviderConfig:
    return ProviderConfig(type="openai", api_key="sk-test", model="gpt-4o", max_tokens=1024)


@pytest.fixture
def sample_context() -> Context:
    return Context(
        working_directory="/tmp/x",
        shell="zsh",
        git=GitContext(repository="r", branch="main", status="clean"),
        recent_commands=[CommandHistory(command="ls", exit_code=0)],
        conversation_id="conv-1",
        previous_prompts=[
            HistoryEntry(prompt="a", response="b"),
            HistoryEntry(prompt="c", response="d"),
        ],
    )

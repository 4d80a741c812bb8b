"""
Provider abstraction for model-agnostic prompting.
"""

from __future__ import annotations

import logging
import socket
import ssl
import threading
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Protocol,
    Tuple,
    runtime_checkable,
)
from urllib.parse import urlparse

from ..exceptions import (
    ContextTooLargeError,
    HowError,
    InvalidAPIKeyError,
    InvalidBaseURLError,
    InvalidMaxTokensError,
    InvalidModelError,
    ProviderError,
    RequestCancelledError,
    TransportError,
    remote_error,
)
from ..types import (
    Capabilities,
    Context,
    Message,
    ProviderConfig,
    ProviderInfo,
    Response,
    StreamResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

# Rough characters-per-token ratio used to reject oversized prompts before transport.
CHARS_PER_TOKEN = 4


@runtime_checkable
class Provider(Protocol):
    """
    Interface every provider adapter must satisfy.

    Adapters are selected by the ``name`` discriminator they were registered
    under, and ``get_info().type`` always reports that same value.
    """

    name: str

    def send_prompt(self, prompt: str, context: Context | None = None) -> Response:
        """
        Send a prompt with its context and wait for the complete answer.

        Raises:
            ConfigValidationError: If the configuration is invalid at call time.
            TransportError: On network failure or timeout.
            RemoteError: When the backend returns a non-success status.
            DecodeError: When the response body is malformed.
        """
        ...

    def send_prompt_stream(self, prompt: str, context: Context | None = None) -> "PromptStream":
        """
        Send a prompt and return a lazy stream of StreamResponse elements.

        Providers without streaming raise UnsupportedError before opening any
        connection.
        """
        ...

    def validate_config(self) -> None:
        """Raise a ConfigValidationError if the captured config is invalid."""
        ...

    def get_info(self) -> ProviderInfo:
        ...

    def get_capabilities(self) -> Capabilities:
        ...

    def get_models(self) -> List[str]:
        """List model identifiers available from the backend, in server order."""
        ...


def check_config(
    config: ProviderConfig,
    *,
    require_api_key: bool = True,
    max_tokens_limit: int,
) -> None:
    """
    Validate the fields every backend shares.

    Deterministic and side-effect free, so it is safe to call before every
    request and from the manager's scoring loop.
    """
    if require_api_key and not config.api_key:
        raise InvalidAPIKeyError("invalid or missing API key", provider_type=config.type)

    if not config.model:
        raise InvalidModelError("invalid or missing model", provider_type=config.type)

    if config.base_url:
        parsed = urlparse(config.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidBaseURLError(
                f"invalid base URL: {config.base_url!r}", provider_type=config.type
            )

    if config.max_tokens <= 0 or config.max_tokens > max_tokens_limit:
        raise InvalidMaxTokensError(config.max_tokens, max_tokens_limit, provider_type=config.type)


def estimate_tokens(system_prompt: str, messages: List[Message]) -> int:
    chars = len(system_prompt) + sum(len(message.content) for message in messages)
    return chars // CHARS_PER_TOKEN


def ensure_context_fits(system_prompt: str, messages: List[Message], limit: int) -> None:
    """Reject prompts whose estimated size exceeds the context window."""
    if limit <= 0:
        return
    estimated = estimate_tokens(system_prompt, messages)
    if estimated > limit:
        raise ContextTooLargeError(
            f"prompt is about {estimated} tokens, above the context window of {limit}",
            estimated_tokens=estimated,
            limit=limit,
        )


def error_details(body: Any, fallback: str) -> Tuple[str, str | None]:
    """
    Pull ``(message, type)`` out of an ``{"error": {"type", "message"}}`` body.

    Falls back to the raw response text when the body is not in that shape.
    """
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("message"):
            error_type = error.get("type")
            return str(error["message"]), str(error_type) if error_type else None
    return fallback, None


def status_error(status: int, body: Any, raw_text: str) -> ProviderError:
    message, error_type = error_details(body, raw_text)
    logger.warning("Backend returned status %s (%s)", status, error_type or "unstructured")
    return remote_error(status, message, error_type)


def translate_sdk_error(exc: Exception, sdk: Any, label: str, timeout: float) -> ProviderError:
    """
    Map an exception raised by a Stainless-generated SDK (anthropic, openai).

    Both SDKs expose ``APIStatusError``, ``APITimeoutError`` and
    ``APIConnectionError`` with the same attributes, so one mapping serves all
    adapters built on them.
    """
    if isinstance(exc, sdk.APIStatusError):
        return status_error(exc.status_code, exc.body, exc.response.text)
    if isinstance(exc, sdk.APITimeoutError):
        return TransportError(f"{label} request timed out after {timeout:g}s", "timeout")
    if isinstance(exc, sdk.APIConnectionError):
        kind = transport_kind(exc)
        logger.warning("%s connection failure (%s): %s", label, kind, exc)
        return TransportError(f"HTTP request to {label} failed: {exc}", kind)
    return ProviderError(f"{label} request failed: {exc}")


def transport_kind(exc: BaseException) -> str:
    """Classify a connection failure by walking its cause chain."""
    seen = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLError):
            return "tls"
        if isinstance(current, socket.gaierror):
            return "dns"
        text = str(current).lower()
        if "certificate" in text or "ssl" in text:
            return "tls"
        if "name or service not known" in text or "nodename nor servname" in text:
            return "dns"
        if "getaddrinfo" in text or "name resolution" in text:
            return "dns"
        current = current.__cause__ or current.__context__
    return "connection"


class PromptStream:
    """
    Lazy, non-restartable stream of StreamResponse elements.

    Wraps a generator of text chunks. Every chunk is emitted with
    ``done=False``; exactly one terminal element follows, with ``done=True``
    and ``error`` set when the stream failed or was cancelled. Iteration stops
    after the terminal element.

    ``cancel()`` may be called from another thread. The next ``next()`` call
    observes it, closes the underlying generator (and with it the HTTP
    response), and emits a RequestCancelledError terminal element.

    Example:
        >>> stream = provider.send_prompt_stream("list open ports")
        >>> for chunk in stream:
        ...     if chunk.error:
        ...         raise chunk.error
        ...     print(chunk.text, end="")
    """

    def __init__(
        self,
        chunks: Iterator[str],
        *,
        provider: str = "",
        model: str = "",
        on_close: Callable[[], None] | None = None,
    ):
        self._chunks = chunks
        self._on_close = on_close
        self._cancel_event = threading.Event()
        self._state = "idle"
        self._text_parts: List[str] = []
        self.metadata: Dict[str, Any] = {"provider": provider, "model": model}

    @property
    def state(self) -> str:
        """One of "idle", "open", "closed"."""
        return self._state

    @property
    def closed(self) -> bool:
        return self._state == "closed"

    @property
    def text(self) -> str:
        """Text received so far."""
        return "".join(self._text_parts)

    def cancel(self) -> None:
        self._cancel_event.set()

    def __iter__(self) -> "PromptStream":
        return self

    def __next__(self) -> StreamResponse:
        if self._state == "closed":
            raise StopIteration
        self._state = "open"

        if self._cancel_event.is_set():
            return self._finish(error=RequestCancelledError("stream cancelled by caller"))

        try:
            chunk = next(self._chunks)
        except StopIteration:
            return self._finish()
        except HowError as exc:
            return self._finish(error=exc)
        except Exception as exc:
            logger.warning("Stream chunk source failed: %s", type(exc).__name__)
            error = ProviderError(f"stream failed: {type(exc).__name__}: {exc}")
            error.__cause__ = exc
            return self._finish(error=error)

        self._text_parts.append(chunk)
        return StreamResponse(text=chunk, done=False)

    def close(self) -> None:
        """Release the underlying generator without emitting further elements."""
        if self._state != "closed":
            self._state = "closed"
            self._release()

    def _finish(self, error: Exception | None = None) -> StreamResponse:
        self._state = "closed"
        self._release()
        metadata = dict(self.metadata)
        metadata["characters"] = len(self.text)
        return StreamResponse(text="", done=True, error=error, metadata=metadata)

    def _release(self) -> None:
        close = getattr(self._chunks, "close", None)
        if close is not None:
            close()
        if self._on_close is not None:
            self._on_close()


__all__ = [
    "DEFAULT_TIMEOUT",
    "Provider",
    "PromptStream",
    "ProviderError",
    "check_config",
    "ensure_context_fits",
    "error_details",
    "estimate_tokens",
    "status_error",
    "translate_sdk_error",
    "transport_kind",
]

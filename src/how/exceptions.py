"""
Exceptions for the provider layer, with helpful messages and suggestions.

Configuration errors carry boxed messages with:
- Clear explanations of what went wrong
- Concrete suggestions for fixes
- Relevant context (provider type, field names, values)

Runtime call errors derive from ProviderError and keep short messages so the
CLI can print them on a single line. Every error exposes a ``kind`` string.
"""

from __future__ import annotations

from typing import Iterable


def _boxed(title: str, body: str, suggestion: str = "") -> str:
    message = f"\n{'='*60}\n"
    message += f"❌ {title}\n"
    message += f"{'='*60}\n\n"
    message += body
    if suggestion:
        message += f"\n💡 {suggestion}\n"
    message += f"\n{'='*60}\n"
    return message


class HowError(Exception):
    """Base exception for all how errors."""

    kind = "Error"


# -----------------------------------------------------------------------------
# Configuration validation
# -----------------------------------------------------------------------------


class ConfigValidationError(HowError):
    """Raised by ``validate_config`` when a provider setting is invalid."""

    kind = "InvalidConfig"
    field_name = ""

    def __init__(self, message: str, provider_type: str = ""):
        self.provider_type = provider_type
        super().__init__(message)


class InvalidAPIKeyError(ConfigValidationError):
    """The API key is missing or empty."""

    kind = "InvalidAPIKey"
    field_name = "api_key"


class InvalidModelError(ConfigValidationError):
    """The model identifier is missing or unsupported."""

    kind = "InvalidModel"
    field_name = "model"


class InvalidBaseURLError(ConfigValidationError):
    """The base URL override is not an absolute http(s) URL."""

    kind = "InvalidBaseURL"
    field_name = "base_url"


class InvalidMaxTokensError(ConfigValidationError):
    """max_tokens is outside the backend's allowed range."""

    kind = "InvalidMaxTokens"
    field_name = "max_tokens"

    def __init__(self, value: int, limit: int, provider_type: str = ""):
        self.value = value
        self.limit = limit
        super().__init__(
            f"max_tokens must be between 1 and {limit}, got {value}", provider_type=provider_type
        )


# -----------------------------------------------------------------------------
# Registry and manager
# -----------------------------------------------------------------------------


class UnknownProviderTypeError(HowError):
    """Raised when no constructor is registered for a provider type."""

    kind = "UnknownProviderType"

    def __init__(self, provider_type: str, available: Iterable[str] = ()):
        self.provider_type = provider_type
        self.available = sorted(available)

        known = ", ".join(self.available) or "none"
        super().__init__(
            _boxed(
                f"Unknown Provider Type: '{provider_type}'",
                f"Registered types: {known}\n",
                "Check the 'type' field of this provider in your config file.",
            )
        )


class ProviderNotFoundError(HowError):
    """Raised when a named provider is not loaded."""

    kind = "ProviderNotFound"

    def __init__(self, name: str, available: Iterable[str] = ()):
        self.name = name
        self.available = sorted(available)
        known = ", ".join(self.available) or "none"
        super().__init__(f"provider '{name}' not found (available: {known})")


class InvalidConfigurationError(HowError):
    """Raised when the factory cannot build a valid provider from a config."""

    kind = "InvalidConfiguration"

    def __init__(self, provider_type: str, cause: Exception):
        self.provider_type = provider_type
        self.cause = cause

        body = f"Cause: {type(cause).__name__}: {cause}\n"
        suggestion = ""
        field_name = getattr(cause, "field_name", "")
        if field_name:
            body += f"Field: {field_name}\n"
            suggestion = f"Fix '{field_name}' in the provider section of your config file."
        super().__init__(
            _boxed(f"Invalid Configuration for Provider '{provider_type}'", body, suggestion)
        )


class ProviderLoadError(HowError):
    """Raised when one entry of a provider map fails to load."""

    kind = "ProviderLoad"

    def __init__(self, name: str, cause: Exception):
        self.name = name
        self.cause = cause
        super().__init__(f"failed to load provider '{name}': {cause}")


class NoSuitableProviderError(HowError):
    """Raised when no loaded provider scores above zero."""

    kind = "NoSuitableProvider"

    def __init__(self, message: str = "no suitable provider found for requirements"):
        super().__init__(message)


class ConfigFileError(HowError):
    """Raised when the configuration file cannot be read or parsed."""

    kind = "ConfigFile"

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(
            _boxed(
                "Configuration File Error",
                f"File: {path}\nError: {type(cause).__name__}: {cause}\n",
                "Check that the file is valid YAML, or remove it to use defaults.",
            )
        )


# -----------------------------------------------------------------------------
# Prompt assembly
# -----------------------------------------------------------------------------


class TemplateError(HowError):
    """Raised when the system prompt template cannot be rendered."""

    kind = "TemplateError"


class ConversationError(HowError):
    """Raised when previous prompts cannot form a valid alternating history."""

    kind = "Conversation"


# -----------------------------------------------------------------------------
# Runtime call errors
# -----------------------------------------------------------------------------


class ProviderError(HowError):
    """Raised when an adapter cannot complete a request."""

    kind = "Provider"


class TransportError(ProviderError):
    """Network-level failure before a response status was received."""

    kind = "Transport"
    KINDS = ("timeout", "dns", "connection", "tls", "other")

    def __init__(self, message: str, transport_kind: str = "other"):
        if transport_kind not in self.KINDS:
            transport_kind = "other"
        self.transport_kind = transport_kind
        super().__init__(message)


class RemoteError(ProviderError):
    """The backend answered with a non-success HTTP status."""

    kind = "RemoteError"

    def __init__(self, status: int, message: str, error_type: str | None = None):
        self.status = status
        self.message = message
        self.error_type = error_type
        super().__init__(f"API error ({status}): {message}")


class RateLimitedError(RemoteError):
    """The backend rejected the request because of rate limiting."""

    kind = "RateLimited"


class QuotaExceededError(RemoteError):
    """The account has no remaining quota or credit."""

    kind = "QuotaExceeded"


class ServiceUnavailableError(RemoteError):
    """The backend is overloaded or temporarily unavailable."""

    kind = "ServiceUnavailable"


class ContextTooLargeError(ProviderError):
    """
    The prompt exceeds the backend's context window.

    Raised before transport when the estimated prompt size is over the
    provider's declared limit (``status`` is None), or mapped from a 413 reply.
    """

    kind = "ContextTooLarge"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        estimated_tokens: int | None = None,
        limit: int | None = None,
    ):
        self.status = status
        self.message = message
        self.estimated_tokens = estimated_tokens
        self.limit = limit
        super().__init__(message if status is None else f"API error ({status}): {message}")


class DecodeError(ProviderError):
    """The backend returned a body that could not be decoded."""

    kind = "Decode"


class UnsupportedError(ProviderError):
    """The provider does not support the requested feature."""

    kind = "Unsupported"

    def __init__(self, feature: str, provider_type: str = ""):
        self.feature = feature
        self.provider_type = provider_type
        who = f" by {provider_type} provider" if provider_type else ""
        super().__init__(f"{feature} is not supported{who}")


class RequestCancelledError(ProviderError):
    """The caller cancelled an in-flight request or stream."""

    kind = "Cancelled"

    def __init__(self, message: str = "request cancelled"):
        super().__init__(message)


def remote_error(status: int, message: str, error_type: str | None = None) -> ProviderError:
    """Build the most specific error for a non-success status and error type."""
    error_type = error_type or None
    if status == 429 or error_type == "rate_limit_error":
        return RateLimitedError(status, message, error_type)
    if status == 402 or error_type == "insufficient_quota":
        return QuotaExceededError(status, message, error_type)
    if status == 413 or error_type == "request_too_large":
        return ContextTooLargeError(message, status=status)
    if status in (503, 529) or error_type == "overloaded_error":
        return ServiceUnavailableError(status, message, error_type)
    return RemoteError(status, message, error_type)


__all__ = [
    "HowError",
    "ConfigValidationError",
    "InvalidAPIKeyError",
    "InvalidModelError",
    "InvalidBaseURLError",
    "InvalidMaxTokensError",
    "UnknownProviderTypeError",
    "ProviderNotFoundError",
    "InvalidConfigurationError",
    "ProviderLoadError",
    "NoSuitableProviderError",
    "ConfigFileError",
    "TemplateError",
    "ConversationError",
    "ProviderError",
    "TransportError",
    "RemoteError",
    "RateLimitedError",
    "QuotaExceededError",
    "ServiceUnavailableError",
    "ContextTooLargeError",
    "DecodeError",
    "UnsupportedError",
    "RequestCancelledError",
    "remote_error",
]

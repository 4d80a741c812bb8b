"""Public exports for the how package."""

from . import providers
from .config import AppConfig, load_config, save_config
from .exceptions import (
    ConfigValidationError,
    HowError,
    NoSuitableProviderError,
    ProviderError,
    ProviderNotFoundError,
    RemoteError,
    TransportError,
    UnsupportedError,
)
from .extractor import CommandExtractor, ExtractedCommands
from .prompt import PromptBuilder
from .providers import (
    AnthropicProvider,
    LocalProvider,
    OllamaProvider,
    OpenAIProvider,
    PromptStream,
    Provider,
)
from .registry import (
    ProviderFactory,
    ProviderManager,
    ProviderRequirements,
    default_factory,
    get_supported_providers,
    register_provider,
)
from .types import (
    Capabilities,
    Context,
    HistoryEntry,
    Message,
    ProviderConfig,
    ProviderInfo,
    Response,
    Role,
    StreamResponse,
)

__version__ = "0.1.0"

__all__ = [
    "providers",
    # Providers
    "Provider",
    "PromptStream",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "LocalProvider",
    # Registry
    "ProviderFactory",
    "ProviderManager",
    "ProviderRequirements",
    "default_factory",
    "get_supported_providers",
    "register_provider",
    # Types
    "Capabilities",
    "Context",
    "HistoryEntry",
    "Message",
    "ProviderConfig",
    "ProviderInfo",
    "Response",
    "Role",
    "StreamResponse",
    # Prompt and output
    "PromptBuilder",
    "CommandExtractor",
    "ExtractedCommands",
    # Config
    "AppConfig",
    "load_config",
    "save_config",
    # Exceptions
    "HowError",
    "ConfigValidationError",
    "ProviderError",
    "TransportError",
    "RemoteError",
    "UnsupportedError",
    "ProviderNotFoundError",
    "NoSuitableProviderError",
]

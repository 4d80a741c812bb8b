"""
Provider registry and manager.

Two layers:

- ProviderFactory maps a type discriminator ("anthropic", "openai", ...) to a
  constructor and builds validated provider instances from ProviderConfig.
- ProviderManager holds named provider instances built by a factory and
  offers lookup, validation sweeps, reload/remove and capability-weighted
  selection.

Usage:
    from how.registry import ProviderManager, ProviderRequirements

    manager = ProviderManager()
    manager.load_providers({"claude": {"type": "anthropic", "apiKey": "...", "model": "..."}})

    provider = manager.get_provider("claude")
    name, best = manager.select_best_provider(ProviderRequirements(streaming=True))
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Tuple, Union

from .exceptions import (
    HowError,
    InvalidConfigurationError,
    NoSuitableProviderError,
    ProviderLoadError,
    ProviderNotFoundError,
    UnknownProviderTypeError,
)
from .types import Capabilities, ProviderConfig, ProviderInfo

if TYPE_CHECKING:
    from .providers.base import Provider

logger = logging.getLogger(__name__)

ProviderConstructor = Callable[[ProviderConfig], "Provider"]
ConfigLike = Union[ProviderConfig, Mapping[str, Any]]


def _as_config(value: ConfigLike) -> ProviderConfig:
    """Coerce a config mapping, wrapping bad field values as a config error."""
    if isinstance(value, ProviderConfig):
        return value
    try:
        return ProviderConfig.from_dict(value)
    except (AttributeError, TypeError, ValueError) as exc:
        provider_type = value.get("type", "") if isinstance(value, Mapping) else ""
        raise InvalidConfigurationError(str(provider_type or "unknown"), exc) from exc


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------


class ProviderFactory:
    """
    Type-to-constructor map.

    Every provider it returns has passed ``validate_config()`` and reports the
    registered type in ``get_info().type``.
    """

    def __init__(self) -> None:
        self._constructors: Dict[str, ProviderConstructor] = {}
        self._lock = threading.RLock()

    def register(self, provider_type: str, constructor: ProviderConstructor) -> None:
        """Register a constructor, replacing any earlier one for the same type."""
        with self._lock:
            if provider_type in self._constructors:
                logger.warning("Replacing registered provider type: %s", provider_type)
            self._constructors[provider_type] = constructor
        logger.debug("Registered provider type: %s", provider_type)

    def unregister(self, provider_type: str) -> None:
        with self._lock:
            self._constructors.pop(provider_type, None)

    def is_registered(self, provider_type: str) -> bool:
        return provider_type in self._constructors

    def create_provider(self, config: ProviderConfig) -> Provider:
        """
        Build and validate a provider for ``config.type``.

        Raises:
            UnknownProviderTypeError: If no constructor is registered for the type.
            InvalidConfigurationError: If construction or validation fails, or
                the instance reports a different type.
        """
        with self._lock:
            constructor = self._constructors.get(config.type)
            available = list(self._constructors)
        if constructor is None:
            raise UnknownProviderTypeError(config.type, available)

        try:
            provider = constructor(config)
        except Exception as exc:
            raise InvalidConfigurationError(config.type, exc) from exc

        try:
            provider.validate_config()
        except HowError as exc:
            raise InvalidConfigurationError(config.type, exc) from exc

        reported = provider.get_info().type
        if reported != config.type:
            mismatch = ValueError(
                f"constructor for '{config.type}' built a provider of type '{reported}'"
            )
            raise InvalidConfigurationError(config.type, mismatch)
        return provider

    def supported_types(self) -> List[str]:
        with self._lock:
            return sorted(self._constructors)


default_factory = ProviderFactory()


def register_provider(provider_type: str, constructor: ProviderConstructor) -> None:
    """Register a constructor with the process-wide default factory."""
    default_factory.register(provider_type, constructor)


def get_supported_providers() -> List[str]:
    """Return the types registered with the default factory, sorted."""
    return default_factory.supported_types()


def provider_from_configs(
    name: str,
    configs: Mapping[str, ConfigLike],
    factory: ProviderFactory | None = None,
) -> Provider:
    """Build the provider called ``name`` from a name-to-config map."""
    if name not in configs:
        raise ProviderNotFoundError(name, configs.keys())
    return (factory or default_factory).create_provider(_as_config(configs[name]))


# -----------------------------------------------------------------------------
# Manager
# -----------------------------------------------------------------------------


@dataclass
class ProviderRequirements:
    """Features a caller wants from a provider, used for scoring."""

    streaming: bool = False
    function_calling: bool = False
    image_analysis: bool = False
    min_context_size: int = 0
    preferred_types: List[str] = field(default_factory=list)


class ProviderManager:
    """
    Name-to-instance map of loaded providers.

    Mutations are serialised with an internal lock and reads work on
    snapshots, so lookups may run alongside a reload.
    """

    STREAMING_POINTS = 10
    FUNCTION_CALLING_POINTS = 10
    IMAGE_ANALYSIS_POINTS = 10
    CONTEXT_SIZE_POINTS = 5
    PREFERRED_TYPE_POINTS = 20

    def __init__(self, factory: ProviderFactory | None = None):
        self.factory = factory or default_factory
        self._providers: Dict[str, Provider] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def _snapshot(self) -> List[Tuple[str, Provider]]:
        with self._lock:
            return list(self._providers.items())

    def load_providers(self, configs: Mapping[str, ConfigLike]) -> None:
        """
        Build and add every provider in ``configs``.

        All or nothing: if any entry fails, nothing is added.

        Raises:
            ProviderLoadError: Naming the first entry that failed, with the
                factory error as ``cause``.
        """
        built: Dict[str, Provider] = {}
        for name, value in configs.items():
            try:
                built[name] = self.factory.create_provider(_as_config(value))
            except HowError as exc:
                logger.warning("Failed to load provider %s: %s", name, type(exc).__name__)
                raise ProviderLoadError(name, exc) from exc

        with self._lock:
            self._providers.update(built)
        logger.info("Loaded %d provider(s): %s", len(built), ", ".join(built) or "none")

    def add_provider(self, name: str, provider: Provider) -> None:
        """Add an already constructed provider without validating it."""
        with self._lock:
            self._providers[name] = provider

    def get_provider(self, name: str) -> Provider:
        with self._lock:
            provider = self._providers.get(name)
            if provider is None:
                raise ProviderNotFoundError(name, self._providers.keys())
            return provider

    def remove_provider(self, name: str) -> None:
        """Remove a provider; unknown names are ignored."""
        with self._lock:
            if self._providers.pop(name, None) is not None:
                logger.info("Removed provider: %s", name)

    def reload_provider(self, name: str, config: ConfigLike) -> None:
        """
        Replace (or add) the provider called ``name``.

        The old instance stays in place if the new config fails.
        """
        try:
            provider = self.factory.create_provider(_as_config(config))
        except HowError as exc:
            raise ProviderLoadError(name, exc) from exc
        with self._lock:
            self._providers[name] = provider
        logger.info("Reloaded provider: %s", name)

    def names(self) -> List[str]:
        """Provider names in load order."""
        return [name for name, _ in self._snapshot()]

    def list_providers(self) -> List[ProviderInfo]:
        """Info for every provider, sorted by display name, then type."""
        infos = [provider.get_info() for _, provider in self._snapshot()]
        return sorted(infos, key=lambda info: (info.name, info.type))

    def validate_providers(self) -> Dict[str, HowError]:
        """Return ``name -> error`` for providers whose config is invalid."""
        errors: Dict[str, HowError] = {}
        for name, provider in self._snapshot():
            try:
                provider.validate_config()
            except HowError as exc:
                errors[name] = exc
        return errors

    def health_check(self, live: bool = False) -> Dict[str, HowError | None]:
        """
        Check every provider, mapping each name to its error or None.

        With ``live=True`` a model listing request is also made, so network
        and credential problems show up too.
        """
        results: Dict[str, HowError | None] = {}
        for name, provider in self._snapshot():
            try:
                provider.validate_config()
                if live:
                    provider.get_models()
            except HowError as exc:
                results[name] = exc
            else:
                results[name] = None
        return results

    def get_provider_capabilities(self, name: str) -> Capabilities:
        return self.get_provider(name).get_capabilities()

    def get_available_types(self) -> List[str]:
        return self.factory.supported_types()

    def score_provider(self, provider: Provider, requirements: ProviderRequirements) -> int:
        """
        Rate how well ``provider`` matches ``requirements``.

        Matching streaming, function calling and image analysis earn 10 points
        each, a large enough context window earns 5, and a preferred type earns
        20 once. A provider whose config fails validation scores 0.
        """
        capabilities = provider.get_capabilities()
        info = provider.get_info()
        score = 0

        if requirements.streaming and capabilities.streaming:
            score += self.STREAMING_POINTS
        if requirements.function_calling and capabilities.function_calling:
            score += self.FUNCTION_CALLING_POINTS
        if requirements.image_analysis and capabilities.image_analysis:
            score += self.IMAGE_ANALYSIS_POINTS
        if capabilities.max_context_size >= requirements.min_context_size:
            score += self.CONTEXT_SIZE_POINTS
        if info.type in requirements.preferred_types:
            score += self.PREFERRED_TYPE_POINTS

        try:
            provider.validate_config()
        except HowError:
            score = 0
        return score

    def select_best_provider(
        self, requirements: ProviderRequirements | None = None
    ) -> Tuple[str, Provider]:
        """
        Pick the highest scoring provider.

        Ties keep the provider loaded first.

        Raises:
            NoSuitableProviderError: If no provider scores above zero.
        """
        requirements = requirements or ProviderRequirements()
        best_name = ""
        best_provider: Provider | None = None
        best_score = 0

        for name, provider in self._snapshot():
            score = self.score_provider(provider, requirements)
            logger.debug("Provider %s scored %d", name, score)
            if score > best_score:
                best_name, best_provider, best_score = name, provider, score

        if best_provider is None:
            raise NoSuitableProviderError()
        logger.info("Selected provider %s (score %d)", best_name, best_score)
        return best_name, best_provider

    def resolve(
        self,
        name: str | None = None,
        requirements: ProviderRequirements | None = None,
    ) -> Tuple[str, Provider]:
        """Return the named provider, or the best match when no name is given."""
        if name:
            return name, self.get_provider(name)
        return self.select_best_provider(requirements)


__all__ = [
    "ProviderConstructor",
    "ProviderFactory",
    "ProviderManager",
    "ProviderRequirements",
    "default_factory",
    "get_supported_providers",
    "provider_from_configs",
    "register_provider",
]

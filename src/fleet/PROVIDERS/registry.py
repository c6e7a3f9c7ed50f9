"""
Registry mapping each resource kind to the provider that serves it.
"""
import logging
from typing import Dict, List, Mapping, Optional, Tuple

from ..errors import UnsupportedKindError
from ..MODELS.service_spec import ResourceKind
from .base import ResourceProvider
from .catalog import DEFAULT_CATALOG, VersionTable
from .database_provider import DatabaseProvider
from .cache_provider import CacheProvider
from .search_provider import SearchProvider
from .storage_provider import StorageProvider
from .mail_provider import MailProvider
from .runtime_provider import RuntimeProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES = (
    DatabaseProvider,
    CacheProvider,
    SearchProvider,
    StorageProvider,
    MailProvider,
    RuntimeProvider,
)


class ProviderRegistry:
    """
    Holds one provider per kind. Built per run; never global.
    """
    def __init__(self):
        self._providers: Dict[ResourceKind, ResourceProvider] = {}

    def register(self, provider: ResourceProvider):
        """
        Registers a provider, replacing any previous provider for its kind.

        :param provider: The provider instance.
        """
        if provider.kind in self._providers:
            logger.debug("Replacing provider for %s", provider.kind.value)
        self._providers[provider.kind] = provider

    def provider_for(self, kind: ResourceKind, service: Optional[str] = None) -> ResourceProvider:
        """
        :raises UnsupportedKindError: If no provider serves the kind.
        """
        provider = self._providers.get(kind)
        if provider is None:
            value = kind.value if isinstance(kind, ResourceKind) else str(kind)
            raise UnsupportedKindError(value, service=service)
        return provider

    def kinds(self) -> List[ResourceKind]:
        return list(self._providers)

    def describe(self) -> Dict[str, Dict[str, Tuple[str, ...]]]:
        """
        Supported versions per kind and subtype, for display.
        """
        return {kind.value: provider.describe() for kind, provider in self._providers.items()}


def default_registry(catalog: Mapping[ResourceKind, Tuple[VersionTable, ...]] = DEFAULT_CATALOG) -> ProviderRegistry:
    """
    Builds a registry with the built-in providers, each given its kind's
    version tables from ``catalog``. Kinds missing from the catalog are
    left unregistered.
    """
    registry = ProviderRegistry()
    for provider_class in PROVIDER_CLASSES:
        tables = catalog.get(provider_class.kind)
        if tables is None:
            continue
        registry.register(provider_class(tables))
    return registry

"""
Deduplication of infrastructure entries across consuming services.
"""
import logging
from typing import Dict, List, Optional

from ..errors import ConflictError, FleetError
from ..MODELS.service_spec import ResourceRequest, ServiceSpec
from ..MODELS.orchestration_config import ConflictPolicy
from ..MODELS.orchestration_document import CanonicalKey, ResourceBinding, SharedResourceEntry
from ..PROVIDERS.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class SharedResourceManager:
    """
    Guarantees at most one entry per canonical key. The first request seen for
    a key materializes the entry; later requests bind to it unchanged.

    State is local to one instance; create one per generation run.
    """
    def __init__(self, registry: ProviderRegistry, policy: ConflictPolicy = ConflictPolicy.LEGACY):
        """
        :param registry: Providers used to key and materialize requests.
        :param policy: How divergent overrides on a shared entry are handled.
        """
        self.registry = registry
        self.policy = policy
        self._entries: Dict[CanonicalKey, SharedResourceEntry] = {}
        self.bindings: Dict[str, List[ResourceBinding]] = {}
        self.conflicts: List[ConflictError] = []

    @property
    def entries(self) -> List[SharedResourceEntry]:
        """
        Materialized entries in first-seen order.
        """
        return list(self._entries.values())

    def entry(self, name: str) -> Optional[SharedResourceEntry]:
        for entry in self._entries.values():
            if entry.name == name:
                return entry
        return None

    def acquire(self, request: ResourceRequest, consumer: ServiceSpec) -> SharedResourceEntry:
        """
        Returns the entry serving ``request`` for ``consumer``, materializing it
        on first sight, and records the binding.

        :raises ConflictError: Under the ``error`` policy, when the request's
            entry-shaping settings differ from the first writer's.
        """
        provider = self.registry.provider_for(request.kind, service=consumer.name)
        key = provider.canonical_key(request, consumer)

        entry = self._entries.get(key)
        if entry is None:
            entry = provider.materialize(request, consumer)
            self._entries[key] = entry
            logger.debug("Materialized %s for %s as %s", key, consumer.name, entry.name)
        else:
            logger.debug("Reusing %s for %s", entry.name, consumer.name)
            self._check_conflict(provider, entry, request, consumer)

        self.bindings.setdefault(consumer.name, []).append(
            ResourceBinding(consumer=consumer.name, request=request, entry_name=entry.name))
        return entry

    def _check_conflict(self, provider, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec):
        fields = provider.diverging_settings(entry, request, consumer)
        if not fields:
            return

        for field in fields:
            conflict = ConflictError(entry.name, consumer.name, field, entry.origin_consumer)
            if self.policy == ConflictPolicy.ERROR:
                raise conflict
            self.conflicts.append(conflict)

        if self.policy == ConflictPolicy.LEGACY:
            logger.warning(
                "Service %s overrides %s of shared entry %s (configured by %s); "
                "its connection settings will not match the entry",
                consumer.name, ", ".join(fields), entry.name, entry.origin_consumer)
        else:
            logger.info(
                "Service %s overrides %s of shared entry %s; using values from %s",
                consumer.name, ", ".join(fields), entry.name, entry.origin_consumer)

    def deduplicate(self, specs: List[ServiceSpec]) -> List[FleetError]:
        """
        Acquires every request of every service, in input order.

        :return: Errors raised while acquiring; processing continues past them.
        """
        errors: List[FleetError] = []
        for spec in specs:
            self.bindings.setdefault(spec.name, [])
            for request in spec.resources:
                try:
                    self.acquire(request, spec)
                except FleetError as e:
                    errors.append(e)
        return errors

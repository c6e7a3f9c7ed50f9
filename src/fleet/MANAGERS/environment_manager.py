"""
Computation of the environment each service receives from its dependencies.
"""
import logging
from typing import Dict, List

from ..MODELS.service_spec import ServiceSpec
from ..MODELS.orchestration_config import ConflictPolicy
from ..MODELS.orchestration_document import ResourceBinding, SharedResourceEntry
from ..PROVIDERS.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class EnvironmentManager:
    """
    Manages the merging of derived and explicit environment variables.
    """
    def __init__(self, registry: ProviderRegistry, policy: ConflictPolicy = ConflictPolicy.LEGACY):
        """
        :param registry: Providers that know each kind's variables.
        :param policy: Under ``first-writer`` derived variables come from the
            request that materialized the entry instead of the consumer's own.
        """
        self.registry = registry
        self.policy = policy

    def get_merged_environment(self,
                               spec: ServiceSpec,
                               bindings: List[ResourceBinding],
                               entries: Dict[str, SharedResourceEntry],
                               specs: Dict[str, ServiceSpec]) -> Dict[str, str]:
        """
        Merges provider variables in dependency order, then the service's
        explicit environment.

        :param spec: The consuming service.
        :param bindings: The service's resource bindings, in request order.
        :param entries: Materialized entries by name.
        :param specs: Every declared service by name, to look up first writers.
        :return: The merged environment with keys sorted.
        """
        merged: Dict[str, str] = {}

        # 1. Derived variables (later providers override earlier ones)
        for binding in bindings:
            entry = entries[binding.entry_name]
            provider = self.registry.provider_for(binding.request.kind, service=spec.name)

            request, consumer = binding.request, spec
            if self.policy == ConflictPolicy.FIRST_WRITER:
                request = entry.origin_request
                consumer = specs.get(entry.origin_consumer, spec)

            derived = provider.environment_for(entry, request, consumer)
            for key in derived:
                if key in merged and merged[key] != derived[key]:
                    logger.debug("%s: %s from %s replaces earlier value", spec.name, key, entry.name)
            merged.update(derived)

        # 2. Explicit environment variables override everything
        merged.update(spec.environment)

        return {key: merged[key] for key in sorted(merged)}
